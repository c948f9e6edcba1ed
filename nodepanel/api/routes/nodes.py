from fastapi import APIRouter, Depends, HTTPException, status

from nodepanel.api.deps import (
    get_environment_store,
    get_node_actions,
    get_panel_manager,
    get_refresh_host,
    get_window,
)
from nodepanel.commands.node_commands import (
    NodeCommandTarget,
    bring_node_online,
    launch_node_agent,
    show_node_details,
    take_node_offline,
)
from nodepanel.panels.controller import NodeDetailsPanelManager
from nodepanel.panels.state import find_environment_ref
from nodepanel.schemas.api import NodeCommandResponse, NodeTargetRequest, TakeNodeOfflineRequest
from nodepanel.services.node_actions import NodeActionService
from nodepanel.storage.environment_store import EnvironmentStore
from nodepanel.ws.hub import WebHostWindow, WebRefreshHost

router = APIRouter(prefix="/nodes", tags=["nodes"])


async def _command_target(payload: NodeTargetRequest, store: EnvironmentStore) -> NodeCommandTarget:
    environment = await find_environment_ref(store, payload.scope, payload.environment_id)
    if environment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown environment: {payload.environment_id}",
        )
    return NodeCommandTarget(environment=environment, node_url=payload.node_url, label=payload.label)


@router.post("/details", response_model=NodeCommandResponse)
async def open_node_details(
    payload: NodeTargetRequest,
    store: EnvironmentStore = Depends(get_environment_store),
    manager: NodeDetailsPanelManager = Depends(get_panel_manager),
    window: WebHostWindow = Depends(get_window),
) -> NodeCommandResponse:
    target = await _command_target(payload, store)
    return NodeCommandResponse(accepted=await show_node_details(manager, window, target))


@router.post("/take-offline", response_model=NodeCommandResponse)
async def take_offline(
    payload: TakeNodeOfflineRequest,
    store: EnvironmentStore = Depends(get_environment_store),
    actions: NodeActionService = Depends(get_node_actions),
    window: WebHostWindow = Depends(get_window),
    refresh_host: WebRefreshHost = Depends(get_refresh_host),
) -> NodeCommandResponse:
    target = await _command_target(payload, store)
    accepted = await take_node_offline(actions, window, target, refresh_host, payload.reason)
    return NodeCommandResponse(accepted=accepted)


@router.post("/bring-online", response_model=NodeCommandResponse)
async def bring_online(
    payload: NodeTargetRequest,
    store: EnvironmentStore = Depends(get_environment_store),
    actions: NodeActionService = Depends(get_node_actions),
    window: WebHostWindow = Depends(get_window),
    refresh_host: WebRefreshHost = Depends(get_refresh_host),
) -> NodeCommandResponse:
    target = await _command_target(payload, store)
    return NodeCommandResponse(accepted=await bring_node_online(actions, window, target, refresh_host))


@router.post("/launch-agent", response_model=NodeCommandResponse)
async def launch_agent(
    payload: NodeTargetRequest,
    store: EnvironmentStore = Depends(get_environment_store),
    actions: NodeActionService = Depends(get_node_actions),
    window: WebHostWindow = Depends(get_window),
    refresh_host: WebRefreshHost = Depends(get_refresh_host),
) -> NodeCommandResponse:
    target = await _command_target(payload, store)
    return NodeCommandResponse(accepted=await launch_node_agent(actions, window, target, refresh_host))
