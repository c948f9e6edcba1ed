from fastapi import APIRouter, Depends, HTTPException, status

from nodepanel.api.deps import get_data_service, get_environment_store
from nodepanel.core.errors import JenkinsActionError
from nodepanel.jenkins.client import JenkinsDataService
from nodepanel.models.environment import EnvironmentScope, EnvironmentWithScope, JenkinsEnvironment
from nodepanel.panels.state import find_environment_ref
from nodepanel.schemas.api import EnvironmentCreateRequest, EnvironmentListResponse, NodeListResponse
from nodepanel.storage.environment_store import EnvironmentStore

router = APIRouter(prefix="/environments", tags=["environments"])


@router.get("", response_model=EnvironmentListResponse)
async def list_environments(store: EnvironmentStore = Depends(get_environment_store)) -> EnvironmentListResponse:
    return EnvironmentListResponse(items=await store.list_environments_with_scope())


@router.post("", response_model=EnvironmentWithScope, status_code=status.HTTP_201_CREATED)
async def add_environment(
    payload: EnvironmentCreateRequest,
    store: EnvironmentStore = Depends(get_environment_store),
) -> EnvironmentWithScope:
    environment = JenkinsEnvironment(id=payload.id, url=payload.url.rstrip("/"), username=payload.username)
    await store.add_environment(payload.scope, environment)
    return EnvironmentWithScope(**environment.model_dump(), scope=payload.scope)


@router.delete("/{scope}/{environment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_environment(
    scope: EnvironmentScope,
    environment_id: str,
    store: EnvironmentStore = Depends(get_environment_store),
) -> None:
    if not await store.remove_environment(scope, environment_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown environment: {environment_id}")


@router.get("/{scope}/{environment_id}/nodes", response_model=NodeListResponse)
async def list_nodes(
    scope: EnvironmentScope,
    environment_id: str,
    store: EnvironmentStore = Depends(get_environment_store),
    data_service: JenkinsDataService = Depends(get_data_service),
) -> NodeListResponse:
    environment = await find_environment_ref(store, scope, environment_id)
    if environment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown environment: {environment_id}")
    try:
        nodes = await data_service.get_nodes(environment)
    except JenkinsActionError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return NodeListResponse(items=nodes)
