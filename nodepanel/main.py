import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import sys

from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
import orjson

from nodepanel.api.deps import get_hub, get_window
from nodepanel.api.routes import environments_router, nodes_router, panels_router
from nodepanel.core.config import get_settings
from nodepanel.core.logging import configure_logging, get_logger
from nodepanel.jenkins.client import JenkinsDataService
from nodepanel.panels.controller import DEFAULT_TITLE, NODE_DETAILS_VIEW_TYPE, NodeDetailsPanelManager
from nodepanel.services.node_actions import NodeActionService
from nodepanel.storage.environment_store import EnvironmentStore
from nodepanel.ws.hub import PanelSocketHub, WebHostWindow, WebRefreshHost

logger = get_logger("nodepanel.main")

if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


async def restore_panel(app: FastAPI) -> None:
    window: WebHostWindow = app.state.window
    state = window.load_persisted_state()
    if state is None:
        return
    host_panel = window.create_panel(NODE_DETAILS_VIEW_TYPE, DEFAULT_TITLE)
    await app.state.panel_manager.revive(host_panel, state)
    logger.info("node_details_panel_restored", extra={"event": "panel.restored"})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level, settings.app_name)

    environment_store = EnvironmentStore(settings.state_dir, get_logger("nodepanel.storage.environments"))
    data_service = JenkinsDataService(
        timeout=settings.request_timeout_sec,
        logger=get_logger("nodepanel.jenkins.client"),
        cache_ttl_sec=settings.node_cache_ttl_sec,
    )
    ws_hub = PanelSocketHub()
    window = WebHostWindow(ws_hub, settings.panel_state_path, get_logger("nodepanel.ws.host"))
    refresh_host = WebRefreshHost(ws_hub, window.host_channel)
    node_actions = NodeActionService(data_service, window)
    panel_manager = NodeDetailsPanelManager(
        window,
        data_service,
        environment_store,
        bundle_path=settings.webview_bundle_path,
        style_path=settings.webview_style_path,
        actions=node_actions,
        refresh_host=refresh_host,
    )

    app.state.settings = settings
    app.state.environment_store = environment_store
    app.state.data_service = data_service
    app.state.ws_hub = ws_hub
    app.state.window = window
    app.state.refresh_host = refresh_host
    app.state.node_actions = node_actions
    app.state.panel_manager = panel_manager

    app.state.restore_task = asyncio.create_task(restore_panel(app))
    logger.info("service_started", extra={"event": "service.started"})

    try:
        yield
    finally:
        app.state.restore_task.cancel()
        try:
            await app.state.restore_task
        except asyncio.CancelledError:
            pass
        await data_service.close()
        logger.info("service_stopped", extra={"event": "service.stopped"})


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(environments_router, prefix=settings.api_v1_prefix)
app.include_router(nodes_router, prefix=settings.api_v1_prefix)
app.include_router(panels_router, prefix=settings.api_v1_prefix)
app.mount("/static", StaticFiles(directory=settings.static_dir, check_dir=False), name="static")


@app.get("/healthz")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.websocket("/ws/panels/node-details")
async def node_details_messages(
    websocket: WebSocket,
    hub: PanelSocketHub = Depends(get_hub),
    window: WebHostWindow = Depends(get_window),
) -> None:
    await hub.connect(NODE_DETAILS_VIEW_TYPE, websocket)
    pending: set[asyncio.Task[None]] = set()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = orjson.loads(raw)
            except orjson.JSONDecodeError:
                logger.debug("panel_message_invalid_json", extra={"event": "panel.message_rejected"})
                continue
            panel = window.panel(NODE_DETAILS_VIEW_TYPE)
            if panel is None:
                continue
            # Messages run concurrently so a refresh can supersede a slow load.
            task = asyncio.create_task(panel.dispatch(message))
            pending.add(task)
            task.add_done_callback(pending.discard)
    except WebSocketDisconnect:
        await hub.disconnect(NODE_DETAILS_VIEW_TYPE, websocket)


@app.websocket("/ws/host")
async def host_events(
    websocket: WebSocket,
    hub: PanelSocketHub = Depends(get_hub),
    window: WebHostWindow = Depends(get_window),
) -> None:
    await hub.connect(window.host_channel, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(window.host_channel, websocket)
