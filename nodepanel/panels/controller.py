from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from enum import StrEnum
import time
from typing import Any, Literal, Protocol
from urllib.parse import urlsplit

from nodepanel.core.errors import format_action_error
from nodepanel.core.logging import get_logger
from nodepanel.models.environment import EnvironmentRef
from nodepanel.models.node import NodeSnapshot
from nodepanel.models.view_model import NodeDetailsViewModel
from nodepanel.panels.host import Disposable, EnvironmentRefreshHost, HostWindow, PanelHost
from nodepanel.panels.messages import (
    CopyNodeJsonMessage,
    LoadAdvancedNodeDetailsMessage,
    NodeActionMessage,
    OpenExternalMessage,
    PanelMessage,
    RefreshNodeDetailsMessage,
    SetLoadingMessage,
    UpdateNodeDetailsMessage,
    parse_incoming_message,
)
from nodepanel.panels.renderer import (
    RenderOptions,
    create_nonce,
    render_loading_html,
    render_node_details_html,
    render_restore_error_html,
)
from nodepanel.panels.state import (
    EnvironmentSource,
    PanelIdentity,
    decode_panel_state,
    encode_panel_state,
    partial_panel_state,
    resolve_environment_ref,
)
from nodepanel.services.node_actions import NodeActionService, NodeActionTarget
from nodepanel.services.view_model_builder import build_node_details_view_model

logger = get_logger("nodepanel.panels.node_details")

NODE_DETAILS_VIEW_TYPE = "jenkinsWorkbench.nodeDetails"
DEFAULT_TITLE = "Node Details"


class DetailLevel(StrEnum):
    basic = "basic"
    advanced = "advanced"


class NodeDetailsSource(Protocol):
    async def get_node_details(
        self,
        environment: EnvironmentRef,
        node_url: str,
        *,
        mode: Literal["refresh"] | None = None,
        detail_level: str = "basic",
    ) -> NodeSnapshot: ...


class NodeDetailsPanelManager:
    """Owns the single live node details panel for the process."""

    def __init__(
        self,
        window: HostWindow,
        data_service: NodeDetailsSource,
        environment_store: EnvironmentSource,
        bundle_path: str,
        style_path: str,
        actions: NodeActionService | None = None,
        refresh_host: EnvironmentRefreshHost | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._window = window
        self._actions = actions
        self._refresh_host = refresh_host
        self._data_service = data_service
        self._environment_store = environment_store
        self._bundle_path = bundle_path
        self._style_path = style_path
        self._clock = clock
        self._current: NodeDetailsPanel | None = None

    @property
    def current(self) -> NodeDetailsPanel | None:
        return self._current

    async def show(self, environment: EnvironmentRef, node_url: str, label: str | None = None) -> NodeDetailsPanel:
        panel = self._current
        if panel is None:
            host_panel = self._window.create_panel(NODE_DETAILS_VIEW_TYPE, DEFAULT_TITLE)
            panel = self._attach(host_panel)
            logger.info("node_details_panel_created", extra={"node_url": node_url})

        panel.retarget(environment, node_url, label)
        panel.reveal()
        await panel.load()
        return panel

    async def revive(self, host_panel: PanelHost, state: object) -> NodeDetailsPanel:
        previous = self._current
        panel = self._attach(host_panel)
        if previous is not None and previous is not panel:
            previous.dispose()
            self._current = panel

        identity = decode_panel_state(state)
        if identity is None:
            logger.warning("node_details_restore_invalid_state", extra={"event": "panel.restore_failed"})
            await panel.render_restore_error(partial_panel_state(state))
            return panel

        environment = await resolve_environment_ref(self._environment_store, identity)
        if environment is None:
            logger.warning(
                "node_details_restore_missing_environment",
                extra={"environment_id": identity.environment_id, "event": "panel.restore_failed"},
            )
            await panel.render_restore_error(encode_panel_state(identity))
            return panel

        panel.retarget(environment, identity.node_url, None)
        await panel.load()
        return panel

    def _attach(self, host_panel: PanelHost) -> NodeDetailsPanel:
        panel = NodeDetailsPanel(
            host_panel,
            window=self._window,
            data_service=self._data_service,
            bundle_path=self._bundle_path,
            style_path=self._style_path,
            actions=self._actions,
            refresh_host=self._refresh_host,
            clock=self._clock,
            on_disposed=self._release,
        )
        if self._current is None:
            self._current = panel
        return panel

    def _release(self, panel: NodeDetailsPanel) -> None:
        if self._current is panel:
            self._current = None


class NodeDetailsPanel:
    def __init__(
        self,
        host_panel: PanelHost,
        *,
        window: HostWindow,
        data_service: NodeDetailsSource,
        bundle_path: str,
        style_path: str,
        actions: NodeActionService | None,
        refresh_host: EnvironmentRefreshHost | None,
        clock: Callable[[], float],
        on_disposed: Callable[[NodeDetailsPanel], None],
    ) -> None:
        self._panel = host_panel
        self._window = window
        self._data_service = data_service
        self._bundle_path = bundle_path
        self._style_path = style_path
        self._actions = actions
        self._refresh_host = refresh_host
        self._clock = clock
        self._on_disposed = on_disposed

        self._environment: EnvironmentRef | None = None
        self._node_url: str | None = None
        self._label: str | None = None
        self._last_details: NodeSnapshot | None = None
        self._load_token = 0
        self._has_rendered = False
        self._advanced_loaded = False
        self._advanced_pending = False
        self._nonce = create_nonce()
        self._disposed = False
        self._disposables: list[Disposable] = []

        self.register(host_panel.on_did_dispose(self.dispose))
        self.register(host_panel.on_did_receive_message(self.handle_message))

    @property
    def load_token(self) -> int:
        return self._load_token

    @property
    def advanced_loaded(self) -> bool:
        return self._advanced_loaded

    @property
    def has_rendered(self) -> bool:
        return self._has_rendered

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def identity(self) -> PanelIdentity | None:
        if self._environment is None or not self._node_url:
            return None
        return PanelIdentity.for_environment(self._environment, self._node_url)

    def register(self, disposable: Disposable) -> Disposable:
        self._disposables.append(disposable)
        return disposable

    def retarget(self, environment: EnvironmentRef, node_url: str, label: str | None) -> None:
        self._environment = environment
        self._node_url = node_url
        self._label = label
        self._panel.title = f"{DEFAULT_TITLE}: {label}" if label else DEFAULT_TITLE

    def reveal(self) -> None:
        self._panel.reveal()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._on_disposed(self)
        while self._disposables:
            self._disposables.pop().dispose()
        self._panel.dispose()

    async def handle_message(self, message: object) -> None:
        parsed = parse_incoming_message(message)
        if isinstance(parsed, RefreshNodeDetailsMessage):
            await self.refresh_details()
        elif isinstance(parsed, LoadAdvancedNodeDetailsMessage):
            await self.load_advanced_details()
        elif isinstance(parsed, OpenExternalMessage):
            await self.open_external_url(parsed.url)
        elif isinstance(parsed, CopyNodeJsonMessage):
            await self.copy_json(parsed.content)
        elif isinstance(parsed, NodeActionMessage):
            await self.run_node_action(parsed.type)
        else:
            logger.debug("node_details_message_ignored")

    async def load(self) -> None:
        self._load_token += 1
        token = self._load_token
        self._has_rendered = False
        self._nonce = create_nonce()
        self._last_details = None
        self._advanced_loaded = False
        self._advanced_pending = False

        panel_state = self._panel_state()
        await self._panel.set_html(render_loading_html(self._render_options(), panel_state))
        self._panel.persist_state(panel_state)

        model = await self._fetch_node_details(token, DetailLevel.basic)
        if model is None or not self._is_token_current(token):
            return

        panel_state = self._panel_state()
        await self._panel.set_html(
            render_node_details_html(model, self._render_options(include_script=True), panel_state)
        )
        self._panel.persist_state(panel_state)
        self._has_rendered = True

    async def refresh_details(self) -> None:
        if not self._has_rendered:
            await self.load()
            return
        detail_level = DetailLevel.advanced if self._advanced_loaded else DetailLevel.basic
        await self._refresh_details_with(detail_level)

    async def load_advanced_details(self) -> None:
        # The placeholder document has no script, so nothing can consume an update yet.
        if not self._has_rendered or self._advanced_loaded or self._advanced_pending:
            return
        self._advanced_pending = True
        try:
            await self._refresh_details_with(DetailLevel.advanced)
        finally:
            self._advanced_pending = False

    async def render_restore_error(self, panel_state: dict[str, Any] | None) -> None:
        self._load_token += 1
        self._has_rendered = False
        self._nonce = create_nonce()
        await self._panel.set_html(render_restore_error_html(self._render_options(), panel_state))
        self._panel.persist_state(panel_state)

    async def open_external_url(self, url: str) -> None:
        try:
            scheme = urlsplit(url).scheme.lower()
        except ValueError:
            return
        if scheme not in {"http", "https"}:
            logger.debug("node_details_external_url_rejected", extra={"event": "panel.open_external_rejected"})
            return
        await self._window.open_external(url)

    async def copy_json(self, content: str) -> None:
        try:
            await self._window.write_clipboard(content)
        except Exception as exc:  # noqa: BLE001
            logger.warning("node_details_copy_failed", extra={"node_url": self._node_url})
            detail = str(exc).strip() or "Unknown error"
            await self._window.show_error_message(f"Failed to copy node details: {detail}")
            return
        await self._window.show_information_message("Node details JSON copied to clipboard.")

    async def run_node_action(self, action: str) -> None:
        if self._actions is None or self._environment is None or not self._node_url:
            return
        target = NodeActionTarget(
            environment=self._environment,
            node_url=self._node_url,
            label=self._label or self._node_url,
        )
        handlers = {
            "takeNodeOffline": self._actions.take_node_offline,
            "bringNodeOnline": self._actions.bring_node_online,
            "launchNodeAgent": self._actions.launch_node_agent,
        }
        handler = handlers.get(action)
        if handler is None:
            return
        if await handler(target, self._refresh_host):
            await self.refresh_details()

    async def _refresh_details_with(self, detail_level: DetailLevel) -> None:
        self._load_token += 1
        token = self._load_token
        await self._post_message(SetLoadingMessage(value=True))
        model = await self._fetch_node_details(token, detail_level)
        if model is None or not self._is_token_current(token):
            return
        await self._post_message(UpdateNodeDetailsMessage(payload=model))
        await self._post_message(SetLoadingMessage(value=False))

    async def _fetch_node_details(self, token: int, detail_level: DetailLevel) -> NodeDetailsViewModel | None:
        environment = self._environment
        node_url = self._node_url
        if environment is None or not node_url:
            return None

        try:
            details = await self._data_service.get_node_details(
                environment, node_url, mode="refresh", detail_level=detail_level.value
            )
        except Exception as exc:  # noqa: BLE001
            if not self._is_token_current(token):
                return None
            logger.warning(
                "node_details_fetch_failed",
                extra={
                    "environment_id": environment.environment_id,
                    "node_url": node_url,
                    "detail_level": detail_level.value,
                    "error": str(exc),
                },
            )
            return self._build_model(self._last_details, [format_action_error(exc)])

        if not self._is_token_current(token):
            logger.debug("node_details_stale_result_dropped", extra={"node_url": node_url, "token": token})
            return None
        if detail_level is DetailLevel.advanced:
            self._advanced_loaded = True
        self._last_details = details
        return self._build_model(details, [])

    def _build_model(self, details: NodeSnapshot | None, errors: list[str]) -> NodeDetailsViewModel:
        now = self._clock()
        return build_node_details_view_model(
            details=details,
            errors=errors,
            updated_at=datetime.fromtimestamp(now, timezone.utc).isoformat(),
            fallback_url=self._node_url,
            advanced_loaded=self._advanced_loaded,
            now_ms=now * 1000,
        )

    async def _post_message(self, message: PanelMessage) -> None:
        await self._panel.post_message(message.to_wire())

    def _panel_state(self) -> dict[str, Any] | None:
        identity = self.identity
        return encode_panel_state(identity) if identity else None

    def _render_options(self, include_script: bool = False) -> RenderOptions:
        return RenderOptions(
            csp_source=self._panel.csp_source,
            nonce=self._nonce,
            style_uri=self._panel.as_webview_uri(self._style_path),
            script_uri=self._panel.as_webview_uri(self._bundle_path) if include_script else "",
        )

    def _is_token_current(self, token: int) -> bool:
        return not self._disposed and token == self._load_token
