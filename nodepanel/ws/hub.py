from __future__ import annotations

import asyncio
from collections.abc import Callable
import json
import logging
from pathlib import Path
from typing import Any
import webbrowser

from fastapi import WebSocket

from nodepanel.panels.host import Disposable, MessageHandler


class PanelSocketHub:
    """Fans host events out to every browser connected to a panel channel."""

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._channels.setdefault(channel, set()).add(websocket)

    async def disconnect(self, channel: str, websocket: WebSocket) -> None:
        async with self._lock:
            clients = self._channels.get(channel)
            if not clients:
                return
            clients.discard(websocket)
            if not clients:
                self._channels.pop(channel, None)

    def connection_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def broadcast(self, channel: str, payload: dict[str, Any]) -> int:
        async with self._lock:
            clients = list(self._channels.get(channel, set()))
        delivered = 0
        stale: list[WebSocket] = []
        for client in clients:
            try:
                await client.send_json(payload)
                delivered += 1
            except Exception:  # noqa: BLE001
                stale.append(client)
        for client in stale:
            await self.disconnect(channel, client)
        return delivered


class WebPanelHost:
    """A panel whose document is served over HTTP and whose messages travel over a websocket."""

    def __init__(
        self,
        hub: PanelSocketHub,
        view_type: str,
        title: str,
        state_path: Path,
        logger: logging.Logger,
        asset_base: str = "/",
    ) -> None:
        self._hub = hub
        self.view_type = view_type
        self.title = title
        self._state_path = state_path
        self._logger = logger
        self._asset_base = asset_base.rstrip("/") + "/"
        self._html = ""
        self._dispose_callbacks: list[Callable[[], None]] = []
        self._message_handlers: list[MessageHandler] = []
        self._disposed = False

    @property
    def channel(self) -> str:
        return self.view_type

    @property
    def html(self) -> str:
        return self._html

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def csp_source(self) -> str:
        return "'self'"

    def as_webview_uri(self, relative_path: str) -> str:
        return f"{self._asset_base}{relative_path.lstrip('/')}"

    async def set_html(self, html: str) -> None:
        self._html = html
        await self._hub.broadcast(self.channel, {"event": "document_changed", "title": self.title})

    async def post_message(self, message: dict[str, Any]) -> bool:
        delivered = await self._hub.broadcast(self.channel, {"event": "panel_message", "message": message})
        return delivered > 0

    def persist_state(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self._state_path.parent.mkdir(parents=True, exist_ok=True)
        self._state_path.write_text(json.dumps(state, indent=2, sort_keys=True), encoding="utf-8")

    def reveal(self) -> None:
        self._logger.debug("panel_revealed", extra={"event": "panel.revealed"})

    def on_did_dispose(self, callback: Callable[[], None]) -> Disposable:
        self._dispose_callbacks.append(callback)
        return Disposable(lambda: self._remove(self._dispose_callbacks, callback))

    def on_did_receive_message(self, handler: MessageHandler) -> Disposable:
        self._message_handlers.append(handler)
        return Disposable(lambda: self._remove(self._message_handlers, handler))

    async def dispatch(self, message: object) -> None:
        for handler in list(self._message_handlers):
            await handler(message)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        for callback in list(self._dispose_callbacks):
            callback()
        self._dispose_callbacks.clear()
        self._message_handlers.clear()
        self._html = ""
        # A closed panel is not restored on the next start.
        self._state_path.unlink(missing_ok=True)

    @staticmethod
    def _remove(items: list[Any], item: Any) -> None:
        if item in items:
            items.remove(item)


class WebHostWindow:
    """Host services for the web panel: notifications and clipboard are relayed to connected browsers."""

    def __init__(
        self,
        hub: PanelSocketHub,
        state_path: Path,
        logger: logging.Logger,
        asset_base: str = "/",
        host_channel: str = "host",
    ) -> None:
        self._hub = hub
        self._state_path = state_path
        self._logger = logger
        self._asset_base = asset_base
        self.host_channel = host_channel
        self.panels: dict[str, WebPanelHost] = {}

    def create_panel(self, view_type: str, title: str) -> WebPanelHost:
        existing = self.panels.get(view_type)
        if existing is not None and not existing.disposed:
            existing.dispose()
        panel = WebPanelHost(self._hub, view_type, title, self._state_path, self._logger, self._asset_base)
        self.panels[view_type] = panel
        return panel

    def panel(self, view_type: str) -> WebPanelHost | None:
        panel = self.panels.get(view_type)
        if panel is None or panel.disposed:
            return None
        return panel

    def load_persisted_state(self) -> object:
        if not self._state_path.exists():
            return None
        try:
            return json.loads(self._state_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            self._logger.warning("panel_state_invalid", extra={"path": str(self._state_path)})
            return None

    async def show_information_message(self, message: str) -> None:
        self._logger.info(message, extra={"event": "host.notification"})
        await self._hub.broadcast(self.host_channel, {"event": "notification", "level": "info", "message": message})

    async def show_error_message(self, message: str) -> None:
        self._logger.warning(message, extra={"event": "host.notification"})
        await self._hub.broadcast(self.host_channel, {"event": "notification", "level": "error", "message": message})

    async def show_input_box(self, prompt: str, placeholder: str = "") -> str | None:
        # No interactive prompt is available over the relay; callers pass values explicitly.
        self._logger.debug("input_box_unavailable", extra={"prompt": prompt, "placeholder": placeholder})
        return ""

    async def open_external(self, url: str) -> bool:
        return await asyncio.to_thread(webbrowser.open, url)

    async def write_clipboard(self, text: str) -> None:
        delivered = await self._hub.broadcast(self.host_channel, {"event": "clipboard", "text": text})
        if delivered == 0:
            raise RuntimeError("No connected client can receive clipboard content")


class WebRefreshHost:
    """Tells connected node lists to reload an environment after a node action."""

    def __init__(self, hub: PanelSocketHub, host_channel: str = "host") -> None:
        self._hub = hub
        self._host_channel = host_channel
        self._tasks: set[asyncio.Task[int]] = set()

    def refresh_environment(self, environment_id: str) -> None:
        task = asyncio.get_running_loop().create_task(
            self._hub.broadcast(self._host_channel, {"event": "environment_refresh", "environmentId": environment_id})
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
