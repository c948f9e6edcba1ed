from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

MessageHandler = Callable[[object], Awaitable[None]]


class Disposable:
    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback: Callable[[], None] | None = callback

    def dispose(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class PanelHost(Protocol):
    """A host-owned panel surface that displays one document and relays messages."""

    title: str

    @property
    def csp_source(self) -> str: ...

    def as_webview_uri(self, relative_path: str) -> str: ...

    async def set_html(self, html: str) -> None: ...

    async def post_message(self, message: dict[str, Any]) -> bool: ...

    def persist_state(self, state: dict[str, Any] | None) -> None: ...

    def reveal(self) -> None: ...

    def on_did_dispose(self, callback: Callable[[], None]) -> Disposable: ...

    def on_did_receive_message(self, handler: MessageHandler) -> Disposable: ...

    def dispose(self) -> None: ...


class HostWindow(Protocol):
    """Host services outside a single panel: panel creation, notifications and OS integration."""

    def create_panel(self, view_type: str, title: str) -> PanelHost: ...

    async def show_information_message(self, message: str) -> None: ...

    async def show_error_message(self, message: str) -> None: ...

    async def show_input_box(self, prompt: str, placeholder: str = "") -> str | None: ...

    async def open_external(self, url: str) -> bool: ...

    async def write_clipboard(self, text: str) -> None: ...


class EnvironmentRefreshHost(Protocol):
    def refresh_environment(self, environment_id: str) -> None: ...
