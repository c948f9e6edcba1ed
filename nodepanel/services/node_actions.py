from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from nodepanel.core.errors import format_action_error
from nodepanel.core.logging import get_logger
from nodepanel.jenkins.client import NodeLaunchResult, NodeOfflineToggleResult
from nodepanel.models.environment import EnvironmentRef
from nodepanel.panels.host import EnvironmentRefreshHost, HostWindow
from nodepanel.services.view_model_builder import resolve_offline_reason

logger = get_logger("nodepanel.services.node_actions")


@dataclass(frozen=True)
class NodeActionTarget:
    environment: EnvironmentRef
    node_url: str
    label: str


class NodeActionBackend(Protocol):
    async def set_node_temporarily_offline(
        self,
        environment: EnvironmentRef,
        node_url: str,
        target_offline: bool,
        reason: str | None = None,
    ) -> NodeOfflineToggleResult: ...

    async def launch_node_agent(self, environment: EnvironmentRef, node_url: str) -> NodeLaunchResult: ...


def _reason_suffix(result: NodeOfflineToggleResult | NodeLaunchResult) -> str:
    reason = resolve_offline_reason(result.details)
    return f" Reason: {reason}" if reason else ""


class NodeActionService:
    def __init__(self, data_service: NodeActionBackend, window: HostWindow) -> None:
        self._data_service = data_service
        self._window = window

    async def take_node_offline(
        self,
        target: NodeActionTarget,
        refresh_host: EnvironmentRefreshHost | None = None,
        reason: str | None = None,
    ) -> bool:
        if reason is None:
            reason = await self._window.show_input_box(
                f"Offline reason for {target.label} (optional)",
                "Why are you taking this node offline?",
            )
            if reason is None:
                return False
        trimmed = reason.strip() or None

        try:
            result = await self._data_service.set_node_temporarily_offline(
                target.environment, target.node_url, True, trimmed
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("node_take_offline_failed", extra={"node_url": target.node_url})
            await self._window.show_error_message(f"Failed to take {target.label} offline: {format_action_error(exc)}")
            return False

        if result.status == "toggled":
            if result.details.temporarily_offline:
                await self._window.show_information_message(f"Took {target.label} offline.")
            else:
                await self._window.show_information_message(
                    f"{target.label} did not enter a temporary offline state."
                )
            self._refresh(target, refresh_host)
            return True
        await self._window.show_information_message(f"{target.label} is already offline.")
        return False

    async def bring_node_online(
        self, target: NodeActionTarget, refresh_host: EnvironmentRefreshHost | None = None
    ) -> bool:
        try:
            result = await self._data_service.set_node_temporarily_offline(target.environment, target.node_url, False)
        except Exception as exc:  # noqa: BLE001
            logger.warning("node_bring_online_failed", extra={"node_url": target.node_url})
            await self._window.show_error_message(f"Failed to bring {target.label} online: {format_action_error(exc)}")
            return False

        if result.status == "toggled":
            if result.details.temporarily_offline:
                await self._window.show_information_message(
                    f"{target.label} is still temporarily offline. Use Jenkins to update its status."
                )
            elif result.details.offline:
                await self._window.show_information_message(
                    f"Cleared temporary offline for {target.label}, but it is still offline.{_reason_suffix(result)}"
                )
            else:
                await self._window.show_information_message(f"Brought {target.label} online.")
            self._refresh(target, refresh_host)
            return True
        if result.status == "not_temporarily_offline":
            await self._window.show_information_message(
                f"{target.label} is offline but not temporarily offline. "
                f"Use Jenkins to bring it online.{_reason_suffix(result)}"
            )
            return False
        await self._window.show_information_message(f"{target.label} is already online.")
        return False

    async def launch_node_agent(
        self, target: NodeActionTarget, refresh_host: EnvironmentRefreshHost | None = None
    ) -> bool:
        try:
            result = await self._data_service.launch_node_agent(target.environment, target.node_url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("node_launch_failed", extra={"node_url": target.node_url})
            await self._window.show_error_message(f"Failed to launch {target.label}: {format_action_error(exc)}")
            return False

        if result.status == "launched":
            if result.details.offline:
                await self._window.show_information_message(
                    f"Launch requested for {target.label}, but it is still offline.{_reason_suffix(result)}"
                )
            else:
                await self._window.show_information_message(f"Launched {target.label}.")
            self._refresh(target, refresh_host)
            return True
        if result.status == "not_launchable":
            if result.details.manual_launch_allowed:
                await self._window.show_information_message(
                    f"{target.label} requires a manual agent launch. Start the agent on the node or use Jenkins."
                )
            else:
                await self._window.show_information_message(
                    f"{target.label} does not support launching from Jenkins."
                )
            return False
        if result.status == "temporarily_offline":
            await self._window.show_information_message(
                f"{target.label} is temporarily offline. Bring it online before launching."
            )
            return False
        await self._window.show_information_message(f"{target.label} is already online.")
        return False

    def _refresh(self, target: NodeActionTarget, refresh_host: EnvironmentRefreshHost | None) -> None:
        if refresh_host is not None:
            refresh_host.refresh_environment(target.environment.environment_id)
