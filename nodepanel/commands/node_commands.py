from __future__ import annotations

from dataclasses import dataclass

from nodepanel.core.errors import format_action_error
from nodepanel.core.logging import get_logger
from nodepanel.models.environment import EnvironmentRef
from nodepanel.models.node import NodeSummary
from nodepanel.panels.controller import NodeDetailsPanelManager
from nodepanel.panels.host import EnvironmentRefreshHost, HostWindow
from nodepanel.services.node_actions import NodeActionService, NodeActionTarget

logger = get_logger("nodepanel.commands.node")

MISSING_NODE_URL_MESSAGE = "That node does not expose a stable URL in the Jenkins API."


@dataclass(frozen=True)
class NodeTreeItem:
    """A node as selected in the node list; ``node_url`` is absent for nodes Jenkins cannot address."""

    environment: EnvironmentRef
    label: str
    node_url: str | None = None

    @classmethod
    def from_summary(cls, environment: EnvironmentRef, node: NodeSummary) -> NodeTreeItem:
        return cls(environment=environment, label=node.display_name or node.name or "node", node_url=node.node_url)


@dataclass(frozen=True)
class NodeCommandTarget:
    """A target rebuilt outside the node list, e.g. from an HTTP request."""

    environment: EnvironmentRef
    node_url: str | None
    label: str | None = None


NodeCommandItem = NodeTreeItem | NodeCommandTarget


async def resolve_node_action_target(
    item: NodeCommandItem | None, action_label: str, window: HostWindow
) -> NodeActionTarget | None:
    if item is None:
        await window.show_information_message(f"Select a node to {action_label}.")
        return None
    node_url = (item.node_url or "").strip()
    if not node_url:
        await window.show_information_message(MISSING_NODE_URL_MESSAGE)
        return None
    label = (item.label or "").strip() or node_url
    return NodeActionTarget(environment=item.environment, node_url=node_url, label=label)


async def show_node_details(
    manager: NodeDetailsPanelManager, window: HostWindow, item: NodeCommandItem | None = None
) -> bool:
    target = await resolve_node_action_target(item, "view details", window)
    if target is None:
        return False
    try:
        await manager.show(target.environment, target.node_url, target.label)
    except Exception as exc:  # noqa: BLE001
        logger.warning("show_node_details_failed", extra={"node_url": target.node_url})
        await window.show_error_message(f"Unable to open node details: {format_action_error(exc)}")
        return False
    return True


async def take_node_offline(
    actions: NodeActionService,
    window: HostWindow,
    item: NodeCommandItem | None = None,
    refresh_host: EnvironmentRefreshHost | None = None,
    reason: str | None = None,
) -> bool:
    target = await resolve_node_action_target(item, "take offline", window)
    if target is None:
        return False
    return await actions.take_node_offline(target, refresh_host, reason)


async def bring_node_online(
    actions: NodeActionService,
    window: HostWindow,
    item: NodeCommandItem | None = None,
    refresh_host: EnvironmentRefreshHost | None = None,
) -> bool:
    target = await resolve_node_action_target(item, "bring online", window)
    if target is None:
        return False
    return await actions.bring_node_online(target, refresh_host)


async def launch_node_agent(
    actions: NodeActionService,
    window: HostWindow,
    item: NodeCommandItem | None = None,
    refresh_host: EnvironmentRefreshHost | None = None,
) -> bool:
    target = await resolve_node_action_target(item, "launch", window)
    if target is None:
        return False
    return await actions.launch_node_agent(target, refresh_host)
