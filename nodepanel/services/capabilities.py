from __future__ import annotations

from collections.abc import Mapping

from pydantic.alias_generators import to_camel

from nodepanel.models.view_model import NodeActionCapabilities


def _flag(source: object, name: str) -> object:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(to_camel(name), source.get(name))
    return getattr(source, name, None)


def build_node_action_capabilities(source: object = None) -> NodeActionCapabilities:
    """Derive which node actions are valid from the raw connectivity and launch flags.

    ``source`` may be a ``NodeSnapshot``, a raw mapping with camelCase keys, or
    ``None``. Only explicit ``True``/``False`` values count; anything else is
    treated as unknown.
    """
    offline = _flag(source, "offline")
    is_offline = offline is True
    is_temporarily_offline = _flag(source, "temporarily_offline") is True
    launch_supported = _flag(source, "launch_supported") is True
    manual_launch_allowed = _flag(source, "manual_launch_allowed") is True
    jnlp_agent = _flag(source, "jnlp_agent") is True

    # Unknown connectivity does not enable taking the node offline.
    can_take_offline = offline is False and not is_temporarily_offline
    can_bring_online = is_temporarily_offline
    can_launch_agent = is_offline and not is_temporarily_offline and launch_supported
    can_open_agent_instructions = (
        is_offline
        and not is_temporarily_offline
        and not launch_supported
        and (manual_launch_allowed or jnlp_agent)
    )

    return NodeActionCapabilities(
        is_offline=is_offline,
        is_temporarily_offline=is_temporarily_offline,
        can_take_offline=can_take_offline,
        can_bring_online=can_bring_online,
        can_launch_agent=can_launch_agent,
        can_open_agent_instructions=can_open_agent_instructions,
    )
