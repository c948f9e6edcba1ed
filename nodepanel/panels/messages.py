from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from nodepanel.models.view_model import NodeDetailsViewModel


class PanelMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RefreshNodeDetailsMessage(PanelMessage):
    type: Literal["refreshNodeDetails"] = "refreshNodeDetails"


class LoadAdvancedNodeDetailsMessage(PanelMessage):
    type: Literal["loadAdvancedNodeDetails"] = "loadAdvancedNodeDetails"


class OpenExternalMessage(PanelMessage):
    type: Literal["openExternal"] = "openExternal"
    url: str = Field(strict=True)


class CopyNodeJsonMessage(PanelMessage):
    type: Literal["copyNodeJson"] = "copyNodeJson"
    content: str = Field(strict=True)


class TakeNodeOfflineMessage(PanelMessage):
    type: Literal["takeNodeOffline"] = "takeNodeOffline"


class BringNodeOnlineMessage(PanelMessage):
    type: Literal["bringNodeOnline"] = "bringNodeOnline"


class LaunchNodeAgentMessage(PanelMessage):
    type: Literal["launchNodeAgent"] = "launchNodeAgent"


NodeActionMessage = TakeNodeOfflineMessage | BringNodeOnlineMessage | LaunchNodeAgentMessage


class SetLoadingMessage(PanelMessage):
    type: Literal["setLoading"] = "setLoading"
    value: bool = Field(strict=True)


class UpdateNodeDetailsMessage(PanelMessage):
    type: Literal["updateNodeDetails"] = "updateNodeDetails"
    payload: NodeDetailsViewModel


NodeDetailsIncomingMessage = Annotated[
    RefreshNodeDetailsMessage
    | LoadAdvancedNodeDetailsMessage
    | OpenExternalMessage
    | CopyNodeJsonMessage
    | TakeNodeOfflineMessage
    | BringNodeOnlineMessage
    | LaunchNodeAgentMessage,
    Field(discriminator="type"),
]

NodeDetailsOutgoingMessage = Annotated[
    SetLoadingMessage | UpdateNodeDetailsMessage,
    Field(discriminator="type"),
]

_incoming_adapter: TypeAdapter[NodeDetailsIncomingMessage] = TypeAdapter(NodeDetailsIncomingMessage)


def parse_incoming_message(message: object) -> NodeDetailsIncomingMessage | None:
    """Validate a message from the presentation layer; anything malformed is ``None``."""
    if not isinstance(message, dict):
        return None
    try:
        return _incoming_adapter.validate_python(message)
    except ValidationError:
        return None


def is_refresh_node_details_message(message: object) -> bool:
    return isinstance(parse_incoming_message(message), RefreshNodeDetailsMessage)


def is_load_advanced_node_details_message(message: object) -> bool:
    return isinstance(parse_incoming_message(message), LoadAdvancedNodeDetailsMessage)


def is_open_external_message(message: object) -> bool:
    return isinstance(parse_incoming_message(message), OpenExternalMessage)


def is_copy_node_json_message(message: object) -> bool:
    return isinstance(parse_incoming_message(message), CopyNodeJsonMessage)
