from pydantic import Field

from nodepanel.models.environment import CamelModel, EnvironmentScope, EnvironmentWithScope
from nodepanel.models.node import NodeSummary


class EnvironmentCreateRequest(CamelModel):
    id: str = Field(min_length=1, max_length=200)
    url: str = Field(min_length=1)
    username: str | None = None
    scope: EnvironmentScope = "workspace"


class EnvironmentListResponse(CamelModel):
    items: list[EnvironmentWithScope]


class NodeListResponse(CamelModel):
    items: list[NodeSummary]


class NodeTargetRequest(CamelModel):
    environment_id: str = Field(min_length=1)
    scope: EnvironmentScope = "workspace"
    node_url: str | None = None
    label: str | None = None


class TakeNodeOfflineRequest(NodeTargetRequest):
    reason: str = ""


class NodeCommandResponse(CamelModel):
    accepted: bool
