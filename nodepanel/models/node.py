from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel

Number = StrictInt | StrictFloat


class JenkinsModel(BaseModel):
    """Scalars are never coerced; a field of the wrong type becomes ``None`` instead of failing the model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    @field_validator("*", mode="wrap")
    @classmethod
    def _drop_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return None


class NodeLabel(JenkinsModel):
    name: StrictStr | None = None


class NodeOfflineCause(JenkinsModel):
    description: StrictStr | None = None
    short_description: StrictStr | None = None
    timestamp: Number | None = None
    name: StrictStr | None = None


class NodeExecutable(JenkinsModel):
    number: StrictInt | None = None
    url: StrictStr | None = None
    display_name: StrictStr | None = None
    full_display_name: StrictStr | None = None
    result: StrictStr | None = None
    timestamp: Number | None = None
    duration: Number | None = None
    estimated_duration: Number | None = None
    building: StrictBool | None = None


class NodeExecutor(JenkinsModel):
    number: StrictInt | None = None
    idle: StrictBool | None = None
    progress: Number | None = None
    current_executable: NodeExecutable | None = None
    current_work_unit: NodeExecutable | None = None


class NodeSummary(JenkinsModel):
    """One entry of the computer list, as shown in the node source list."""

    display_name: StrictStr | None = None
    name: StrictStr | None = None
    url: StrictStr | None = None
    offline: StrictBool | None = None
    temporarily_offline: StrictBool | None = None
    offline_cause_reason: StrictStr | None = None
    offline_cause: NodeOfflineCause | None = None
    num_executors: StrictInt | None = None
    busy_executors: StrictInt | None = None
    node_url: StrictStr | None = None


class NodeSnapshot(JenkinsModel):
    display_name: StrictStr | None = None
    name: StrictStr | None = None
    description: StrictStr | None = None
    url: StrictStr | None = None

    offline: StrictBool | None = None
    temporarily_offline: StrictBool | None = None
    idle: StrictBool | None = None
    offline_cause_reason: StrictStr | None = None
    offline_cause: NodeOfflineCause | None = None

    num_executors: StrictInt | None = None
    busy_executors: StrictInt | None = None

    launch_supported: StrictBool | None = None
    manual_launch_allowed: StrictBool | None = None
    jnlp_agent: StrictBool | None = None

    assigned_labels: list[NodeLabel] | None = None
    executors: list[NodeExecutor] | None = None
    one_off_executors: list[NodeExecutor] | None = None
    monitor_data: dict[str, Any] | None = None
    load_statistics: dict[str, Any] | None = None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
