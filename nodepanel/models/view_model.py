from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class NodeStatusClass(StrEnum):
    online = "online"
    offline = "offline"
    idle = "idle"
    temporary = "temporary"
    unknown = "unknown"


class ViewModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class NodeActionCapabilities(ViewModel):
    is_offline: bool
    is_temporarily_offline: bool
    can_take_offline: bool
    can_bring_online: bool
    can_launch_agent: bool
    can_open_agent_instructions: bool


class NodeExecutorViewModel(ViewModel):
    id: str
    status_label: str
    is_idle: bool
    progress_percent: int | None = None
    progress_label: str | None = None
    work_label: str | None = None
    work_url: str | None = None
    work_duration_label: str | None = None
    work_duration_ms: float | None = None


class NodeMonitorViewModel(ViewModel):
    key: str
    summary: str
    raw: Any = None


class NodeDetailsViewModel(ViewModel):
    display_name: str
    name: str
    description: str | None = None
    url: str | None = None
    updated_at: str
    status_label: str
    status_class: NodeStatusClass
    can_take_offline: bool = False
    can_bring_online: bool = False
    can_launch_agent: bool = False
    can_open_agent_instructions: bool = False
    offline_reason: str | None = None
    idle_label: str
    executors_label: str
    labels: tuple[str, ...] = ()
    jnlp_agent_label: str | None = None
    launch_supported_label: str | None = None
    manual_launch_label: str | None = None
    executors: tuple[NodeExecutorViewModel, ...] = ()
    one_off_executors: tuple[NodeExecutorViewModel, ...] = ()
    monitor_data: tuple[NodeMonitorViewModel, ...] = ()
    load_statistics: tuple[NodeMonitorViewModel, ...] = ()
    raw_json: str = ""
    errors: tuple[str, ...] = ()
    advanced_loaded: bool = False

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
