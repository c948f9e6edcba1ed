from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
import math
import time
from typing import Any

import orjson

from nodepanel.formatters.duration import format_duration_ms
from nodepanel.models.node import NodeExecutable, NodeExecutor, NodeSnapshot
from nodepanel.models.view_model import (
    NodeDetailsViewModel,
    NodeExecutorViewModel,
    NodeMonitorViewModel,
    NodeStatusClass,
)
from nodepanel.services.capabilities import build_node_action_capabilities

UNKNOWN_LABEL = "Not available"
ESTIMATE_PREFIX = "Est. "

MONITOR_TEXT_KEYS = ("message", "status", "state", "description", "name")
MONITOR_NUMBER_KEYS = ("size", "count", "total")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_node_details_view_model(
    details: NodeSnapshot | None = None,
    errors: Iterable[str] = (),
    updated_at: str | None = None,
    fallback_url: str | None = None,
    advanced_loaded: bool = False,
    now_ms: float | None = None,
) -> NodeDetailsViewModel:
    """Project a raw node snapshot into the model the panel renders.

    A missing snapshot produces an "unknown" shell carrying only the errors
    and the fallback URL, which is what a failed first load renders.
    """
    if now_ms is None:
        now_ms = time.time() * 1000
    status_label, status_class = classify_status(details)
    capabilities = build_node_action_capabilities(details)

    return NodeDetailsViewModel(
        display_name=_first_text(
            lambda: details.display_name if details else None,
            lambda: details.name if details else None,
        )
        or "Node Details",
        name=_first_text(
            lambda: details.name if details else None,
            lambda: details.display_name if details else None,
        )
        or "Unknown",
        description=_clean_text(details.description) if details else None,
        url=(details.url if details and details.url else None) or fallback_url,
        updated_at=updated_at or utc_now_iso(),
        status_label=status_label,
        status_class=status_class,
        can_take_offline=capabilities.can_take_offline,
        can_bring_online=capabilities.can_bring_online,
        can_launch_agent=capabilities.can_launch_agent,
        can_open_agent_instructions=capabilities.can_open_agent_instructions,
        offline_reason=resolve_offline_reason(details),
        idle_label=_format_idle(details),
        executors_label=_format_executors_summary(details),
        labels=_format_labels(details),
        jnlp_agent_label=_format_boolean(details.jnlp_agent if details else None),
        launch_supported_label=_format_boolean(details.launch_supported if details else None),
        manual_launch_label=_format_boolean(details.manual_launch_allowed if details else None),
        executors=build_executors(details.executors if details else None, "Executor", now_ms),
        one_off_executors=build_executors(details.one_off_executors if details else None, "One-off", now_ms),
        monitor_data=build_monitor_entries(details.monitor_data if details else None),
        load_statistics=build_monitor_entries(details.load_statistics if details else None),
        raw_json=format_raw_json(details),
        errors=tuple(errors),
        advanced_loaded=advanced_loaded,
    )


def classify_status(details: NodeSnapshot | None) -> tuple[str, NodeStatusClass]:
    if details is None:
        return "Unknown", NodeStatusClass.unknown
    if details.offline is True:
        if details.temporarily_offline is True:
            return "Temporarily Offline", NodeStatusClass.temporary
        return "Offline", NodeStatusClass.offline
    if details.idle is True:
        return "Idle", NodeStatusClass.idle
    if details.offline is False:
        return "Online", NodeStatusClass.online
    return "Unknown", NodeStatusClass.unknown


def resolve_offline_reason(details: NodeSnapshot | None) -> str | None:
    if details is None:
        return None
    cause = details.offline_cause
    return _first_text(
        lambda: details.offline_cause_reason,
        lambda: cause.description if cause else None,
        lambda: cause.short_description if cause else None,
    )


def format_raw_json(details: NodeSnapshot | None) -> str:
    if details is None:
        return ""
    return orjson.dumps(details.to_json_dict(), option=orjson.OPT_INDENT_2).decode("utf-8")


def _format_idle(details: NodeSnapshot | None) -> str:
    if details is None:
        return UNKNOWN_LABEL
    if details.idle is True:
        return "Idle"
    if details.idle is False:
        return "Busy"
    return UNKNOWN_LABEL


def _format_executors_summary(details: NodeSnapshot | None) -> str:
    total = details.num_executors if details else None
    busy = details.busy_executors if details else None
    if _is_finite_number(total) and _is_finite_number(busy):
        return f"Busy {busy}/{total}"
    if _is_finite_number(total):
        return f"{total} total"
    return UNKNOWN_LABEL


def _format_labels(details: NodeSnapshot | None) -> tuple[str, ...]:
    labels = (details.assigned_labels if details else None) or []
    return tuple(label for label in (_clean_text(item.name) for item in labels) if label)


def _format_boolean(value: bool | None) -> str | None:
    if value is None:
        return None
    return "Yes" if value else "No"


def build_executors(
    executors: Sequence[NodeExecutor] | None, label_prefix: str, now_ms: float
) -> tuple[NodeExecutorViewModel, ...]:
    if not executors:
        return ()
    return tuple(
        build_executor_view_model(executor, f"{label_prefix} {index}", now_ms)
        for index, executor in enumerate(executors, start=1)
    )


def build_executor_view_model(executor: NodeExecutor, fallback_label: str, now_ms: float) -> NodeExecutorViewModel:
    executor_id = f"#{executor.number}" if _is_finite_number(executor.number) else fallback_label
    work = executor.current_executable or executor.current_work_unit
    is_idle = work is None and executor.idle is not False
    progress_percent = _progress_percent(executor.progress)
    duration = resolve_work_duration(work, now_ms)

    duration_ms: float | None = None
    duration_label: str | None = None
    if duration is not None:
        duration_ms, estimated = duration
        duration_label = format_duration_ms(duration_ms)
        if estimated:
            duration_label = f"{ESTIMATE_PREFIX}{duration_label}"

    return NodeExecutorViewModel(
        id=executor_id,
        status_label="Idle" if is_idle else "Busy",
        is_idle=is_idle,
        progress_percent=progress_percent,
        progress_label=f"{progress_percent}%" if progress_percent is not None else None,
        work_label=format_work_label(work),
        work_url=work.url if work else None,
        work_duration_label=duration_label,
        work_duration_ms=duration_ms,
    )


def format_work_label(work: NodeExecutable | None) -> str | None:
    if work is None:
        return None
    name = _first_text(
        lambda: work.full_display_name,
        lambda: work.display_name,
        lambda: f"#{work.number}" if _is_finite_number(work.number) else None,
        lambda: work.url,
    )
    result = _clean_text(work.result)
    if name and result:
        return f"{name} ({result})"
    return name


def resolve_work_duration(work: NodeExecutable | None, now_ms: float) -> tuple[float, bool] | None:
    """Return ``(milliseconds, is_estimate)`` for the executor's current work item."""
    if work is None:
        return None
    building = work.building is True
    duration = work.duration
    if _is_finite_number(duration) and duration >= 0 and (duration > 0 or not building):
        return float(duration), False
    timestamp = work.timestamp
    if building and _is_finite_number(timestamp) and timestamp >= 0:
        return max(0.0, float(now_ms) - float(timestamp)), False
    estimated = work.estimated_duration
    if _is_finite_number(estimated) and estimated > 0:
        return float(estimated), True
    return None


def _progress_percent(progress: object) -> int | None:
    if not _is_finite_number(progress):
        return None
    return max(0, min(100, math.floor(progress)))


def build_monitor_entries(data: Mapping[str, Any] | None) -> tuple[NodeMonitorViewModel, ...]:
    if not isinstance(data, Mapping):
        return ()
    return tuple(
        NodeMonitorViewModel(key=key, summary=summarize_monitor_value(value), raw=value) for key, value in data.items()
    )


def summarize_monitor_value(value: object) -> str:
    if value is None:
        return UNKNOWN_LABEL
    if isinstance(value, (str, bool, int, float)):
        return _stringify_primitive(value)
    if isinstance(value, (list, tuple)):
        return f"{len(value)} items" if value else "Empty list"
    if isinstance(value, Mapping):
        candidate = _pick_text(value, MONITOR_TEXT_KEYS) or _pick_number(value, MONITOR_NUMBER_KEYS)
        if candidate:
            return candidate
        return f"{len(value)} fields" if value else "Empty object"
    return UNKNOWN_LABEL


def _pick_text(record: Mapping[str, Any], keys: Iterable[str]) -> str | None:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _pick_number(record: Mapping[str, Any], keys: Iterable[str]) -> str | None:
    for key in keys:
        value = record.get(key)
        if _is_finite_number(value):
            return _stringify_primitive(value)
    return None


def _stringify_primitive(value: str | bool | int | float) -> str:
    # Match how the values appear in the upstream JSON.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _clean_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _first_text(*candidates: Callable[[], object]) -> str | None:
    for candidate in candidates:
        value = _clean_text(candidate())
        if value:
            return value
    return None
