import orjson

from nodepanel.models.node import NodeExecutor, NodeSnapshot
from nodepanel.models.view_model import NodeStatusClass
from nodepanel.services.capabilities import build_node_action_capabilities
from nodepanel.services.view_model_builder import (
    build_executor_view_model,
    build_node_details_view_model,
    classify_status,
    resolve_offline_reason,
    summarize_monitor_value,
)
from tests.fakes import NODE_URL, make_snapshot

NOW_MS = 1_700_000_000_000
UPDATED_AT = "2024-01-01T00:00:00+00:00"


def build(details=None, **kwargs):
    kwargs.setdefault("updated_at", UPDATED_AT)
    kwargs.setdefault("now_ms", NOW_MS)
    return build_node_details_view_model(details, **kwargs)


def executor(**data):
    return NodeExecutor.model_validate(data)


def test_missing_snapshot_builds_unknown_shell():
    model = build(None, errors=["status=503"], fallback_url=NODE_URL)

    assert model.status_class is NodeStatusClass.unknown
    assert model.status_label == "Unknown"
    assert model.executors == ()
    assert model.one_off_executors == ()
    assert model.raw_json == ""
    assert model.url == NODE_URL
    assert model.errors == ("status=503",)
    assert model.display_name == "Node Details"
    assert model.name == "Unknown"
    assert model.idle_label == "Not available"
    assert model.executors_label == "Not available"


def test_temporarily_offline_node():
    model = build(make_snapshot(offline=True, temporarilyOffline=True))

    assert model.status_class is NodeStatusClass.temporary
    assert model.status_label == "Temporarily Offline"
    assert model.can_bring_online is True
    assert model.can_take_offline is False


def test_status_precedence():
    assert classify_status(make_snapshot(offline=True, temporarilyOffline=False)) == ("Offline", NodeStatusClass.offline)
    assert classify_status(make_snapshot(idle=True)) == ("Idle", NodeStatusClass.idle)
    assert classify_status(make_snapshot(idle=False)) == ("Online", NodeStatusClass.online)
    assert classify_status(make_snapshot(offline=None, idle=None)) == ("Unknown", NodeStatusClass.unknown)


def test_building_work_duration_comes_from_timestamp():
    item = executor(
        number=0,
        idle=False,
        currentExecutable={"fullDisplayName": "app #12", "building": True, "timestamp": NOW_MS - 5000},
    )
    model = build_executor_view_model(item, "Executor 1", NOW_MS)

    assert model.work_duration_ms == 5000
    assert model.work_duration_label == "5s"
    assert not model.work_duration_label.startswith("Est.")
    assert model.status_label == "Busy"
    assert model.is_idle is False


def test_estimated_duration_is_prefixed():
    item = executor(number=1, currentWorkUnit={"displayName": "queued", "estimatedDuration": 120000})
    model = build_executor_view_model(item, "Executor 2", NOW_MS)

    assert model.work_duration_ms == 120000
    assert model.work_duration_label == "Est. 2m"


def test_finished_duration_wins_over_timestamp():
    item = executor(currentExecutable={"building": False, "duration": 1500, "timestamp": NOW_MS - 99_000})
    assert build_executor_view_model(item, "Executor 1", NOW_MS).work_duration_ms == 1500


def test_executor_ids_fall_back_to_position():
    details = make_snapshot(executors=[{"idle": True}, {"number": 4, "idle": True}], oneOffExecutors=[{"idle": True}])
    model = build(details)

    assert [item.id for item in model.executors] == ["Executor 1", "#4"]
    assert [item.id for item in model.one_off_executors] == ["One-off 1"]
    assert all(item.status_label == "Idle" for item in model.executors)


def test_progress_is_clamped_and_floored():
    assert build_executor_view_model(executor(progress=42.9), "E", NOW_MS).progress_label == "42%"
    assert build_executor_view_model(executor(progress=250), "E", NOW_MS).progress_percent == 100
    assert build_executor_view_model(executor(progress=-3), "E", NOW_MS).progress_percent == 0
    assert build_executor_view_model(executor(), "E", NOW_MS).progress_label is None


def test_work_label_includes_result():
    item = executor(currentExecutable={"fullDisplayName": "app #3", "result": "SUCCESS", "url": "https://j/job/app/3/"})
    model = build_executor_view_model(item, "E", NOW_MS)

    assert model.work_label == "app #3 (SUCCESS)"
    assert model.work_url == "https://j/job/app/3/"


def test_offline_reason_order():
    assert resolve_offline_reason(make_snapshot(offlineCauseReason="  ", offlineCause={"description": "Disk full"})) == (
        "Disk full"
    )
    assert resolve_offline_reason(make_snapshot(offlineCause={"shortDescription": "Lost connection"})) == (
        "Lost connection"
    )
    assert resolve_offline_reason(make_snapshot()) is None


def test_summaries_and_labels():
    details = make_snapshot(
        idle=False,
        numExecutors=4,
        busyExecutors=3,
        jnlpAgent=True,
        launchSupported=False,
        assignedLabels=[{"name": "linux"}, {"name": " "}, {"name": "docker"}],
        description="  Build agent  ",
    )
    model = build(details)

    assert model.idle_label == "Busy"
    assert model.executors_label == "Busy 3/4"
    assert model.labels == ("linux", "docker")
    assert model.jnlp_agent_label == "Yes"
    assert model.launch_supported_label == "No"
    assert model.manual_launch_label is None
    assert model.description == "Build agent"


def test_executors_summary_without_busy_count():
    assert build(make_snapshot(busyExecutors=None)).executors_label == "2 total"


def test_monitor_summaries():
    assert summarize_monitor_value(None) == "Not available"
    assert summarize_monitor_value(True) == "true"
    assert summarize_monitor_value(12.0) == "12"
    assert summarize_monitor_value([]) == "Empty list"
    assert summarize_monitor_value([1, 2]) == "2 items"
    assert summarize_monitor_value({}) == "Empty object"
    assert summarize_monitor_value({"status": " ok "}) == "ok"
    assert summarize_monitor_value({"size": 1024.0, "path": "/tmp"}) == "1024"
    assert summarize_monitor_value({"a": [1], "b": {}}) == "2 fields"


def test_monitor_entries_keep_raw_values():
    model = build(make_snapshot(monitorData={"hudson.node_monitors.ArchitectureMonitor": "Linux (amd64)"}))
    entry = model.monitor_data[0]

    assert entry.key == "hudson.node_monitors.ArchitectureMonitor"
    assert entry.summary == "Linux (amd64)"
    assert entry.raw == "Linux (amd64)"


def test_raw_json_is_pretty_printed_snapshot():
    details = make_snapshot(customField={"x": 1})
    model = build(details)

    assert model.raw_json.startswith("{\n  ")
    assert orjson.loads(model.raw_json) == details.to_json_dict()
    assert orjson.loads(model.raw_json)["customField"] == {"x": 1}


def test_payload_uses_camel_case_and_drops_absent_fields():
    payload = build(make_snapshot(), advanced_loaded=True).to_payload()

    assert payload["statusClass"] == "idle"
    assert payload["advancedLoaded"] is True
    assert payload["updatedAt"] == UPDATED_AT
    assert "offlineReason" not in payload


def test_sparse_upstream_values_still_build_a_model():
    details = NodeSnapshot.model_validate(
        {
            "displayName": "agent",
            "offline": False,
            "assignedLabels": None,
            "executors": [{"number": 0, "progress": "n/a", "currentExecutable": {"duration": "1000"}}],
            "numExecutors": "2",
        }
    )
    model = build(details)

    assert model.labels == ()
    assert model.executors[0].id == "#0"
    assert model.executors[0].progress_label is None
    assert model.executors[0].work_duration_ms is None
    assert model.executors_label == "Not available"
    assert model.can_take_offline is True


def test_connectivity_flags_are_not_coerced():
    details = NodeSnapshot.model_validate({"offline": 0, "temporarilyOffline": "no", "idle": 1})
    model = build(details)

    assert details.offline is None
    assert details.temporarily_offline is None
    assert model.can_take_offline is False
    assert model.can_bring_online is False
    assert model.status_class is NodeStatusClass.unknown
    assert build_node_action_capabilities(details) == build_node_action_capabilities({"offline": 0})
