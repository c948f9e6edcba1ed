import asyncio

from nodepanel.core.errors import JenkinsActionError
from nodepanel.jenkins.client import NodeLaunchResult, NodeOfflineToggleResult
from nodepanel.services.node_actions import NodeActionService, NodeActionTarget
from tests.fakes import NODE_URL, FakeNodeActionBackend, FakeRefreshHost, FakeWindow, make_environment, make_snapshot

TARGET = NodeActionTarget(environment=make_environment(), node_url=NODE_URL, label="agent-1")


def make_service():
    window = FakeWindow()
    backend = FakeNodeActionBackend()
    return NodeActionService(backend, window), backend, window, FakeRefreshHost()


def test_take_offline_prompts_for_reason():
    service, backend, window, refresh_host = make_service()
    window.input_response = "  "
    backend.toggle_result = NodeOfflineToggleResult("toggled", make_snapshot(offline=True, temporarilyOffline=True))

    assert asyncio.run(service.take_node_offline(TARGET, refresh_host)) is True
    assert window.prompts == ["Offline reason for agent-1 (optional)"]
    assert backend.toggle_calls == [(NODE_URL, True, None)]
    assert window.info == ["Took agent-1 offline."]
    assert refresh_host.refreshed == ["prod"]


def test_take_offline_cancelled_prompt_does_nothing():
    service, backend, window, refresh_host = make_service()
    window.input_response = None

    assert asyncio.run(service.take_node_offline(TARGET, refresh_host)) is False
    assert backend.toggle_calls == []
    assert window.info == []


def test_take_offline_when_already_offline():
    service, backend, window, refresh_host = make_service()
    backend.toggle_result = NodeOfflineToggleResult("no_change", make_snapshot(offline=True))

    assert asyncio.run(service.take_node_offline(TARGET, refresh_host, "")) is False
    assert window.info == ["agent-1 is already offline."]
    assert refresh_host.refreshed == []


def test_take_offline_failure_is_reported():
    service, backend, window, _ = make_service()
    backend.toggle_result = JenkinsActionError("status=403 method=POST url=x detail=denied", 403)

    assert asyncio.run(service.take_node_offline(TARGET, reason="x")) is False
    assert window.errors == ["Failed to take agent-1 offline: status=403 method=POST url=x detail=denied"]


def test_bring_online_outcomes():
    service, backend, window, refresh_host = make_service()

    async def scenario():
        backend.toggle_result = NodeOfflineToggleResult("toggled", make_snapshot())
        await service.bring_node_online(TARGET, refresh_host)
        backend.toggle_result = NodeOfflineToggleResult(
            "toggled", make_snapshot(offline=True, offlineCauseReason="Agent disconnected")
        )
        await service.bring_node_online(TARGET, refresh_host)
        backend.toggle_result = NodeOfflineToggleResult("not_temporarily_offline", make_snapshot(offline=True))
        await service.bring_node_online(TARGET, refresh_host)
        backend.toggle_result = NodeOfflineToggleResult("no_change", make_snapshot())
        await service.bring_node_online(TARGET, refresh_host)

    asyncio.run(scenario())

    assert window.info == [
        "Brought agent-1 online.",
        "Cleared temporary offline for agent-1, but it is still offline. Reason: Agent disconnected",
        "agent-1 is offline but not temporarily offline. Use Jenkins to bring it online.",
        "agent-1 is already online.",
    ]
    assert refresh_host.refreshed == ["prod", "prod"]
    assert all(call[1] is False for call in backend.toggle_calls)


def test_launch_outcomes():
    service, backend, window, refresh_host = make_service()

    async def scenario():
        results = []
        for result in (
            NodeLaunchResult("launched", make_snapshot()),
            NodeLaunchResult("launched", make_snapshot(offline=True)),
            NodeLaunchResult("not_launchable", make_snapshot(offline=True, manualLaunchAllowed=True)),
            NodeLaunchResult("not_launchable", make_snapshot(offline=True)),
            NodeLaunchResult("temporarily_offline", make_snapshot(offline=True, temporarilyOffline=True)),
            NodeLaunchResult("no_change", make_snapshot()),
        ):
            backend.launch_result = result
            results.append(await service.launch_node_agent(TARGET, refresh_host))
        return results

    assert asyncio.run(scenario()) == [True, True, False, False, False, False]
    assert window.info == [
        "Launched agent-1.",
        "Launch requested for agent-1, but it is still offline.",
        "agent-1 requires a manual agent launch. Start the agent on the node or use Jenkins.",
        "agent-1 does not support launching from Jenkins.",
        "agent-1 is temporarily offline. Bring it online before launching.",
        "agent-1 is already online.",
    ]
    assert refresh_host.refreshed == ["prod", "prod"]


def test_launch_failure_is_reported():
    service, backend, window, _ = make_service()
    backend.launch_result = RuntimeError("timed out")

    assert asyncio.run(service.launch_node_agent(TARGET)) is False
    assert window.errors == ["Failed to launch agent-1: timed out"]
