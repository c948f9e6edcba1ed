import itertools

import pytest

from nodepanel.services.capabilities import build_node_action_capabilities
from tests.fakes import make_snapshot

FLAGS = ("offline", "temporarilyOffline", "launchSupported", "manualLaunchAllowed", "jnlpAgent")
LATTICE = list(itertools.product((True, False, None), repeat=len(FLAGS)))


@pytest.mark.parametrize("values", LATTICE)
def test_capability_invariants_hold_for_every_flag_combination(values):
    source = {flag: value for flag, value in zip(FLAGS, values) if value is not None}
    caps = build_node_action_capabilities(source)

    if caps.can_bring_online:
        assert caps.is_temporarily_offline
    if caps.can_take_offline:
        assert not caps.is_offline and not caps.is_temporarily_offline
    if caps.can_launch_agent:
        assert caps.is_offline and not caps.is_temporarily_offline
    assert not (caps.can_launch_agent and caps.can_open_agent_instructions)


def test_missing_source_enables_nothing():
    caps = build_node_action_capabilities(None)
    assert caps.model_dump() == {
        "is_offline": False,
        "is_temporarily_offline": False,
        "can_take_offline": False,
        "can_bring_online": False,
        "can_launch_agent": False,
        "can_open_agent_instructions": False,
    }


def test_unknown_connectivity_cannot_be_taken_offline():
    assert build_node_action_capabilities({}).can_take_offline is False
    assert build_node_action_capabilities({"offline": False}).can_take_offline is True


def test_temporarily_offline_node_can_only_be_brought_online():
    caps = build_node_action_capabilities({"offline": True, "temporarilyOffline": True, "launchSupported": True})
    assert caps.can_bring_online
    assert not caps.can_take_offline
    assert not caps.can_launch_agent
    assert not caps.can_open_agent_instructions


def test_offline_node_without_launcher_offers_agent_instructions():
    caps = build_node_action_capabilities({"offline": True, "launchSupported": False, "jnlpAgent": True})
    assert caps.can_open_agent_instructions
    assert not caps.can_launch_agent


def test_snapshot_models_are_accepted():
    caps = build_node_action_capabilities(make_snapshot(offline=True, launchSupported=True))
    assert caps.can_launch_agent
    assert caps.is_offline


def test_non_boolean_values_count_as_unknown():
    caps = build_node_action_capabilities({"offline": "true", "temporarilyOffline": 1})
    assert not caps.is_offline
    assert not caps.is_temporarily_offline
    assert not caps.can_take_offline
