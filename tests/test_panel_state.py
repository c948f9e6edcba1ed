import asyncio

import pytest

from nodepanel.panels.state import (
    PanelIdentity,
    decode_panel_state,
    encode_panel_state,
    is_environment_scope,
    is_serialized_state,
    partial_panel_state,
    resolve_environment_ref,
)
from tests.fakes import NODE_URL, FakeEnvironmentStore


@pytest.mark.parametrize("scope", ["workspace", "global"])
def test_round_trip(scope):
    identity = PanelIdentity(environment_id="prod", scope=scope, node_url=NODE_URL)
    blob = encode_panel_state(identity)

    assert blob == {"environmentId": "prod", "scope": scope, "nodeUrl": NODE_URL}
    assert decode_panel_state(blob) == identity
    assert is_serialized_state(decode_panel_state(blob))


@pytest.mark.parametrize(
    "blob",
    [
        {"environmentId": "prod", "scope": "workspace"},
        {"environmentId": "prod", "scope": "workspace", "nodeUrl": ""},
        {"environmentId": "", "scope": "workspace", "nodeUrl": NODE_URL},
        {"environmentId": "prod", "scope": "team", "nodeUrl": NODE_URL},
        {"environmentId": "prod", "scope": "workspace", "nodeUrl": 7},
        None,
        "prod",
        [],
    ],
)
def test_malformed_state_is_rejected(blob):
    assert decode_panel_state(blob) is None
    assert not is_serialized_state(blob)


def test_environment_scope_guard():
    assert is_environment_scope("workspace")
    assert is_environment_scope("global")
    assert not is_environment_scope("Workspace")
    assert not is_environment_scope(None)


def test_partial_state_keeps_string_fields():
    assert partial_panel_state({"environmentId": "prod", "scope": 3, "nodeUrl": ""}) == {
        "environmentId": "prod",
        "nodeUrl": "",
    }
    assert partial_panel_state({"other": 1}) is None
    assert partial_panel_state("x") is None


def test_resolve_environment_ref():
    store = FakeEnvironmentStore()

    found = asyncio.run(
        resolve_environment_ref(store, PanelIdentity(environment_id="prod", scope="workspace", node_url=NODE_URL))
    )
    missing = asyncio.run(
        resolve_environment_ref(store, PanelIdentity(environment_id="prod", scope="global", node_url=NODE_URL))
    )

    assert found is not None
    assert found.url == "https://jenkins.example.com"
    assert found.scope == "workspace"
    assert missing is None
