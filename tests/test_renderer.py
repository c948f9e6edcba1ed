from nodepanel.panels.renderer import (
    RenderOptions,
    render_loading_html,
    render_node_details_html,
    render_restore_error_html,
    serialize_for_script,
)
from nodepanel.services.view_model_builder import build_node_details_view_model
from tests.fakes import make_snapshot

OPTIONS = RenderOptions(
    csp_source="https://panel.local",
    nonce="abc123",
    style_uri="https://panel.local/static/nodeDetails/nodeDetails.css",
    script_uri="https://panel.local/static/nodeDetails/nodeDetails.js",
)
STATE = {"environmentId": "prod", "scope": "workspace", "nodeUrl": "https://j/computer/a/"}


def test_script_payload_is_escaped():
    text = serialize_for_script({"html": "</script><b>&", "sep": "a\u2028b\u2029c"})

    assert "</script>" not in text
    assert "\\u003c/script\\u003e\\u003cb\\u003e\\u0026" in text
    assert "\u2028" not in text
    assert "\\u2028" in text
    assert "\\u2029" in text


def test_loading_document_has_policy_and_state_but_no_bundle():
    html = render_loading_html(OPTIONS, STATE)

    assert "Content-Security-Policy" in html
    assert "script-src https://panel.local &#x27;nonce-abc123&#x27;" in html
    assert "window.__PANEL_STATE__" in html
    assert '"nodeUrl":"https://j/computer/a/"' in html
    assert "nodeDetails.js" not in html
    assert "Loading node details..." in html


def test_details_document_embeds_initial_state_and_bundle():
    model = build_node_details_view_model(make_snapshot(name="agent-9"), updated_at="now", now_ms=0)
    html = render_node_details_html(model, OPTIONS, STATE)

    assert "window.__INITIAL_STATE__" in html
    assert '"name":"agent-9"' in html
    assert 'src="https://panel.local/static/nodeDetails/nodeDetails.js"' in html
    assert html.count('nonce="abc123"') == 3


def test_restore_error_document_without_state():
    html = render_restore_error_html(OPTIONS)

    assert "Unable to restore node details" in html
    assert "__PANEL_STATE__" not in html
