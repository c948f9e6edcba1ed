from __future__ import annotations

from dataclasses import dataclass
from html import escape
import secrets
from typing import Any

import orjson

from nodepanel.models.view_model import NodeDetailsViewModel

_SCRIPT_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass(frozen=True)
class RenderOptions:
    csp_source: str
    nonce: str
    style_uri: str
    script_uri: str = ""


def create_nonce() -> str:
    return secrets.token_urlsafe(24)


def serialize_for_script(value: Any) -> str:
    text = orjson.dumps(value).decode("utf-8")
    return "".join(_SCRIPT_ESCAPES.get(char, char) for char in text)


def render_loading_html(options: RenderOptions, panel_state: dict[str, Any] | None = None) -> str:
    return render_shell(
        """
      <div class="p-6 flex flex-col gap-2">
        <div class="text-lg font-semibold text-foreground">Loading node details...</div>
        <div class="text-sm text-description">Fetching node status and executor data.</div>
      </div>
""",
        options,
        panel_state,
    )


def render_restore_error_html(options: RenderOptions, panel_state: dict[str, Any] | None = None) -> str:
    return render_shell(
        """
      <div class="p-6 flex flex-col gap-2">
        <div class="text-lg font-semibold text-foreground">Unable to restore node details</div>
        <div class="text-sm text-description">
          The node or its Jenkins environment is no longer available. Open the node again from the node list.
        </div>
      </div>
""",
        options,
        panel_state,
    )


def render_node_details_html(
    model: NodeDetailsViewModel, options: RenderOptions, panel_state: dict[str, Any] | None = None
) -> str:
    nonce = escape(options.nonce, quote=True)
    content = f"""
      <div id="root"></div>
      <script nonce="{nonce}">
        window.__INITIAL_STATE__ = {serialize_for_script(model.to_payload())};
      </script>
      <script nonce="{nonce}" src="{escape(options.script_uri, quote=True)}"></script>
"""
    return render_shell(content, options, panel_state)


def render_shell(content: str, options: RenderOptions, panel_state: dict[str, Any] | None = None) -> str:
    csp = "; ".join(
        [
            "default-src 'none'",
            f"style-src {options.csp_source}",
            f"script-src {options.csp_source} 'nonce-{options.nonce}'",
            f"connect-src {options.csp_source}",
        ]
    )
    state_script = ""
    if panel_state is not None:
        state_script = (
            f'  <script nonce="{escape(options.nonce, quote=True)}">'
            f"window.__PANEL_STATE__ = {serialize_for_script(panel_state)};</script>\n"
        )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <meta http-equiv="Content-Security-Policy" content="{escape(csp, quote=True)}" />
  <link rel="stylesheet" href="{escape(options.style_uri, quote=True)}" />
{state_script}</head>
<body>
  {content}
</body>
</html>"""
