from functools import lru_cache
import json
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGIN = "http://localhost:3000"


def split_origins(value: str) -> list[str]:
    """Accept a JSON list or a comma separated list of origins."""
    value = value.strip()
    if value.startswith("["):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed if str(item).strip()]
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Jenkins Node Details"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"
    cors_origins: str = DEFAULT_CORS_ORIGIN

    host: str = "127.0.0.1"
    port: int = 8000

    state_dir: Path = Path(".nodepanel")
    request_timeout_sec: int = 15
    node_cache_ttl_sec: int = 30

    static_dir: Path = Path("static")
    webview_bundle_path: str = "static/nodeDetails/nodeDetails.js"
    webview_style_path: str = "static/nodeDetails/nodeDetails.css"

    @property
    def cors_origins_list(self) -> list[str]:
        return split_origins(self.cors_origins or "") or [DEFAULT_CORS_ORIGIN]

    @property
    def panel_state_path(self) -> Path:
        return self.state_dir / "node_details_panel.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
