from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from nodepanel.models.environment import (
    ENVIRONMENT_SCOPES,
    EnvironmentScope,
    EnvironmentWithScope,
    JenkinsEnvironment,
)

_environments_adapter = TypeAdapter(list[JenkinsEnvironment])


class EnvironmentStore:
    """Jenkins environments persisted as one JSON file per scope."""

    def __init__(self, base_dir: Path, logger: logging.Logger) -> None:
        self._base_dir = base_dir
        self._logger = logger

    def path_for(self, scope: EnvironmentScope) -> Path:
        return self._base_dir / f"environments.{scope}.json"

    async def get_environments(self, scope: EnvironmentScope) -> list[JenkinsEnvironment]:
        path = self.path_for(scope)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return _environments_adapter.validate_python(data)
        except (json.JSONDecodeError, ValidationError):
            backup = path.with_suffix(".invalid.json")
            path.replace(backup)
            self._logger.warning("environment_store_invalid", extra={"path": str(path), "backup": str(backup)})
            return []

    async def save_environments(self, scope: EnvironmentScope, environments: list[JenkinsEnvironment]) -> None:
        self._base_dir.mkdir(parents=True, exist_ok=True)
        payload = [environment.model_dump(mode="json", by_alias=True, exclude_none=True) for environment in environments]
        self.path_for(scope).write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    async def add_environment(self, scope: EnvironmentScope, environment: JenkinsEnvironment) -> None:
        environments = [item for item in await self.get_environments(scope) if item.id != environment.id]
        environments.append(environment)
        await self.save_environments(scope, environments)

    async def remove_environment(self, scope: EnvironmentScope, environment_id: str) -> bool:
        environments = await self.get_environments(scope)
        remaining = [item for item in environments if item.id != environment_id]
        if len(remaining) == len(environments):
            return False
        await self.save_environments(scope, remaining)
        return True

    async def list_environments_with_scope(self) -> list[EnvironmentWithScope]:
        result: list[EnvironmentWithScope] = []
        for scope in ENVIRONMENT_SCOPES:
            for environment in await self.get_environments(scope):
                result.append(EnvironmentWithScope(**environment.model_dump(), scope=scope))
        return result
