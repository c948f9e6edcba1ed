from __future__ import annotations

from typing import Any, Protocol

from pydantic import Field, ValidationError

from nodepanel.models.environment import (
    ENVIRONMENT_SCOPES,
    CamelModel,
    EnvironmentRef,
    EnvironmentScope,
    JenkinsEnvironment,
)


class EnvironmentSource(Protocol):
    async def get_environments(self, scope: EnvironmentScope) -> list[JenkinsEnvironment]: ...


class PanelIdentity(CamelModel):
    """The only panel state that survives a host restart."""

    environment_id: str = Field(min_length=1, strict=True)
    scope: EnvironmentScope
    node_url: str = Field(min_length=1, strict=True)

    @classmethod
    def for_environment(cls, environment: EnvironmentRef, node_url: str) -> PanelIdentity:
        return cls(environment_id=environment.environment_id, scope=environment.scope, node_url=node_url)


def is_environment_scope(value: object) -> bool:
    return isinstance(value, str) and value in ENVIRONMENT_SCOPES


def encode_panel_state(identity: PanelIdentity) -> dict[str, Any]:
    return identity.model_dump(mode="json", by_alias=True)


def decode_panel_state(blob: object) -> PanelIdentity | None:
    if isinstance(blob, PanelIdentity):
        return blob
    if not isinstance(blob, dict):
        return None
    try:
        return PanelIdentity.model_validate(blob)
    except ValidationError:
        return None


def is_serialized_state(value: object) -> bool:
    return decode_panel_state(value) is not None


def partial_panel_state(blob: object) -> dict[str, str] | None:
    """Keep whatever identity fields an invalid blob still carries so a later restore can retry."""
    if not isinstance(blob, dict):
        return None
    kept = {key: value for key in ("environmentId", "scope", "nodeUrl") if isinstance(value := blob.get(key), str)}
    return kept or None


async def find_environment_ref(
    store: EnvironmentSource, scope: EnvironmentScope, environment_id: str
) -> EnvironmentRef | None:
    environments = await store.get_environments(scope)
    match = next((environment for environment in environments if environment.id == environment_id), None)
    if match is None:
        return None
    return EnvironmentRef(
        environment_id=match.id,
        scope=scope,
        url=match.url,
        username=match.username,
    )


async def resolve_environment_ref(store: EnvironmentSource, identity: PanelIdentity) -> EnvironmentRef | None:
    return await find_environment_ref(store, identity.scope, identity.environment_id)
