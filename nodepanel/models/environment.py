from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EnvironmentScope = Literal["workspace", "global"]

ENVIRONMENT_SCOPES: tuple[EnvironmentScope, ...] = ("workspace", "global")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JenkinsEnvironment(CamelModel):
    id: str = Field(min_length=1)
    url: str = Field(min_length=1)
    username: str | None = None


class EnvironmentWithScope(JenkinsEnvironment):
    scope: EnvironmentScope


class EnvironmentRef(CamelModel):
    environment_id: str
    scope: EnvironmentScope
    url: str
    username: str | None = None
