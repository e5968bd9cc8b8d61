"""Job models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from .base import JenkinsModel

_PARAMETERS_CLASS = "hudson.model.ParametersDefinitionProperty"


class BuildRef(JenkinsModel):
    number: int
    url: str = ""


class BuildParameter(JenkinsModel):
    name: str
    description: str = ""
    default_value: Any = None
    type: str = ""

    @classmethod
    def from_definition(cls, definition: dict[str, Any]) -> BuildParameter:
        default = definition.get("defaultParameterValue") or {}
        return cls(
            name=definition.get("name", ""),
            description=definition.get("description") or "",
            default_value=default.get("value"),
            type=definition.get("type", ""),
        )


class Job(JenkinsModel):
    name: str = ""
    full_name: str = Field(default="", alias="fullName")
    url: str = ""
    description: str | None = None
    buildable: bool = False
    in_queue: bool = Field(default=False, alias="inQueue")
    color: str = ""
    next_build_number: int | None = Field(default=None, alias="nextBuildNumber")
    builds: list[BuildRef] = []
    last_build: BuildRef | None = Field(default=None, alias="lastBuild")
    properties: list[dict[str, Any]] = Field(default=[], alias="property")

    @property
    def parameters(self) -> list[BuildParameter]:
        params: list[BuildParameter] = []
        for prop in self.properties:
            if prop.get("_class") == _PARAMETERS_CLASS:
                params.extend(
                    BuildParameter.from_definition(d)
                    for d in prop.get("parameterDefinitions", [])
                )
        return params
