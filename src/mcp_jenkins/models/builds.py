"""Build, artifact, and trigger status models."""

from __future__ import annotations

import enum

from pydantic import Field

from .base import JenkinsModel

NO_BUILD_NUMBER = -1


class Artifact(JenkinsModel):
    file_name: str = Field(alias="fileName")
    relative_path: str = Field(alias="relativePath")
    display_path: str | None = Field(default=None, alias="displayPath")


class Build(JenkinsModel):
    number: int
    url: str = ""
    display_name: str = Field(default="", alias="displayName")
    result: str | None = None
    building: bool = False
    duration: int = 0
    timestamp: int = 0
    artifacts: list[Artifact] = []
    console_text: str | None = None


class BuildTriggerState(str, enum.Enum):
    STARTED_BUILDING = "STARTED_BUILDING"
    """Build left the queue and is being executed."""
    TIMED_OUT = "TIMED_OUT"
    """The client stopped waiting; the item may still be queued."""
    CANCELLED_IN_QUEUE = "CANCELLED_IN_QUEUE"
    """Build was cancelled on Jenkins before it started."""
    STUCK_IN_QUEUE = "STUCK_IN_QUEUE"
    """Jenkins reports the queue item as stuck."""


class BuildTriggerStatus(JenkinsModel):
    """Outcome of triggering a build and waiting for it to leave the queue.

    ``build_number`` is only meaningful for ``STARTED_BUILDING``; every other
    state carries ``NO_BUILD_NUMBER``.
    """

    model_config = {**JenkinsModel.model_config, "frozen": True}

    state: BuildTriggerState
    build_number: int = NO_BUILD_NUMBER

    @classmethod
    def started(cls, build_number: int) -> BuildTriggerStatus:
        return cls(state=BuildTriggerState.STARTED_BUILDING, build_number=build_number)

    @classmethod
    def timed_out(cls) -> BuildTriggerStatus:
        return cls(state=BuildTriggerState.TIMED_OUT)

    @classmethod
    def cancelled(cls) -> BuildTriggerStatus:
        return cls(state=BuildTriggerState.CANCELLED_IN_QUEUE)

    @classmethod
    def stuck(cls) -> BuildTriggerStatus:
        return cls(state=BuildTriggerState.STUCK_IN_QUEUE)
