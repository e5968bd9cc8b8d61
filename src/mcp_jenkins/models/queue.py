"""Queue item models."""

from __future__ import annotations

import re

from pydantic import Field

from .base import JenkinsModel

_ITEM_ID_RE = re.compile(r"/queue/item/(\d+)/?$")


class QueueReference(JenkinsModel):
    """Location of a queue item, as returned when a build is triggered."""

    model_config = {**JenkinsModel.model_config, "frozen": True}

    url: str

    @property
    def item_id(self) -> int | None:
        m = _ITEM_ID_RE.search(self.url)
        return int(m.group(1)) if m else None

    @property
    def api_url(self) -> str:
        return self.url.rstrip("/") + "/api/json"


class QueueExecutable(JenkinsModel):
    number: int
    url: str = ""


class QueueItem(JenkinsModel):
    id: int = 0
    cancelled: bool = False
    stuck: bool = False
    blocked: bool = False
    buildable: bool = False
    why: str | None = None
    in_queue_since: int | None = Field(default=None, alias="inQueueSince")
    executable: QueueExecutable | None = None
