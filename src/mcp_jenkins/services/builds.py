"""Triggering builds and reading build history."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from ..client import JenkinsClient
from ..config import DEFAULT_BUILD_TIMEOUT, DEFAULT_FIRST_CHECK_DELAY, DEFAULT_POLL_PERIOD
from ..exceptions import (
    JenkinsError,
    JenkinsInterruptedError,
    JenkinsNotFoundError,
    JenkinsProtocolError,
)
from ..models.builds import Build, BuildTriggerStatus
from ..models.queue import QueueItem

logger = logging.getLogger(__name__)


class BuildService:
    """Triggers builds and waits for them to leave the Jenkins queue.

    Jenkins answers a trigger with a queue item, not a build. The build number
    only exists once an executor picks the item up, so :meth:`build` polls the
    queue item until it starts, is cancelled, gets stuck, or the timeout passes.

    Args:
        client: Jenkins API client.
        first_check_delay: seconds to wait before the first queue poll.
            Jenkins does not have an answer sooner than this.
        poll_period: seconds to wait between queue polls.
        default_timeout: timeout used by :meth:`build` when none is given.
    """

    def __init__(
        self,
        client: JenkinsClient,
        first_check_delay: float = DEFAULT_FIRST_CHECK_DELAY,
        poll_period: float = DEFAULT_POLL_PERIOD,
        default_timeout: float = DEFAULT_BUILD_TIMEOUT,
    ) -> None:
        self.client = client
        self.first_check_delay = first_check_delay
        self.poll_period = poll_period
        self.default_timeout = default_timeout

    async def _require_job(self, job_name: str) -> dict:
        job = await self.client.get_job(job_name)
        if job is None:
            logger.error("Cannot fetch job %r from Jenkins", job_name)
            raise JenkinsNotFoundError(f"Unable to find job for name {job_name!r}")
        return job

    @staticmethod
    async def _pause(seconds: float) -> None:
        try:
            await asyncio.sleep(seconds)
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            raise JenkinsInterruptedError(f"Interrupted while waiting {seconds}s") from e

    async def build(
        self,
        job_name: str,
        timeout: float | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> BuildTriggerStatus:
        """Trigger a build and block until it leaves the queue.

        The timeout is only checked between polls, so the call may return up to
        one ``poll_period`` later than ``timeout``. It should be larger than
        ``first_check_delay``; otherwise the first check already times out.

        Returns:
            ``STARTED_BUILDING`` with the build number, or ``CANCELLED_IN_QUEUE``,
            ``STUCK_IN_QUEUE`` or ``TIMED_OUT``.

        Raises:
            JenkinsNotFoundError: the job does not exist. Nothing is triggered.
            JenkinsProtocolError: Jenkins returned no queue reference or lost the queue item.
            JenkinsTransportError: the connection failed.
            JenkinsInterruptedError: a wait between polls was cut short while the
                task itself was not cancelled. Task cancellation propagates as
                ``asyncio.CancelledError``.
        """
        if timeout is None:
            timeout = self.default_timeout
        logger.debug("Going to build job %r, timing out after %ss", job_name, timeout)

        await self._require_job(job_name)

        ref = await self.client.trigger_build(job_name, parameters)
        if ref is None:
            raise JenkinsProtocolError(f"Jenkins returned no queue reference for {job_name!r}")
        logger.debug("Build triggered; queue item reference: %s", ref.url)

        deadline = time.monotonic() + timeout

        logger.debug("Going to sleep %ss before the first queue check", self.first_check_delay)
        await self._pause(self.first_check_delay)

        while True:
            data = await self.client.get_queue_item(ref)
            if data is None:
                raise JenkinsProtocolError(f"Queue item {ref.url} disappeared")
            item = QueueItem.model_validate(data)
            logger.debug(
                "Queue item %s cancelled:%s, blocked:%s, buildable:%s, stuck:%s",
                item.id,
                item.cancelled,
                item.blocked,
                item.buildable,
                item.stuck,
            )

            if item.cancelled:
                logger.debug("Queue item is cancelled. Returning CANCELLED_IN_QUEUE")
                return BuildTriggerStatus.cancelled()
            if item.stuck:
                logger.debug("Queue item is stuck. Returning STUCK_IN_QUEUE")
                return BuildTriggerStatus.stuck()

            # blocked items are awaited until they unblock
            if item.executable is not None:
                logger.debug("Build started with number %d", item.executable.number)
                return BuildTriggerStatus.started(item.executable.number)

            if time.monotonic() >= deadline:
                logger.debug("Timeout exceeded. Returning TIMED_OUT")
                return BuildTriggerStatus.timed_out()
            logger.debug("Build not started yet (%s); sleeping %ss", item.why, self.poll_period)
            await self._pause(self.poll_period)

    async def get_build(self, job_name: str, build_number: int) -> Build:
        await self._require_job(job_name)
        data = await self.client.get_build(job_name, build_number)
        return Build.model_validate(data)

    async def get_build_logs(self, job_name: str, build_number: int) -> str:
        await self._require_job(job_name)
        return await self.client.get_console_text(job_name, build_number)

    async def get_build_history(
        self, job_name: str, include_console: bool = False
    ) -> list[Build]:
        """Return details of the job's recent builds (at most 100), newest first.

        Details are fetched one build at a time. With ``include_console`` each
        build's console text is fetched as well. The first failure aborts the
        whole history.
        """
        builds = await self.client.list_builds(job_name)
        history: list[Build] = []
        for ref in builds:
            try:
                build = Build.model_validate(await self.client.get_build(job_name, ref["number"]))
                if include_console:
                    build.console_text = await self.client.get_console_text(
                        job_name, build.number
                    )
            except JenkinsError:
                logger.error(
                    "Error fetching details for job %r build %s", job_name, ref.get("number")
                )
                raise
            history.append(build)
        return history
