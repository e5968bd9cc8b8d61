"""Tests for triggering builds and reading build history."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import patch

import httpx
import pytest
from _payloads import TEST_URL, build_json, job_json

from mcp_jenkins.exceptions import (
    ErrorKind,
    JenkinsApiError,
    JenkinsInterruptedError,
    JenkinsNotFoundError,
    JenkinsProtocolError,
    JenkinsTransportError,
)
from mcp_jenkins.models.builds import BuildTriggerState, BuildTriggerStatus
from mcp_jenkins.services.builds import BuildService

QUEUE_URL = f"{TEST_URL}/queue/item/17/"
WAITING = {"id": 17, "blocked": False, "buildable": True, "why": "Waiting for next executor"}
STARTED = {"id": 17, "executable": {"number": 98, "url": f"{TEST_URL}/job/TEST/98/"}}


@pytest.fixture
def service(client) -> BuildService:
    return BuildService(client, first_check_delay=0.3, poll_period=0.05)


@pytest.fixture
def triggered(mock_api):
    """Job TEST exists and triggering it returns queue item 17."""
    mock_api.get("/job/TEST/api/json").mock(return_value=httpx.Response(200, json=job_json()))
    mock_api.post("/job/TEST/build").mock(
        return_value=httpx.Response(201, headers={"Location": QUEUE_URL})
    )
    return mock_api


def _queue(router, *snapshots: dict):
    return router.get("/queue/item/17/api/json").mock(
        side_effect=[httpx.Response(200, json=s) for s in snapshots]
    )


class TestTriggerAndWait:
    async def test_started_on_first_poll(self, service, triggered):
        queue = _queue(triggered, STARTED)
        status = await service.build("TEST", timeout=10)
        assert status == BuildTriggerStatus(
            state=BuildTriggerState.STARTED_BUILDING, build_number=98
        )
        assert queue.call_count == 1

    async def test_waits_first_check_delay(self, service, triggered):
        _queue(triggered, STARTED)
        started = time.monotonic()
        await service.build("TEST", timeout=10)
        assert time.monotonic() - started >= 0.3

    async def test_cancelled_on_first_poll(self, service, triggered):
        queue = _queue(triggered, {"id": 17, "cancelled": True}, STARTED)
        status = await service.build("TEST", timeout=10)
        assert status.state is BuildTriggerState.CANCELLED_IN_QUEUE
        assert status.build_number == -1
        assert queue.call_count == 1

    async def test_cancelled_wins_over_stuck_and_executable(self, service, triggered):
        _queue(triggered, {**STARTED, "cancelled": True, "stuck": True})
        status = await service.build("TEST", timeout=10)
        assert status.state is BuildTriggerState.CANCELLED_IN_QUEUE

    async def test_stuck(self, service, triggered):
        queue = _queue(triggered, WAITING, {"id": 17, "stuck": True, "buildable": True})
        status = await service.build("TEST", timeout=10)
        assert status == BuildTriggerStatus.stuck()
        assert status.build_number == -1
        assert queue.call_count == 2

    async def test_stuck_wins_over_executable(self, service, triggered):
        _queue(triggered, {**STARTED, "stuck": True})
        status = await service.build("TEST", timeout=10)
        assert status.state is BuildTriggerState.STUCK_IN_QUEUE

    async def test_started_after_waiting(self, service, triggered):
        queue = _queue(triggered, WAITING, WAITING, STARTED)
        status = await service.build("TEST", timeout=10)
        assert status == BuildTriggerStatus.started(98)
        assert queue.call_count == 3

    async def test_blocked_keeps_waiting(self, service, triggered):
        blocked = {"id": 17, "blocked": True, "why": "Build #97 is already in progress"}
        queue = _queue(triggered, blocked, blocked, {**STARTED, "blocked": True})
        status = await service.build("TEST", timeout=10)
        assert status.build_number == 98
        assert queue.call_count == 3

    async def test_timed_out(self, service, triggered):
        queue = triggered.get("/queue/item/17/api/json").mock(
            return_value=httpx.Response(200, json=WAITING)
        )
        status = await service.build("TEST", timeout=0.5)
        assert status == BuildTriggerStatus(state=BuildTriggerState.TIMED_OUT, build_number=-1)
        assert queue.call_count >= 2

    async def test_timeout_below_first_check_delay(self, service, triggered):
        queue = triggered.get("/queue/item/17/api/json").mock(
            return_value=httpx.Response(200, json=WAITING)
        )
        status = await service.build("TEST", timeout=0.1)
        assert status.state is BuildTriggerState.TIMED_OUT
        assert queue.call_count == 1

    async def test_default_timeout(self, client, triggered):
        service = BuildService(
            client, first_check_delay=0, poll_period=0.01, default_timeout=0.05
        )
        triggered.get("/queue/item/17/api/json").mock(
            return_value=httpx.Response(200, json=WAITING)
        )
        status = await service.build("TEST")
        assert status.state is BuildTriggerState.TIMED_OUT

    async def test_parameters(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(return_value=httpx.Response(200, json=job_json()))
        trigger = mock_api.post("/job/TEST/buildWithParameters").mock(
            return_value=httpx.Response(201, headers={"Location": QUEUE_URL})
        )
        _queue(mock_api, STARTED)
        status = await service.build("TEST", timeout=10, parameters={"BRANCH": "develop"})
        assert status.build_number == 98
        assert trigger.calls.last.request.url.params["BRANCH"] == "develop"


class TestTriggerFailures:
    async def test_unknown_job(self, service, mock_api):
        mock_api.get("/job/NOPE/api/json").mock(return_value=httpx.Response(404))
        trigger = mock_api.post("/job/NOPE/build")
        queue = mock_api.get(path__startswith="/queue/")
        with pytest.raises(JenkinsNotFoundError) as exc_info:
            await service.build("NOPE", timeout=10)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert not trigger.called
        assert not queue.called

    async def test_missing_queue_reference(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(return_value=httpx.Response(200, json=job_json()))
        mock_api.post("/job/TEST/build").mock(return_value=httpx.Response(201))
        with pytest.raises(JenkinsProtocolError) as exc_info:
            await service.build("TEST", timeout=10)
        assert exc_info.value.kind is ErrorKind.PROTOCOL_VIOLATION

    async def test_missing_queue_item(self, service, triggered):
        triggered.get("/queue/item/17/api/json").mock(return_value=httpx.Response(404))
        with pytest.raises(JenkinsProtocolError):
            await service.build("TEST", timeout=10)

    async def test_transport_failure_while_polling(self, service, triggered):
        queue = triggered.get("/queue/item/17/api/json").mock(
            side_effect=[httpx.Response(200, json=WAITING), httpx.ReadTimeout("slow")]
        )
        with pytest.raises(JenkinsTransportError):
            await service.build("TEST", timeout=10)
        assert queue.call_count == 2

    async def test_interrupted_wait(self, service, triggered):
        _queue(triggered, STARTED)
        sleep = patch.object(asyncio, "sleep", side_effect=asyncio.CancelledError)
        with sleep, pytest.raises(JenkinsInterruptedError) as exc_info:
            await service.build("TEST", timeout=10)
        assert exc_info.value.kind is ErrorKind.INTERRUPTED_WAIT
        assert isinstance(exc_info.value.__cause__, asyncio.CancelledError)

    async def test_cancelling_task_cancels_wait(self, service, triggered):
        queue = _queue(triggered, STARTED)
        task = asyncio.create_task(service.build("TEST", timeout=10))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError) as exc_info:
            await task
        assert task.cancelled()
        assert not isinstance(exc_info.value, JenkinsInterruptedError)
        assert not queue.called

    async def test_cancelled_wait_survives_except_exception(self, service, triggered):
        _queue(triggered, STARTED)
        caught = []

        async def guarded():
            try:
                return await service.build("TEST", timeout=10)
            except Exception as e:
                caught.append(e)

        task = asyncio.create_task(guarded())
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert caught == []

    async def test_asyncio_timeout_raises_timeout_error(self, service, triggered):
        queue = _queue(triggered, STARTED)
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.1):
                await service.build("TEST", timeout=10)
        assert not queue.called


class TestHistory:
    async def test_history_preserves_order(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(
            return_value=httpx.Response(200, json=job_json(builds=[3, 2, 1]))
        )
        for n in (1, 2, 3):
            mock_api.get(f"/job/TEST/{n}/api/json").mock(
                return_value=httpx.Response(200, json=build_json(n))
            )
        history = await service.get_build_history("TEST")
        assert [b.number for b in history] == [3, 2, 1]
        assert history[0].result == "SUCCESS"

    async def test_history_aborts_on_first_failure(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(
            return_value=httpx.Response(200, json=job_json(builds=[3, 2, 1]))
        )
        mock_api.get("/job/TEST/3/api/json").mock(
            return_value=httpx.Response(200, json=build_json(3))
        )
        mock_api.get("/job/TEST/2/api/json").mock(return_value=httpx.Response(500))
        last = mock_api.get("/job/TEST/1/api/json").mock(
            return_value=httpx.Response(200, json=build_json(1))
        )
        with pytest.raises(JenkinsApiError):
            await service.get_build_history("TEST")
        assert not last.called

    async def test_history_with_console(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(
            return_value=httpx.Response(200, json=job_json(builds=[2, 1]))
        )
        for n in (1, 2):
            mock_api.get(f"/job/TEST/{n}/api/json").mock(
                return_value=httpx.Response(200, json=build_json(n))
            )
            mock_api.get(f"/job/TEST/{n}/consoleText").mock(
                return_value=httpx.Response(200, text=f"build {n}\nFinished: SUCCESS")
            )
        history = await service.get_build_history("TEST", include_console=True)
        assert [b.console_text.splitlines()[0] for b in history] == ["build 2", "build 1"]

    async def test_history_without_console_skips_logs(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(
            return_value=httpx.Response(200, json=job_json(builds=[1]))
        )
        mock_api.get("/job/TEST/1/api/json").mock(
            return_value=httpx.Response(200, json=build_json(1))
        )
        console = mock_api.get("/job/TEST/1/consoleText")
        history = await service.get_build_history("TEST")
        assert history[0].console_text is None
        assert not console.called

    async def test_history_console_failure_aborts(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(
            return_value=httpx.Response(200, json=job_json(builds=[2, 1]))
        )
        mock_api.get("/job/TEST/2/api/json").mock(
            return_value=httpx.Response(200, json=build_json(2))
        )
        mock_api.get("/job/TEST/2/consoleText").mock(return_value=httpx.Response(500))
        last = mock_api.get("/job/TEST/1/api/json")
        with pytest.raises(JenkinsApiError):
            await service.get_build_history("TEST", include_console=True)
        assert not last.called

    async def test_history_empty(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(return_value=httpx.Response(200, json=job_json()))
        assert await service.get_build_history("TEST") == []

    async def test_history_unknown_job(self, service, mock_api):
        mock_api.get("/job/NOPE/api/json").mock(return_value=httpx.Response(404))
        with pytest.raises(JenkinsNotFoundError):
            await service.get_build_history("NOPE")


class TestLogs:
    async def test_get_build_logs(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(return_value=httpx.Response(200, json=job_json()))
        mock_api.get("/job/TEST/5/consoleText").mock(
            return_value=httpx.Response(200, text="Started by user admin\nFinished: SUCCESS")
        )
        logs = await service.get_build_logs("TEST", 5)
        assert "Started by user admin" in logs

    async def test_logs_unknown_job(self, service, mock_api):
        mock_api.get("/job/NOPE/api/json").mock(return_value=httpx.Response(404))
        with pytest.raises(JenkinsNotFoundError):
            await service.get_build_logs("NOPE", 1)

    async def test_get_build(self, service, mock_api):
        mock_api.get("/job/TEST/api/json").mock(return_value=httpx.Response(200, json=job_json()))
        mock_api.get("/job/TEST/5/api/json").mock(
            return_value=httpx.Response(200, json=build_json(5, ["out/app.apk"]))
        )
        build = await service.get_build("TEST", 5)
        assert build.number == 5
        assert build.artifacts[0].file_name == "app.apk"
