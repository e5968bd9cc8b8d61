"""Jenkins MCP server — all tool registrations."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from ..config import JenkinsConfig
from ..exceptions import JenkinsWriteDisabledError
from ..toolkit import JenkinsToolkit, create_toolkit
from ._helpers import _parse_jenkins_build_url, _parse_jenkins_job_url


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    config = JenkinsConfig.from_env()
    config.validate()
    toolkit = create_toolkit(config)
    try:
        yield {"toolkit": toolkit, "config": config}
    finally:
        await toolkit.close()


mcp = FastMCP(
    name="Jenkins MCP Server",
    instructions=(
        "Provides tools for interacting with Jenkins"
        " — jobs, triggering builds, build history, logs, and artifacts."
    ),
    lifespan=lifespan,
)


def _get_toolkit(ctx: Context) -> JenkinsToolkit:
    return ctx.request_context.lifespan_context["toolkit"]


def _get_config(ctx: Context) -> JenkinsConfig:
    return ctx.request_context.lifespan_context["config"]


def _check_write(ctx: Context) -> None:
    if _get_config(ctx).read_only:
        raise JenkinsWriteDisabledError


def _ok(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _build_target(job_name: str, build_number: int | None) -> tuple[str, int]:
    """Resolve a job name/URL and optional build number to (job_name, build_number)."""
    name, parsed_number = _parse_jenkins_build_url(job_name)
    if build_number is None:
        if not parsed_number:
            msg = "build_number is required unless job_name is a build URL"
            raise ValueError(msg)
        build_number = int(parsed_number)
    return name, build_number


def _err(error: Exception) -> str:
    detail: dict[str, Any] = {"error": str(error)}
    from ..exceptions import (
        JenkinsApiError,
        JenkinsAuthError,
        JenkinsError,
        JenkinsInterruptedError,
        JenkinsNotFoundError,
        JenkinsProtocolError,
        JenkinsTransportError,
    )

    if isinstance(error, JenkinsError):
        detail["kind"] = error.kind.value
    if isinstance(error, JenkinsNotFoundError):
        detail["status_code"] = error.status_code
        detail["hint"] = "Verify the job name and build number. Use jenkins_get_job to confirm."
    elif isinstance(error, JenkinsAuthError):
        detail["status_code"] = error.status_code
        detail["body"] = error.body
        detail["hint"] = "Check JENKINS_USER and JENKINS_TOKEN. The user needs Job/Build rights."
    elif isinstance(error, JenkinsWriteDisabledError):
        detail["hint"] = (
            "Server is in read-only mode. Set JENKINS_READ_ONLY=false to enable writes."
        )
    elif isinstance(error, JenkinsProtocolError):
        detail["hint"] = "Jenkins returned an unexpected response. Check JENKINS_URL."
    elif isinstance(error, JenkinsTransportError):
        detail["hint"] = "Could not reach Jenkins. Check JENKINS_URL and network access."
    elif isinstance(error, JenkinsInterruptedError):
        detail["hint"] = "The wait was cancelled. The build may still be queued."
    elif isinstance(error, JenkinsApiError):
        detail["status_code"] = error.status_code
        detail["body"] = error.body
        if error.status_code == 400:
            detail["hint"] = "Bad request — the job may already exist or need parameters."
        elif error.status_code == 409:
            detail["hint"] = "Conflict — resource may already exist or be locked."
    return json.dumps(detail, indent=2, ensure_ascii=False)


# ════════════════════════════════════════════════════════════════════
# Jobs
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"jenkins", "jobs", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def jenkins_get_job(
    ctx: Context,
    job_name: Annotated[
        str,
        Field(description="Job name (folders as 'folder/job') or job URL", min_length=1),
    ],
) -> str:
    """Get details of a Jenkins job, including its recent builds."""
    try:
        job = await _get_toolkit(ctx).jobs.get(_parse_jenkins_job_url(job_name))
        return _ok(job.to_dict())
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"jenkins", "jobs", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def jenkins_get_job_parameters(
    ctx: Context,
    job_name: Annotated[str, Field(description="Job name or URL", min_length=1)],
) -> str:
    """List the build parameters a job accepts, with their defaults."""
    try:
        params = await _get_toolkit(ctx).jobs.get_parameters(_parse_jenkins_job_url(job_name))
        return _ok([p.to_dict() for p in params])
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"jenkins", "jobs", "write"},
    annotations={"readOnlyHint": False, "openWorldHint": True},
)
async def jenkins_create_job(
    ctx: Context,
    job_name: Annotated[str, Field(description="Name of the new job", min_length=1)],
    git_repo: Annotated[str, Field(description="Git repository URL to build", min_length=1)],
    git_branch: Annotated[str, Field(description="Branch to check out")] = "master",
) -> str:
    """Create a pipeline job that runs the repository's Jenkinsfile."""
    try:
        _check_write(ctx)
        await _get_toolkit(ctx).jobs.create(job_name, git_repo, git_branch)
        return _ok({"status": "created", "job_name": job_name})
    except Exception as e:
        return _err(e)


# ════════════════════════════════════════════════════════════════════
# Builds
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"jenkins", "builds", "write"},
    annotations={"readOnlyHint": False, "openWorldHint": True},
)
async def jenkins_trigger_build(
    ctx: Context,
    job_name: Annotated[str, Field(description="Job name or URL", min_length=1)],
    timeout: Annotated[
        float | None,
        Field(description="Seconds to wait for the build to leave the queue", gt=0),
    ] = None,
    parameters: Annotated[
        dict[str, str] | None, Field(description="Build parameters for parameterized jobs")
    ] = None,
) -> str:
    """Trigger a build and wait until it starts.

    Returns state STARTED_BUILDING with the build number, or CANCELLED_IN_QUEUE,
    STUCK_IN_QUEUE, or TIMED_OUT (build_number -1).
    """
    try:
        _check_write(ctx)
        status = await _get_toolkit(ctx).builds.build(
            _parse_jenkins_job_url(job_name), timeout, parameters
        )
        return _ok(status.to_dict())
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"jenkins", "builds", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def jenkins_get_build(
    ctx: Context,
    job_name: Annotated[str, Field(description="Job name, job URL, or build URL", min_length=1)],
    build_number: Annotated[
        int | None, Field(description="Build number (optional with a build URL)")
    ] = None,
) -> str:
    """Get details of a build: result, duration, and artifacts."""
    try:
        name, number = _build_target(job_name, build_number)
        build = await _get_toolkit(ctx).builds.get_build(name, number)
        return _ok(build.to_dict())
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"jenkins", "builds", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def jenkins_get_build_log(
    ctx: Context,
    job_name: Annotated[str, Field(description="Job name, job URL, or build URL", min_length=1)],
    build_number: Annotated[
        int | None, Field(description="Build number (optional with a build URL)")
    ] = None,
    tail_lines: Annotated[int, Field(description="Number of lines from the end to return")] = 200,
) -> str:
    """Get the console output of a build."""
    try:
        name, number = _build_target(job_name, build_number)
        log_text = await _get_toolkit(ctx).builds.get_build_logs(name, number)
        lines = log_text.splitlines()
        if tail_lines and len(lines) > tail_lines:
            lines = lines[-tail_lines:]
        return _ok(
            {
                "log": "\n".join(lines),
                "total_lines": len(log_text.splitlines()),
                "shown_lines": len(lines),
            }
        )
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"jenkins", "builds", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def jenkins_get_build_history(
    ctx: Context,
    job_name: Annotated[str, Field(description="Job name or URL", min_length=1)],
    include_console: Annotated[
        bool, Field(description="Also return each build's console text")
    ] = False,
) -> str:
    """Get details of the job's recent builds (at most 100), newest first.

    Makes one request per build (two with console text), so large histories
    take a while.
    """
    try:
        builds = await _get_toolkit(ctx).builds.get_build_history(
            _parse_jenkins_job_url(job_name), include_console
        )
        return _ok({"items": [b.to_dict() for b in builds], "count": len(builds)})
    except Exception as e:
        return _err(e)


# ════════════════════════════════════════════════════════════════════
# Artifacts
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"jenkins", "artifacts", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def jenkins_list_artifacts(
    ctx: Context,
    job_name: Annotated[str, Field(description="Job name, job URL, or build URL", min_length=1)],
    build_number: Annotated[
        int | None, Field(description="Build number (optional with a build URL)")
    ] = None,
) -> str:
    """List the artifacts archived by a build."""
    try:
        name, number = _build_target(job_name, build_number)
        artifacts = await _get_toolkit(ctx).artifacts.list_artifacts(name, number)
        return _ok([a.to_dict() for a in artifacts])
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"jenkins", "artifacts", "write"},
    annotations={"readOnlyHint": False, "idempotentHint": True, "openWorldHint": True},
)
async def jenkins_save_artifact(
    ctx: Context,
    job_name: Annotated[str, Field(description="Job name, job URL, or build URL", min_length=1)],
    artifact_pattern: Annotated[
        str,
        Field(description="Regular expression that must match the whole file name", min_length=1),
    ],
    output_path: Annotated[str, Field(description="Local file to write", min_length=1)],
    build_number: Annotated[
        int | None, Field(description="Build number (optional with a build URL)")
    ] = None,
) -> str:
    """Download the first artifact whose file name matches the pattern to a local file.

    Writes to local disk, so it is disabled in read-only mode.
    """
    try:
        _check_write(ctx)
        name, number = _build_target(job_name, build_number)
        path = await _get_toolkit(ctx).artifacts.save_artifact(
            name, number, artifact_pattern, output_path
        )
        return _ok({"status": "saved", "path": str(path), "size": path.stat().st_size})
    except Exception as e:
        return _err(e)
