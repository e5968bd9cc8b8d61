"""Resolving and downloading build artifacts."""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from pathlib import Path

import httpx

from ..client import JenkinsClient
from ..exceptions import JenkinsNotFoundError, JenkinsTransportError
from ..models.builds import Artifact, Build

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8 * 1024


class ArtifactStream:
    """Content of one artifact, streamed from Jenkins.

    Use as an async context manager, or call :meth:`aclose` when done.
    """

    def __init__(self, artifact: Artifact, response: httpx.Response) -> None:
        self.artifact = artifact
        self._response = response

    @property
    def file_name(self) -> str:
        return self.artifact.file_name

    def _transport_error(self, error: httpx.TransportError) -> JenkinsTransportError:
        return JenkinsTransportError(
            f"Reading artifact {self.artifact.relative_path} failed: {error}"
        )

    async def aiter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes(chunk_size):
                yield chunk
        except httpx.TransportError as e:
            raise self._transport_error(e) from e

    async def aread(self) -> bytes:
        try:
            return await self._response.aread()
        except httpx.TransportError as e:
            raise self._transport_error(e) from e

    async def aclose(self) -> None:
        await self._response.aclose()

    async def __aenter__(self) -> ArtifactStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class ArtifactsService:
    """Finds build artifacts by file name pattern."""

    def __init__(self, client: JenkinsClient) -> None:
        self.client = client

    async def find_artifact(
        self, job_name: str, build_number: int, pattern: str
    ) -> Artifact | None:
        """Return the first artifact whose file name fully matches ``pattern``.

        Artifacts are checked in the order Jenkins lists them. Returns ``None``
        when the build does not exist or nothing matches.

        Raises:
            JenkinsNotFoundError: the job does not exist.
            re.error: ``pattern`` is not a valid regular expression.
        """
        regex = re.compile(pattern)
        if await self.client.get_job(job_name) is None:
            logger.error("Cannot fetch job %r from Jenkins", job_name)
            raise JenkinsNotFoundError(f"Unable to find job for name {job_name!r}")
        try:
            data = await self.client.get_build(job_name, build_number)
        except JenkinsNotFoundError:
            logger.debug("Cannot find build %s #%d", job_name, build_number)
            return None
        build = Build.model_validate(data)
        for artifact in build.artifacts:
            if regex.fullmatch(artifact.file_name):
                return artifact
        logger.debug("No artifact of %s #%d matches %r", job_name, build_number, pattern)
        return None

    async def list_artifacts(self, job_name: str, build_number: int) -> list[Artifact]:
        data = await self.client.get_build(job_name, build_number)
        return Build.model_validate(data).artifacts

    async def stream_artifact(
        self, job_name: str, build_number: int, pattern: str
    ) -> ArtifactStream | None:
        """Open the first artifact matching ``pattern``, or return ``None``."""
        artifact = await self.find_artifact(job_name, build_number, pattern)
        if artifact is None:
            return None
        logger.debug("Streaming artifact %s", artifact.relative_path)
        response = await self.client.open_artifact(job_name, build_number, artifact.relative_path)
        return ArtifactStream(artifact, response)

    async def save_artifact(
        self,
        job_name: str,
        build_number: int,
        pattern: str,
        output_path: str | Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> Path:
        """Download the first artifact matching ``pattern`` to ``output_path``.

        Raises:
            JenkinsNotFoundError: the job, build or a matching artifact does not exist.
            JenkinsTransportError: the connection dropped while reading the artifact.
        """
        stream = await self.stream_artifact(job_name, build_number, pattern)
        if stream is None:
            raise JenkinsNotFoundError(
                f"No artifact matching {pattern!r} in {job_name} #{build_number}"
            )
        output = Path(output_path)
        async with stream:
            with output.open("wb") as f:
                async for chunk in stream.aiter_bytes(chunk_size):
                    f.write(chunk)
        logger.debug("Saved %s to %s", stream.file_name, output)
        return output
