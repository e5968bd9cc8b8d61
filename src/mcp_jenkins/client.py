"""Jenkins API client using httpx."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .config import JenkinsConfig
from .exceptions import (
    JenkinsApiError,
    JenkinsAuthError,
    JenkinsNotFoundError,
    JenkinsProtocolError,
    JenkinsTransportError,
)
from .models.queue import QueueReference

logger = logging.getLogger(__name__)


class JenkinsClient:
    """Async HTTP client for the Jenkins remote access API."""

    def __init__(self, config: JenkinsConfig | None = None) -> None:
        self.config = config or JenkinsConfig.from_env()
        self.config.validate()
        self._client = httpx.AsyncClient(
            base_url=self.config.url,
            auth=httpx.BasicAuth(self.config.user, self.config.token),
            headers={"Accept": "application/json"},
            timeout=self.config.timeout,
            verify=self.config.ssl_verify,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── HTTP helpers ──────────────────────────────────────────────

    @staticmethod
    def _job_path(job_name: str) -> str:
        """Turn a job name into its URL path. Folders are separated by '/'."""
        parts = [p for p in job_name.strip("/").split("/") if p]
        if not parts:
            msg = f"Invalid job name: {job_name!r}"
            raise ValueError(msg)
        return "/" + "/".join(f"job/{quote(p, safe='')}" for p in parts)

    @staticmethod
    async def _raise_for_status(resp: httpx.Response) -> None:
        if resp.is_success:
            return
        await resp.aread()
        if resp.status_code in (401, 403):
            raise JenkinsAuthError(resp.status_code, resp.text)
        if resp.status_code == 404:
            raise JenkinsNotFoundError(resp.text[:500])
        raise JenkinsApiError(resp.status_code, resp.reason_phrase or "", resp.text[:500])

    async def _send(self, request: httpx.Request, *, stream: bool = False) -> httpx.Response:
        try:
            resp = await self._client.send(request, stream=stream)
        except httpx.TransportError as e:
            logger.debug("Transport failure on %s %s", request.method, request.url, exc_info=True)
            raise JenkinsTransportError(f"{request.method} {request.url} failed: {e}") from e
        try:
            await self._raise_for_status(resp)
        except JenkinsApiError:
            await resp.aclose()
            raise
        return resp

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        content: bytes | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = {}
        if extra_headers:
            headers.update(extra_headers)
        request = self._client.build_request(
            method, path, params=params, content=content, headers=headers
        )
        return await self._send(request)

    @staticmethod
    def _parse_json(resp: httpx.Response) -> Any:
        if resp.status_code == 204 or not resp.content:
            return None

        content_type = resp.headers.get("content-type", "")
        if "text/html" in content_type:
            msg = "Unexpected HTML response — check URL and authentication"
            raise JenkinsProtocolError(msg)

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            msg = f"JSON parse error: {e}: {resp.text[:500]}"
            raise JenkinsProtocolError(msg) from e

    async def get(
        self, path: str, params: dict[str, Any] | None = None, *, raw: bool = False
    ) -> Any:
        resp = await self._request("GET", path, params=params)
        if raw:
            return resp.text
        return self._parse_json(resp)

    async def post(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        content: bytes | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = await self.get_crumb()
        if extra_headers:
            headers.update(extra_headers)
        return await self._request(
            "POST", path, params=params, content=content, extra_headers=headers
        )

    async def get_crumb(self) -> dict[str, str]:
        """Return the CSRF crumb header, or an empty dict when the issuer is disabled."""
        try:
            data = await self.get("/crumbIssuer/api/json")
        except JenkinsNotFoundError:
            return {}
        if not data or not data.get("crumbRequestField") or not data.get("crumb"):
            return {}
        return {data["crumbRequestField"]: data["crumb"]}

    # ── Jobs ──────────────────────────────────────────────────────

    async def get_job(self, job_name: str) -> dict | None:
        """Fetch a job, or ``None`` when Jenkins does not know it."""
        try:
            return await self.get(f"{self._job_path(job_name)}/api/json")
        except JenkinsNotFoundError:
            logger.debug("Job %r not found", job_name)
            return None

    async def list_builds(self, job_name: str) -> list[dict]:
        """List the job's recent builds, newest first. Jenkins caps this at 100."""
        job = await self.get_job(job_name)
        if job is None:
            raise JenkinsNotFoundError(f"Job {job_name!r} not found")
        return job.get("builds") or []

    async def create_job(self, job_name: str, config_xml: str) -> None:
        await self.post(
            "/createItem",
            params={"name": job_name},
            content=config_xml.encode("utf-8"),
            extra_headers={"Content-Type": "application/xml"},
        )

    async def trigger_build(
        self, job_name: str, parameters: dict[str, Any] | None = None
    ) -> QueueReference | None:
        """Queue a build and return the queue item reference from the Location header."""
        endpoint = "buildWithParameters" if parameters else "build"
        resp = await self.post(f"{self._job_path(job_name)}/{endpoint}", params=parameters)
        location = resp.headers.get("location")
        if not location:
            return None
        return QueueReference(url=str(resp.url.join(location)))

    # ── Queue ─────────────────────────────────────────────────────

    async def get_queue_item(self, ref: QueueReference) -> dict | None:
        """Fetch a snapshot of a queue item, or ``None`` if Jenkins no longer has it."""
        try:
            return await self.get(ref.api_url)
        except JenkinsNotFoundError:
            return None

    # ── Builds ────────────────────────────────────────────────────

    async def get_build(self, job_name: str, build_number: int) -> dict:
        return await self.get(f"{self._job_path(job_name)}/{build_number}/api/json")

    async def get_console_text(self, job_name: str, build_number: int) -> str:
        return await self.get(
            f"{self._job_path(job_name)}/{build_number}/consoleText",
            raw=True,
        )

    async def open_artifact(
        self, job_name: str, build_number: int, relative_path: str
    ) -> httpx.Response:
        """Open a streaming download of a build artifact. The caller must close it."""
        path = f"{self._job_path(job_name)}/{build_number}/artifact/{quote(relative_path)}"
        request = self._client.build_request("GET", path, headers={"Accept": "*/*"})
        return await self._send(request, stream=True)
