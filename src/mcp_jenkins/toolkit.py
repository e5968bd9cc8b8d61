"""Wires the Jenkins client and services together from one configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .client import JenkinsClient
from .config import JenkinsConfig
from .services.artifacts import ArtifactsService
from .services.builds import BuildService
from .services.jobs import JobService


@dataclass(frozen=True)
class JenkinsToolkit:
    config: JenkinsConfig
    client: JenkinsClient
    jobs: JobService
    builds: BuildService
    artifacts: ArtifactsService

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> JenkinsToolkit:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def create_toolkit(config: JenkinsConfig | None = None) -> JenkinsToolkit:
    """Create a client and its services. Raises ValueError on incomplete config."""
    config = config or JenkinsConfig.from_env()
    client = JenkinsClient(config)
    return JenkinsToolkit(
        config=config,
        client=client,
        jobs=JobService(client),
        builds=BuildService(
            client,
            first_check_delay=config.first_check_delay,
            poll_period=config.poll_period,
            default_timeout=config.build_timeout,
        ),
        artifacts=ArtifactsService(client),
    )
