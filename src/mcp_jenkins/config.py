"""Jenkins MCP server configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_FIRST_CHECK_DELAY = 5.0
DEFAULT_POLL_PERIOD = 2.0
DEFAULT_BUILD_TIMEOUT = 60.0


@dataclass
class JenkinsConfig:
    """Configuration for the Jenkins client, loaded from environment variables.

    Durations are in seconds. ``timeout`` is the per-request HTTP timeout;
    ``build_timeout`` is how long a trigger waits for the build to leave the queue.
    """

    url: str = ""
    user: str = ""
    token: str = ""
    read_only: bool = False
    timeout: int = 30
    ssl_verify: bool = True
    first_check_delay: float = DEFAULT_FIRST_CHECK_DELAY
    poll_period: float = DEFAULT_POLL_PERIOD
    build_timeout: float = DEFAULT_BUILD_TIMEOUT

    @classmethod
    def from_env(cls) -> JenkinsConfig:
        url = os.getenv("JENKINS_URL", "").rstrip("/")
        user = os.getenv("JENKINS_USER") or os.getenv("JENKINS_USERNAME", "")
        token = (
            os.getenv("JENKINS_TOKEN")
            or os.getenv("JENKINS_API_TOKEN")
            or os.getenv("JENKINS_PASSWORD", "")
        )
        read_only = os.getenv("JENKINS_READ_ONLY", "false").lower() in (
            "true",
            "1",
            "yes",
        )
        timeout = int(os.getenv("JENKINS_TIMEOUT", "30"))
        ssl_verify = os.getenv("JENKINS_SSL_VERIFY", "true").lower() not in (
            "false",
            "0",
            "no",
        )
        first_check_delay = float(
            os.getenv("JENKINS_FIRST_CHECK_DELAY", str(DEFAULT_FIRST_CHECK_DELAY))
        )
        poll_period = float(os.getenv("JENKINS_POLL_PERIOD", str(DEFAULT_POLL_PERIOD)))
        build_timeout = float(os.getenv("JENKINS_BUILD_TIMEOUT", str(DEFAULT_BUILD_TIMEOUT)))

        return cls(
            url=url,
            user=user,
            token=token,
            read_only=read_only,
            timeout=timeout,
            ssl_verify=ssl_verify,
            first_check_delay=first_check_delay,
            poll_period=poll_period,
            build_timeout=build_timeout,
        )

    def validate(self) -> None:
        if not self.url:
            msg = "JENKINS_URL environment variable is required"
            raise ValueError(msg)
        if not self.user:
            msg = "Jenkins user is required. Set JENKINS_USER or JENKINS_USERNAME"
            raise ValueError(msg)
        if not self.token:
            msg = (
                "Jenkins token is required. Set one of: JENKINS_TOKEN, "
                "JENKINS_API_TOKEN, or JENKINS_PASSWORD"
            )
            raise ValueError(msg)
        if self.first_check_delay < 0 or self.poll_period <= 0:
            msg = "JENKINS_FIRST_CHECK_DELAY must be >= 0 and JENKINS_POLL_PERIOD must be > 0"
            raise ValueError(msg)
