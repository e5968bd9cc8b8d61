"""Shared test fixtures for mcp-jenkins."""

from __future__ import annotations

import httpx
import pytest
import respx

from mcp_jenkins.client import JenkinsClient
from mcp_jenkins.config import JenkinsConfig

TEST_URL = "https://jenkins.example.com"
TEST_USER = "admin"
TEST_TOKEN = "test-token"


@pytest.fixture
def config() -> JenkinsConfig:
    return JenkinsConfig(
        url=TEST_URL,
        user=TEST_USER,
        token=TEST_TOKEN,
        first_check_delay=0.3,
        poll_period=0.05,
    )


@pytest.fixture
def client(config: JenkinsConfig) -> JenkinsClient:
    return JenkinsClient(config)


@pytest.fixture
def mock_api() -> respx.MockRouter:
    """respx router on the Jenkins base URL, with the crumb issuer disabled."""
    with respx.mock(base_url=TEST_URL, assert_all_called=False) as router:
        router.get("/crumbIssuer/api/json").mock(return_value=httpx.Response(404))
        yield router
