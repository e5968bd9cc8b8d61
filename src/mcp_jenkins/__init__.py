"""MCP server and client for triggering and inspecting Jenkins builds."""

import asyncio
import logging
import os

import click
from dotenv import load_dotenv


@click.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default="stdio",
    help="MCP transport type",
)
@click.option("--port", default=8000, help="Port for HTTP transports")
@click.option("--host", default="127.0.0.1", help="Host for HTTP transports")
@click.option("--jenkins-url", envvar="JENKINS_URL", help="Jenkins instance URL")
@click.option("--jenkins-user", envvar="JENKINS_USER", help="Jenkins user name")
@click.option("--jenkins-token", envvar="JENKINS_TOKEN", help="Jenkins API token or password")
@click.option("--read-only", is_flag=True, help="Disable write operations")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level (logs go to stderr)",
)
def main(
    transport: str,
    port: int,
    host: str,
    jenkins_url: str | None,
    jenkins_user: str | None,
    jenkins_token: str | None,
    read_only: bool,
    log_level: str,
) -> None:
    """Run the Jenkins MCP server."""
    load_dotenv()
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if jenkins_url:
        os.environ["JENKINS_URL"] = jenkins_url
    if jenkins_user:
        os.environ["JENKINS_USER"] = jenkins_user
    if jenkins_token:
        os.environ["JENKINS_TOKEN"] = jenkins_token
    if read_only:
        os.environ["JENKINS_READ_ONLY"] = "true"

    from .servers.jenkins import mcp

    run_kwargs: dict = {"transport": transport}
    if transport != "stdio":
        run_kwargs["host"] = host
        run_kwargs["port"] = port

    asyncio.run(mcp.run_async(show_banner=False, **run_kwargs))


if __name__ == "__main__":
    main()
