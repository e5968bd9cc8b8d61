"""Creating jobs from the bundled job template."""

from __future__ import annotations

import functools
from pathlib import Path
from string import Template
from xml.sax.saxutils import escape

from ..client import JenkinsClient
from ..exceptions import JenkinsNotFoundError
from ..models.jobs import BuildParameter, Job

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
JOB_TEMPLATE = "job.xml"


@functools.cache
def _load_template(filename: str) -> str:
    """Load a template with path traversal protection.

    Results are cached, templates do not change at runtime.
    """
    if "/" in filename or "\\" in filename or ".." in filename:
        msg = f"Invalid filename: {filename}"
        raise ValueError(msg)
    return (_TEMPLATES_DIR / filename).read_text(encoding="utf-8")


def render_job_config(git_repo: str, git_branch: str, template: str = JOB_TEMPLATE) -> str:
    """Render the job XML for a git repository and branch.

    Uses string.Template so stray ``{`` in values cannot break rendering;
    values are XML-escaped.
    """
    return Template(_load_template(template)).safe_substitute(
        GIT_REPO_URL=escape(git_repo),
        GIT_REPO_BRANCH=escape(git_branch),
    )


class JobService:
    def __init__(self, client: JenkinsClient) -> None:
        self.client = client

    async def create(self, job_name: str, git_repo: str, git_branch: str) -> None:
        """Create a pipeline job that builds ``git_branch`` of ``git_repo``."""
        await self.client.create_job(job_name, render_job_config(git_repo, git_branch))

    async def get(self, job_name: str) -> Job:
        data = await self.client.get_job(job_name)
        if data is None:
            raise JenkinsNotFoundError(f"Unable to find job for name {job_name!r}")
        return Job.model_validate(data)

    async def get_parameters(self, job_name: str) -> list[BuildParameter]:
        return (await self.get(job_name)).parameters
