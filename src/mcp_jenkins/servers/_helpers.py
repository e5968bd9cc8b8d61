"""Shared helper functions for server modules."""

from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit

# ════════════════════════════════════════════════════════════════════
# Jenkins URL parsing
# ════════════════════════════════════════════════════════════════════

# Matches:  [/<context>]/job/<a>[/job/<b>...][/<build number>][/...]
_JOB_PATH_RE = re.compile(r"((?:/job/[^/]+)+)(?:/(\d+))?(?:/|$)")


def _parse_jenkins_build_url(value: str) -> tuple[str, str]:
    """Extract (job_name, build_number) from a Jenkins job or build URL.

    Folder jobs come back as 'folder/job'. If *value* is not a URL, returns it
    unchanged as (value, "").
    """
    if not value.startswith(("http://", "https://")):
        return value, ""
    m = _JOB_PATH_RE.search(urlsplit(value).path)
    if not m:
        return value, ""
    names = [unquote(n) for n in m.group(1).split("/job/") if n]
    return "/".join(names), m.group(2) or ""


def _parse_jenkins_job_url(value: str) -> str:
    """Extract the job name from a Jenkins job URL.

    If *value* is not a URL, returns it unchanged.
    """
    return _parse_jenkins_build_url(value)[0]
