"""URL helpers for GitHub API endpoints and release download links."""

from __future__ import annotations

import re
from typing import Tuple
from urllib.parse import quote

import httpx

from .errors import InvalidReference

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_RELEASE_DOWNLOAD_PATTERN = re.compile(
    r"^https://github\.com/([^/]+)/([^/]+)/releases/download/([^/]+)/(\S+)$"
)


def api_url(base_url: str, *segments: str) -> str:
    """Join quoted path segments onto the API base URL."""
    parsed = httpx.URL(base_url)
    if not parsed.scheme or not parsed.host:
        raise InvalidReference(
            f"invalid GitHub API URL '{base_url}'; include scheme and host"
        )
    path = "/".join(quote(segment, safe="") for segment in segments)
    return f"{base_url.rstrip('/')}/{path}"


def validate_repo_name(value: str, label: str) -> str:
    normalized = value or ""
    if not normalized.strip():
        raise InvalidReference(f"{label} is required")
    if not _NAME_PATTERN.match(normalized) or normalized in {".", ".."}:
        raise InvalidReference(f"invalid {label} '{value}'")
    return normalized


def parse_release_download_url(url: str) -> Tuple[str, str, str, str]:
    """Split a github.com release download URL into owner, repo, tag, filename."""
    match = _RELEASE_DOWNLOAD_PATTERN.match((url or "").strip())
    if not match:
        raise InvalidReference(
            f"invalid GitHub release URL '{url}'; expected "
            "https://github.com/<owner>/<repo>/releases/download/<tag>/<file>"
        )
    owner, repo, tag, filename = match.groups()
    return owner, repo, tag, filename
