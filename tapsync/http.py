"""Shared HTTP helpers for tapsync."""

from __future__ import annotations

import json
from typing import Dict, Optional

import httpx

from .constants import (
    GITHUB_API_VERSION,
    GITHUB_JSON_MEDIA_TYPE,
    HTTP_TIMEOUT_SECONDS,
    OCTET_STREAM_MEDIA_TYPE,
)
from .utils import safe_str
from .version import USER_AGENT

AUTH_FAILURE_STATUSES = frozenset({401, 403})


def http_timeout() -> httpx.Timeout:
    return httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=HTTP_TIMEOUT_SECONDS)


def request_headers(
    token: Optional[str] = None,
    *,
    accept: str = GITHUB_JSON_MEDIA_TYPE,
) -> Dict[str, str]:
    headers = {
        "Accept": accept,
        "User-Agent": USER_AGENT,
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def download_headers(token: Optional[str] = None) -> Dict[str, str]:
    return request_headers(token, accept=OCTET_STREAM_MEDIA_TYPE)


def is_auth_failure(status_code: int) -> bool:
    return status_code in AUTH_FAILURE_STATUSES


def response_message(response: httpx.Response) -> str:
    """Return GitHub's `message` field, or the first body line."""
    try:
        body = (response.text or "").strip()
    except httpx.ResponseNotRead:
        return ""
    if not body:
        return ""
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        data = None
    if isinstance(data, dict):
        extracted = safe_str(data.get("message") or data.get("error"))
        if extracted and extracted.strip():
            return extracted.strip()
    return body.splitlines()[0].strip()


def describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        detail = f"{response.status_code} {response.reason_phrase}".strip()
        suffix = response_message(response)
        if suffix:
            detail = f"{detail}: {suffix}" if detail else suffix
        return detail

    request = None
    try:
        request = exc.request
    except RuntimeError:
        request = None
    target = ""
    if request is not None:
        target = f"{request.method} {request.url}".strip()

    message = str(exc).strip()
    summary = message or exc.__class__.__name__
    if isinstance(exc, httpx.TimeoutException):
        summary = "request timed out"
        if message and "timed out" not in message.lower():
            summary = f"{summary}: {message}"
    elif isinstance(exc, httpx.ConnectError):
        summary = "failed to connect"
        if message and "connect" not in message.lower():
            summary = f"{summary}: {message}"
    elif isinstance(exc, httpx.ProxyError):
        summary = "proxy error"
        if message and "proxy" not in message.lower():
            summary = f"{summary}: {message}"
    elif isinstance(exc, httpx.RequestError):
        summary = "network error"
        if message and "network" not in message.lower():
            summary = f"{summary}: {message}"

    if target and target not in summary:
        summary = f"{summary} ({target})"
    return summary


def describe_status(response: httpx.Response) -> str:
    detail = f"{response.status_code} {response.reason_phrase}".strip()
    message = response_message(response)
    return f"{detail}: {message}" if message else detail
