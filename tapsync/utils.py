"""Shared utility helpers for tapsync."""

from __future__ import annotations

import re
import shlex
from pathlib import Path
from typing import Any, Dict, Optional, Sequence


def format_cli_command(argv: Sequence[str]) -> str:
    return shlex.join(str(part) for part in argv)


_SENSITIVE_KV_PATTERN = re.compile(
    r"(?i)\b(token|access_token|password|secret|api_key|apikey)\b\s*([:=])\s*([^\s]+)"
)
_AUTH_HEADER_PATTERN = re.compile(
    r"(?i)\bAuthorization:\s*(Bearer|token)\s+([^\s'\"]+)"
)
_GITHUB_TOKEN_PATTERN = re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b")


def redact(text: str) -> str:
    """Best-effort redaction for GitHub tokens and auth headers in logs."""
    value = str(text)
    value = _AUTH_HEADER_PATTERN.sub(lambda m: f"Authorization: {m.group(1)} ***", value)
    value = _SENSITIVE_KV_PATTERN.sub(lambda m: f"{m.group(1)}{m.group(2)}***", value)
    value = _GITHUB_TOKEN_PATTERN.sub("***", value)
    return value


def mask_token(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


def remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        pass


def safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}
