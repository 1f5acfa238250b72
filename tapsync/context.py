"""Application context for injectable dependencies."""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Sequence

import httpx

from .constants import API_URL_ENV_VAR, DEFAULT_GITHUB_API_URL
from .http import http_timeout

HttpClientFactory = Callable[[httpx.Timeout], httpx.Client]
CommandRunner = Callable[..., "subprocess.CompletedProcess[str]"]
WhichFunction = Callable[[str], Optional[str]]


def default_http_client_factory(timeout: httpx.Timeout) -> httpx.Client:
    return httpx.Client(timeout=timeout, follow_redirects=True)


def default_command_runner(
    argv: Sequence[str], *, cwd: Optional[str] = None
) -> "subprocess.CompletedProcess[str]":
    return subprocess.run(
        list(argv),
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )


@dataclass(frozen=True)
class AppContext:
    """Process-level dependencies (environment, HTTP, subprocesses)."""

    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    api_url: str = DEFAULT_GITHUB_API_URL
    http_client_factory: HttpClientFactory = default_http_client_factory
    run_command: CommandRunner = default_command_runner
    which: WhichFunction = shutil.which
    sleep: Callable[[float], None] = time.sleep

    def new_http_client(self, timeout: Optional[httpx.Timeout] = None) -> httpx.Client:
        return self.http_client_factory(timeout or http_timeout())

    def env(self, name: str) -> str:
        return (self.environ.get(name) or "").strip()


def context_from_environment(api_url: Optional[str] = None) -> AppContext:
    environ = dict(os.environ)
    resolved = (api_url or environ.get(API_URL_ENV_VAR) or "").strip()
    return AppContext(
        environ=environ,
        api_url=(resolved or DEFAULT_GITHUB_API_URL).rstrip("/"),
    )
