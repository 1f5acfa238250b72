from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

import tapsync.constants as constants
from tapsync.context import AppContext


class MemoryKeyring(KeyringBackend):
    priority = 1

    def __init__(self) -> None:
        self._storage: Dict[tuple, str] = {}

    def get_password(self, service: str, username: str) -> Optional[str]:
        return self._storage.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self._storage[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        try:
            del self._storage[(service, username)]
        except KeyError as exc:
            raise PasswordDeleteError(str(exc)) from exc


@pytest.fixture(autouse=True)
def memory_keyring() -> None:
    original = keyring.get_keyring()
    keyring.set_keyring(MemoryKeyring())
    try:
        yield
    finally:
        keyring.set_keyring(original)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path) -> None:
    for name in constants.TOKEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv(constants.API_URL_ENV_VAR, raising=False)
    monkeypatch.delenv(constants.VERBOSE_ENV_VAR, raising=False)
    monkeypatch.setenv(constants.CONFIG_ENV_VAR, str(tmp_path / "config" / "config.toml"))


class FakeRunner:
    """Records subprocess invocations and replays scripted results."""

    def __init__(self, results: Optional[List[Any]] = None) -> None:
        self.results = list(results or [])
        self.calls: List[Dict[str, Any]] = []

    def __call__(
        self, argv: Sequence[str], *, cwd: Optional[str] = None
    ) -> "subprocess.CompletedProcess[str]":
        self.calls.append({"argv": list(argv), "cwd": cwd})
        if not self.results:
            return subprocess.CompletedProcess(list(argv), 0, stdout="", stderr="")
        result = self.results.pop(0)
        if callable(result):
            result = result(list(argv))
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, int):
            return subprocess.CompletedProcess(list(argv), result, stdout="", stderr="")
        return result


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_runner() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def make_context() -> Callable[..., AppContext]:
    def _make(
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        *,
        environ: Optional[Dict[str, str]] = None,
        runner: Optional[FakeRunner] = None,
        binaries: Sequence[str] = (),
        sleeps: Optional[List[float]] = None,
        api_url: str = constants.DEFAULT_GITHUB_API_URL,
    ) -> AppContext:
        def unexpected(request: httpx.Request) -> httpx.Response:
            raise AssertionError(f"unexpected request {request.method} {request.url}")

        transport = httpx.MockTransport(handler or unexpected)

        def factory(timeout: httpx.Timeout) -> httpx.Client:
            return httpx.Client(transport=transport, timeout=timeout, follow_redirects=True)

        available = set(binaries)
        recorded = sleeps if sleeps is not None else []
        return AppContext(
            environ=dict(environ or {}),
            api_url=api_url,
            http_client_factory=factory,
            run_command=runner or FakeRunner(),
            which=lambda name: f"/usr/bin/{name}" if name in available else None,
            sleep=recorded.append,
        )

    return _make


def release_payload(
    tag: str,
    names: Sequence[str],
    *,
    owner: str = "acme",
    repo: str = "widget",
) -> Dict[str, Any]:
    assets = []
    for index, name in enumerate(names, start=1):
        assets.append(
            {
                "id": index,
                "name": name,
                "size": 10,
                "url": f"https://api.github.com/repos/{owner}/{repo}/releases/assets/{index}",
                "browser_download_url": (
                    f"https://github.com/{owner}/{repo}/releases/download/{tag}/{name}"
                ),
            }
        )
    return {"tag_name": tag, "name": tag, "draft": False, "prerelease": False, "assets": assets}


FORMULA_TEMPLATE = """\
class Widget < Formula
  desc "Widget command-line tool"
  homepage "https://github.com/acme/widget"
  version "{version}"
  url "{url}"
  sha256 "{sha256}"
  license "MIT"

  def install
    bin.install "widget"
  end
end
"""


def write_formula_file(tap_dir: Path, name: str, *, version: str, url: str, sha256: str) -> Path:
    path = tap_dir / "Formula" / f"{name}.rb"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(FORMULA_TEMPLATE.format(version=version, url=url, sha256=sha256), encoding="utf-8")
    return path
