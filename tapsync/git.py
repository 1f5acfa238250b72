"""Git helpers for committing formula updates."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Sequence

from .console import log
from .context import AppContext
from .errors import GitError
from .utils import format_cli_command, redact


class GitRepository:
    """Run git commands inside a tap checkout."""

    def __init__(self, context: AppContext, root: Path) -> None:
        self.context = context
        self.root = root

    def _run(self, *args: str) -> str:
        binary = self.context.which("git")
        if not binary:
            raise GitError("git is not installed (required to commit formula updates)")
        cmd: List[str] = [binary, *args]
        log(f"exec {redact(format_cli_command(['git', *args]))}")
        try:
            proc = self.context.run_command(cmd, cwd=str(self.root))
        except (OSError, subprocess.SubprocessError) as exc:
            raise GitError(f"failed to run git: {exc}") from exc
        if proc.returncode != 0:
            output = redact((proc.stderr or proc.stdout or "").strip())
            suffix = f": {output}" if output else ""
            raise GitError(f"git {args[0]} failed with status {proc.returncode}{suffix}")
        return proc.stdout or ""

    def add(self, paths: Sequence[Path]) -> None:
        self._run("add", "--", *(self._relative(path) for path in paths))

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def push(self) -> None:
        self._run("push")

    def _relative(self, path: Path) -> str:
        try:
            return str(path.resolve().relative_to(self.root.resolve()))
        except ValueError:
            return str(path)


def commit_message(formula_name: str, version: str) -> str:
    return f"Update {formula_name} to {version}"


def commit_formula_update(
    repo: GitRepository,
    path: Path,
    formula_name: str,
    version: str,
    *,
    push: bool = True,
) -> None:
    repo.add([path])
    repo.commit(commit_message(formula_name, version))
    if push:
        repo.push()
