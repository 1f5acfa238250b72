"""Formula file field rewriting.

A formula is treated as flat text with three replaceable quoted assignments
(`version`, `url`, `sha256`). Only the first line-leading occurrence of each
is touched and every other byte is preserved.
"""

from __future__ import annotations

import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .constants import FORMULA_DIR_NAME
from .errors import CLIError, FieldNotFound

FIELD_NAMES = ("version", "url", "sha256")


def _field_pattern(name: str) -> re.Pattern[str]:
    return re.compile(
        rf'(?m)^(?P<prefix>[ \t]*{name}[ \t]+")(?P<value>[^"\n]*)(?P<suffix>")'
    )


@dataclass(frozen=True)
class FormulaFields:
    version: str
    url: str
    sha256: str

    def as_dict(self) -> Dict[str, str]:
        return {"version": self.version, "url": self.url, "sha256": self.sha256}


class FieldRewriter(Protocol):
    def read(self, document: str) -> FormulaFields: ...

    def rewrite(self, document: str, fields: FormulaFields) -> str: ...


class RegexFieldRewriter:
    """Replace the first `name "value"` assignment of each field."""

    def __init__(self) -> None:
        self.patterns: Dict[str, re.Pattern[str]] = {
            name: _field_pattern(name) for name in FIELD_NAMES
        }

    def _locate(self, document: str) -> Dict[str, re.Match[str]]:
        matches: Dict[str, re.Match[str]] = {}
        missing: List[str] = []
        for name in FIELD_NAMES:
            match = self.patterns[name].search(document)
            if match is None:
                missing.append(name)
            else:
                matches[name] = match
        if missing:
            raise FieldNotFound(missing[0], missing)
        return matches

    def read(self, document: str) -> FormulaFields:
        matches = self._locate(document)
        return FormulaFields(**{name: m.group("value") for name, m in matches.items()})

    def rewrite(self, document: str, fields: FormulaFields) -> str:
        matches = self._locate(document)
        values = fields.as_dict()
        # Splice from the end so earlier offsets stay valid.
        ordered = sorted(matches.items(), key=lambda item: item[1].start("value"), reverse=True)
        updated = document
        for name, match in ordered:
            start, end = match.span("value")
            updated = updated[:start] + values[name] + updated[end:]
        return updated


def _validate_value(name: str, value: str) -> None:
    if '"' in value or "\n" in value:
        raise CLIError(f"refusing to write {name} containing a quote or newline: {value!r}")


def rewrite_fields(
    document: str,
    version: str,
    url: str,
    sha256: str,
    rewriter: Optional[FieldRewriter] = None,
) -> str:
    fields = FormulaFields(version=version, url=url, sha256=sha256)
    for name, value in fields.as_dict().items():
        _validate_value(name, value)
    return (rewriter or RegexFieldRewriter()).rewrite(document, fields)


def read_fields(document: str, rewriter: Optional[FieldRewriter] = None) -> FormulaFields:
    return (rewriter or RegexFieldRewriter()).read(document)


def version_from_tag(tag: str, formula_name: str) -> str:
    """Strip a leading `v`, then a leading `<formula>-v`, in that order."""
    version = tag
    if version.startswith("v"):
        version = version[1:]
    prefix = f"{formula_name}-v"
    if formula_name and version.startswith(prefix):
        version = version[len(prefix) :]
    return version


def formula_path(tap_dir: Path, formula_name: str) -> Path:
    return tap_dir / FORMULA_DIR_NAME / f"{formula_name}.rb"


def read_formula(path: Path) -> str:
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except FileNotFoundError as exc:
        raise CLIError(f"formula file not found: {path}") from exc
    except OSError as exc:
        raise CLIError(f"unable to read formula {path}: {exc}") from exc


def write_formula(path: Path, text: str) -> None:
    try:
        mode = path.stat().st_mode & 0o777
    except OSError:
        mode = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(text)
            if mode is not None:
                os.chmod(tmp, mode)
            os.replace(tmp, path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise CLIError(f"unable to write formula {path}: {exc}") from exc
