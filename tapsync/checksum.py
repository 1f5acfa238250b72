"""SHA-256 helpers for release assets."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import BinaryIO, Iterable

from .constants import HASH_CHUNK_SIZE
from .errors import ChecksumMismatch, CLIError, InvalidReference

_HEX_PATTERN = re.compile(r"\b([A-Fa-f0-9]{64})\b")
_DIGEST_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def sha256_chunks(chunks: Iterable[bytes]) -> str:
    hasher = hashlib.sha256()
    for chunk in chunks:
        if chunk:
            hasher.update(chunk)
    return hasher.hexdigest()


def sha256_stream(handle: BinaryIO, *, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    return sha256_chunks(iter(lambda: handle.read(chunk_size), b""))


def sha256_digest(path: Path) -> str:
    with path.open("rb") as handle:
        return sha256_stream(handle)


def parse_checksum_text(text: str) -> str:
    # Accepts "<hex>  filename" (sha256sum), "SHA256 (filename) = <hex>"
    # (BSD shasum) and a bare digest.
    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line:
            continue
        match = _HEX_PATTERN.search(line)
        if match:
            return match.group(1).lower()
    raise CLIError("checksum text did not contain a SHA-256 digest")


def verify_sha256(path: Path, expected: str) -> str:
    digest = sha256_digest(path)
    if digest.lower() != expected.strip().lower():
        raise ChecksumMismatch(path.name, expected.strip().lower(), digest)
    return digest


def normalize_sha256(value: str) -> str:
    digest = (value or "").strip().lower()
    if not _DIGEST_PATTERN.match(digest):
        raise InvalidReference(
            f"invalid SHA-256 digest '{value}'; expected 64 hex characters"
        )
    return digest
