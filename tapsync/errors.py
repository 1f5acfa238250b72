"""Error types for tapsync."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple


class CLIError(Exception):
    """Raised for user-facing CLI errors."""


class InvalidReference(CLIError):
    """Malformed owner/repo/tag/url input."""


class CredentialNotFound(CLIError):
    pass


class AuthenticationFailed(CLIError):
    pass


class RepositoryAccessDenied(CLIError):
    pass


class ReleaseNotFound(CLIError):
    pass


class AssetNotFound(CLIError):
    def __init__(self, message: str, asset_names: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.asset_names: Tuple[str, ...] = tuple(asset_names)


class DownloadFailed(CLIError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FieldNotFound(CLIError):
    def __init__(self, field: str, missing: Sequence[str] = ()) -> None:
        names = list(missing) or [field]
        super().__init__(
            "formula is missing "
            + ", ".join(f"'{name}'" for name in names)
            + " assignment"
            + ("s" if len(names) > 1 else "")
        )
        self.field = field
        self.missing: Tuple[str, ...] = tuple(names)


class ChecksumMismatch(CLIError):
    def __init__(self, name: str, expected: str, actual: Optional[str] = None) -> None:
        detail = f"; got {actual}" if actual else ""
        super().__init__(f"SHA-256 mismatch for {name}; expected {expected}{detail}")
        self.expected = expected
        self.actual = actual


class GitHubAPIError(CLIError):
    """Transport-level failure talking to the GitHub API."""


class GitError(CLIError):
    pass
