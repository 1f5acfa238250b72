"""Release and asset models for tapsync."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import InvalidReference
from .urls import parse_release_download_url, validate_repo_name
from .utils import as_dict, mask_token, safe_str


@dataclass(frozen=True)
class ReleaseReference:
    """One downloadable artifact: owner/repo/tag/asset filename."""

    owner: str
    repo: str
    tag: str
    asset_filename: str

    def __post_init__(self) -> None:
        validate_repo_name(self.owner, "owner")
        validate_repo_name(self.repo, "repository")
        if not (self.tag or "").strip():
            raise InvalidReference("release tag is required")
        if any(ch.isspace() for ch in self.tag):
            raise InvalidReference(f"invalid release tag '{self.tag}'")
        filename = (self.asset_filename or "").strip()
        if not filename:
            raise InvalidReference("asset filename is required")
        if "/" in filename:
            raise InvalidReference(f"invalid asset filename '{self.asset_filename}'")

    @classmethod
    def from_url(cls, url: str) -> "ReleaseReference":
        owner, repo, tag, filename = parse_release_download_url(url)
        return cls(owner=owner, repo=repo, tag=tag, asset_filename=filename)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class Credential:
    token: str
    source: str

    def __repr__(self) -> str:
        return f"Credential(token={mask_token(self.token)!r}, source={self.source!r})"

    __str__ = __repr__


@dataclass(frozen=True)
class AssetInfo:
    name: str
    id: Optional[int]
    api_url: str
    download_url: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "AssetInfo":
        record = as_dict(payload)
        size = record.get("size")
        return cls(
            name=safe_str(record.get("name")) or "",
            id=record.get("id") if isinstance(record.get("id"), int) else None,
            api_url=safe_str(record.get("url")) or "",
            download_url=safe_str(record.get("browser_download_url")),
            size=size if isinstance(size, int) else None,
        )


@dataclass(frozen=True)
class ReleaseMetadata:
    tag_name: str
    assets: Tuple[AssetInfo, ...] = field(default_factory=tuple)
    name: Optional[str] = None
    draft: bool = False
    prerelease: bool = False

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ReleaseMetadata":
        record = as_dict(payload)
        raw_assets = record.get("assets")
        assets: List[AssetInfo] = []
        if isinstance(raw_assets, list):
            for entry in raw_assets:
                if isinstance(entry, dict):
                    assets.append(AssetInfo.from_api(entry))
        return cls(
            tag_name=safe_str(record.get("tag_name")) or "",
            assets=tuple(assets),
            name=safe_str(record.get("name")),
            draft=bool(record.get("draft")),
            prerelease=bool(record.get("prerelease")),
        )

    @property
    def asset_names(self) -> List[str]:
        return [asset.name for asset in self.assets]

    def find_asset(self, filename: str) -> Optional[AssetInfo]:
        for asset in self.assets:
            if asset.name == filename:
                return asset
        return None


class DownloadPolicy(enum.Flag):
    """How strict a resolution is about tokens and helper fallbacks.

    REQUIRE_TOKEN fails fast with CredentialNotFound when no token is found.
    ALLOW_FALLBACK_HELPERS permits `gh auth token`, the keyring and the curl
    transport fallback.
    """

    NONE = 0
    REQUIRE_TOKEN = enum.auto()
    ALLOW_FALLBACK_HELPERS = enum.auto()
    PRIVATE = REQUIRE_TOKEN | ALLOW_FALLBACK_HELPERS
    PUBLIC = ALLOW_FALLBACK_HELPERS
