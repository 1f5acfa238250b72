"""Platform asset selection for release archives."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import ARCHIVE_EXTENSIONS, DEFAULT_PLATFORM_PRIORITY
from .errors import CLIError
from .models import AssetInfo

PlatformPair = Tuple[str, str]


def is_archive(name: str) -> bool:
    return name.endswith(ARCHIVE_EXTENSIONS)


def select_platform_asset(
    assets: Sequence[AssetInfo],
    pairs: Iterable[PlatformPair] = DEFAULT_PLATFORM_PRIORITY,
) -> Optional[AssetInfo]:
    """Return the first archive matching the highest-priority (os, arch) pair."""
    for os_token, arch_token in pairs:
        for asset in assets:
            name = asset.name
            if os_token in name and arch_token in name and is_archive(name):
                return asset
    return None


def parse_platform(value: str) -> PlatformPair:
    raw = (value or "").strip()
    os_token, sep, arch_token = raw.partition("/")
    if not sep or not os_token.strip() or not arch_token.strip():
        raise CLIError(f"invalid platform '{value}'; expected OS/ARCH (e.g. darwin/arm64)")
    return os_token.strip(), arch_token.strip()


def parse_platforms(values: Iterable[str]) -> List[PlatformPair]:
    return [parse_platform(value) for value in values]
