"""Sync a tap formula with its upstream repository's latest release."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .assets import PlatformPair, select_platform_asset
from .console import log
from .constants import DEFAULT_PLATFORM_PRIORITY, DEFAULT_TAP_REPO
from .download import AssetDownloader, download_and_hash
from .errors import AssetNotFound, DownloadFailed, InvalidReference
from .formula import (
    FieldRewriter,
    RegexFieldRewriter,
    formula_path,
    read_formula,
    rewrite_fields,
    version_from_tag,
    write_formula,
)
from .git import GitRepository, commit_formula_update
from .github import GitHubClient
from .models import AssetInfo, Credential, ReleaseMetadata
from .urls import validate_repo_name


@dataclass
class SyncOptions:
    owner: str
    repo: str
    formula: str
    tap_repo: str = DEFAULT_TAP_REPO
    tap_dir: Path = field(default_factory=Path.cwd)
    platforms: List[PlatformPair] = field(
        default_factory=lambda: list(DEFAULT_PLATFORM_PRIORITY)
    )
    dry_run: bool = False
    commit: bool = True
    push: bool = True


@dataclass(frozen=True)
class SyncResult:
    formula_path: Path
    version: str
    url: str
    sha256: Optional[str]
    changed: bool
    written: bool
    committed: bool


class FormulaSynchronizer:
    def __init__(
        self,
        options: SyncOptions,
        *,
        github: GitHubClient,
        downloader: AssetDownloader,
        credential: Optional[Credential] = None,
        git: Optional[GitRepository] = None,
        rewriter: Optional[FieldRewriter] = None,
    ) -> None:
        validate_repo_name(options.owner, "owner")
        validate_repo_name(options.repo, "repository")
        if not options.formula.strip() or "/" in options.formula:
            raise InvalidReference(f"invalid formula name '{options.formula}'")
        self.options = options
        self.github = github
        self.downloader = downloader
        self.credential = credential
        self.git = git
        self.rewriter = rewriter or RegexFieldRewriter()

    def _select_asset(self, release: ReleaseMetadata) -> AssetInfo:
        if not release.assets:
            raise AssetNotFound(f"no assets found in release {release.tag_name}", [])
        asset = select_platform_asset(release.assets, self.options.platforms)
        if asset is None:
            wanted = ", ".join(f"{os_token}/{arch}" for os_token, arch in self.options.platforms)
            raise AssetNotFound(
                f"no archive matching {wanted} found in release {release.tag_name}.\n\n"
                f"Available assets: {', '.join(release.asset_names)}",
                release.asset_names,
            )
        return asset

    def compute_checksum(self, asset: AssetInfo) -> str:
        with tempfile.TemporaryDirectory(prefix="tapsync_") as tmp:
            destination = Path(tmp) / asset.name
            if self.credential is not None:
                return download_and_hash(
                    self.downloader, destination, asset=asset, credential=self.credential
                )
            if not asset.download_url:
                raise DownloadFailed(f"asset {asset.name} has no download URL")
            return download_and_hash(self.downloader, destination, url=asset.download_url)

    def run(self) -> SyncResult:
        opts = self.options
        path = formula_path(opts.tap_dir, opts.formula)
        release = self.github.latest_release(opts.owner, opts.repo)
        version = version_from_tag(release.tag_name, opts.formula)
        log(f"latest release of {opts.owner}/{opts.repo}: {release.tag_name} (version {version})")

        asset = self._select_asset(release)
        url = asset.download_url or asset.api_url
        log(f"selected asset {asset.name}")

        document = read_formula(path)
        current = self.rewriter.read(document)
        if current.version == version and current.url == url:
            log(f"{path.name} is already at {version}; nothing to do")
            return SyncResult(path, version, url, current.sha256, False, False, False)

        sha256 = self.compute_checksum(asset)
        log(f"SHA256: {sha256}")
        updated = rewrite_fields(document, version, url, sha256, rewriter=self.rewriter)

        if opts.dry_run:
            log("=== DRY RUN ===")
            log(f"would update {path} in {opts.tap_repo}:")
            log(f"  version: {current.version} -> {version}")
            log(f"  url: {url}")
            log(f"  sha256: {sha256}")
            return SyncResult(path, version, url, sha256, updated != document, False, False)

        write_formula(path, updated)
        log(f"updated {path}")
        log(f"  version: {version}")
        log(f"  url: {url}")
        log(f"  sha256: {sha256}")

        committed = False
        if opts.commit and self.git is not None:
            commit_formula_update(self.git, path, opts.formula, version, push=opts.push)
            committed = True
        return SyncResult(path, version, url, sha256, True, True, committed)

