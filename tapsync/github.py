"""GitHub release lookups for tapsync."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .console import debug, log
from .constants import RELEASES_MAX_PAGES, RELEASES_PAGE_SIZE
from .context import AppContext
from .errors import (
    AssetNotFound,
    AuthenticationFailed,
    GitHubAPIError,
    ReleaseNotFound,
    RepositoryAccessDenied,
)
from .http import describe_http_error, describe_status, is_auth_failure, request_headers
from .models import AssetInfo, Credential, ReleaseMetadata, ReleaseReference
from .urls import api_url


def authentication_failed(detail: str) -> AuthenticationFailed:
    return AuthenticationFailed(
        f"authentication failed: {detail}\n\n"
        "Your token may be invalid or expired. Try:\n"
        "1. gh auth refresh\n"
        "2. create a new token at https://github.com/settings/tokens"
    )


def repository_access_denied(owner: str, repo: str) -> RepositoryAccessDenied:
    return RepositoryAccessDenied(
        f"GitHub token cannot access the repository: {owner}/{repo}\n\n"
        "The token may not have permission to access the repository or the "
        "formula URL may be incorrect.\n\n"
        "Try running: gh auth refresh --scopes repo"
    )


class GitHubClient:
    """Thin GitHub REST client bound to one credential.

    Only a 404 on the tag lookup triggers the all-releases fallback; every
    other failure is terminal for the invocation.
    """

    def __init__(
        self,
        context: AppContext,
        credential: Optional[Credential] = None,
        *,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.context = context
        self.credential = credential
        self._client = client
        self._owns_client = client is None

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = self.context.new_http_client()
        return self._client

    def _headers(self) -> Dict[str, str]:
        token = self.credential.token if self.credential else None
        return request_headers(token)

    def _get(self, *segments: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        url = api_url(self.context.api_url, *segments)
        debug(f"GET {url}")
        try:
            return self.client.get(url, headers=self._headers(), params=params)
        except httpx.HTTPError as exc:
            raise GitHubAPIError(
                f"GitHub API request failed: {describe_http_error(exc)}"
            ) from exc

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise GitHubAPIError(
                f"GitHub API response from {response.request.url} was not valid JSON"
            ) from exc

    def check_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        response = self._get("repos", owner, repo)
        if response.status_code == 404:
            raise repository_access_denied(owner, repo)
        if is_auth_failure(response.status_code):
            raise authentication_failed(describe_status(response))
        if not response.is_success:
            raise GitHubAPIError(
                f"failed to look up repository {owner}/{repo}: {describe_status(response)}"
            )
        payload = self._json(response)
        return payload if isinstance(payload, dict) else {}

    def release_by_tag(self, owner: str, repo: str, tag: str) -> ReleaseMetadata:
        response = self._get("repos", owner, repo, "releases", "tags", tag)
        if response.status_code == 404:
            log(f"release metadata for {tag} not found; scanning all releases")
            return self._find_release_in_listing(owner, repo, tag)
        if is_auth_failure(response.status_code):
            raise authentication_failed(describe_status(response))
        if not response.is_success:
            raise ReleaseNotFound(
                f"unable to fetch release metadata for {tag} in {owner}/{repo}: "
                f"{describe_status(response)}"
            )
        return ReleaseMetadata.from_api(self._json(response))

    def list_releases(self, owner: str, repo: str) -> List[ReleaseMetadata]:
        releases: List[ReleaseMetadata] = []
        for page in range(1, RELEASES_MAX_PAGES + 1):
            response = self._get(
                "repos",
                owner,
                repo,
                "releases",
                params={"per_page": RELEASES_PAGE_SIZE, "page": page},
            )
            if is_auth_failure(response.status_code):
                raise authentication_failed(describe_status(response))
            if not response.is_success:
                raise ReleaseNotFound(
                    f"unable to list releases for {owner}/{repo}: {describe_status(response)}"
                )
            payload = self._json(response)
            if not isinstance(payload, list):
                raise GitHubAPIError("unexpected release listing payload structure")
            releases.extend(
                ReleaseMetadata.from_api(entry) for entry in payload if isinstance(entry, dict)
            )
            if len(payload) < RELEASES_PAGE_SIZE:
                return releases
        log(
            f"stopped listing releases for {owner}/{repo} after {RELEASES_MAX_PAGES} pages "
            f"({len(releases)} releases); older releases were not scanned"
        )
        return releases

    def _find_release_in_listing(self, owner: str, repo: str, tag: str) -> ReleaseMetadata:
        for release in self.list_releases(owner, repo):
            if release.tag_name == tag:
                return release
        raise ReleaseNotFound(f"release {tag} not found in {owner}/{repo}")

    def latest_release(self, owner: str, repo: str) -> ReleaseMetadata:
        response = self._get("repos", owner, repo, "releases", "latest")
        if response.status_code == 404:
            raise ReleaseNotFound(f"no published release found for {owner}/{repo}")
        if is_auth_failure(response.status_code):
            raise authentication_failed(describe_status(response))
        if not response.is_success:
            raise ReleaseNotFound(
                f"failed to fetch latest release for {owner}/{repo}: {describe_status(response)}"
            )
        return ReleaseMetadata.from_api(self._json(response))


def find_release_asset(release: ReleaseMetadata, filename: str) -> AssetInfo:
    asset = release.find_asset(filename)
    if asset is not None:
        return asset
    names = release.asset_names
    available = ", ".join(names) if names else "(none)"
    raise AssetNotFound(
        f"asset file '{filename}' not found in release {release.tag_name}.\n\n"
        f"Available assets: {available}",
        names,
    )


def resolve_release_asset(
    github: GitHubClient, ref: ReleaseReference
) -> Tuple[ReleaseMetadata, AssetInfo]:
    github.check_repository(ref.owner, ref.repo)
    release = github.release_by_tag(ref.owner, ref.repo, ref.tag)
    asset = find_release_asset(release, ref.asset_filename)
    debug(f"resolved {ref.asset_filename} in {ref.slug}@{ref.tag} to asset id {asset.id}")
    return release, asset


def resolve_asset(github: GitHubClient, ref: ReleaseReference) -> AssetInfo:
    """Validate repository access, then locate `ref.asset_filename` in `ref.tag`."""
    _release, asset = resolve_release_asset(github, ref)
    return asset
