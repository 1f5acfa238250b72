"""Authenticated release asset downloads for tapsync."""

from __future__ import annotations

import os
import subprocess
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pooch

from .checksum import sha256_digest
from .console import debug, log, log_error
from .constants import (
    CURL_BINARY,
    DOWNLOAD_CHUNK_SIZE,
    FALLBACK_DOWNLOAD_ATTEMPTS,
    FALLBACK_DOWNLOAD_DELAY_SECONDS,
)
from .context import AppContext
from .errors import ChecksumMismatch, DownloadFailed
from .github import authentication_failed
from .http import describe_http_error, describe_status, download_headers, is_auth_failure
from .models import AssetInfo, Credential, DownloadPolicy
from .utils import format_cli_command, redact, remove_quietly


def _partial_path(output_file: str) -> Path:
    return Path(f"{output_file}.part")


class AssetDownloader:
    """Stream release assets to disk, falling back to curl on transport errors.

    `transfer` follows pooch's downloader protocol so verified retrievals can
    hand it straight to `pooch.retrieve`.
    """

    def __init__(
        self,
        context: AppContext,
        *,
        policy: DownloadPolicy = DownloadPolicy.PRIVATE,
        fallback_attempts: int = FALLBACK_DOWNLOAD_ATTEMPTS,
        fallback_delay: float = FALLBACK_DOWNLOAD_DELAY_SECONDS,
    ) -> None:
        self.context = context
        self.policy = policy
        self.fallback_attempts = max(1, int(fallback_attempts))
        self.fallback_delay = max(0.0, float(fallback_delay))

    def download(
        self, asset: AssetInfo, credential: Optional[Credential], destination: Path
    ) -> int:
        if not asset.api_url:
            raise DownloadFailed(f"asset {asset.name} has no API URL")
        log(f"downloading {asset.name}")
        return self.transfer(
            asset.api_url,
            str(destination),
            None,
            headers=download_headers(credential.token if credential else None),
        )

    def fetch_url(
        self, url: str, destination: Path, credential: Optional[Credential] = None
    ) -> int:
        log(f"downloading {url}")
        return self.transfer(
            url,
            str(destination),
            None,
            headers=download_headers(credential.token if credential else None),
        )

    def retrieve_verified(
        self,
        asset: AssetInfo,
        credential: Optional[Credential],
        destination: Path,
        expected_sha256: str,
    ) -> Path:
        expected = expected_sha256.strip().lower()
        downloader = partial(
            self.transfer,
            headers=download_headers(credential.token if credential else None),
        )
        try:
            retrieved = pooch.retrieve(
                url=asset.api_url,
                known_hash=f"sha256:{expected}",
                fname=destination.name,
                path=destination.parent,
                downloader=downloader,
                progressbar=False,
            )
        except ValueError as exc:
            # pooch reports hash mismatches as ValueError and discards the file.
            raise ChecksumMismatch(asset.name, expected) from exc
        path = Path(retrieved)
        log(f"checksum verified: {expected}")
        return path

    def transfer(
        self,
        url: str,
        output_file: str,
        pooch_obj: Optional[pooch.Pooch] = None,
        *,
        headers: Dict[str, str],
        **_: Any,
    ) -> int:
        _ = pooch_obj
        output_path = Path(output_file)
        try:
            return self._stream(url, output_path, headers)
        except httpx.TransportError as exc:
            detail = describe_http_error(exc)
            if DownloadPolicy.ALLOW_FALLBACK_HELPERS not in self.policy:
                raise DownloadFailed(f"download failed for {output_path.name}: {detail}") from exc
            log_error(
                f"failed to download using the GitHub API ({detail}); "
                "falling back to curl"
            )
            return self._curl_fallback(url, output_path, headers)
        except httpx.HTTPError as exc:
            raise DownloadFailed(
                f"download failed for {output_path.name}: {describe_http_error(exc)}"
            ) from exc

    def _stream(self, url: str, output_path: Path, headers: Dict[str, str]) -> int:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = _partial_path(str(output_path))
        remove_quietly(tmp_path)
        written = 0
        try:
            with self.context.new_http_client() as client:
                with client.stream("GET", url, headers=headers) as response:
                    if not response.is_success:
                        response.read()
                        if is_auth_failure(response.status_code):
                            raise authentication_failed(describe_status(response))
                        raise DownloadFailed(
                            f"download failed for {output_path.name}: {describe_status(response)}",
                            status_code=response.status_code,
                        )
                    with tmp_path.open("wb") as handle:
                        for chunk in response.iter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE):
                            if not chunk:
                                continue
                            handle.write(chunk)
                            written += len(chunk)
            os.replace(tmp_path, output_path)
        except OSError as exc:
            remove_quietly(tmp_path)
            raise DownloadFailed(f"failed to write download file {output_path}: {exc}") from exc
        except BaseException:
            remove_quietly(tmp_path)
            raise
        debug(f"wrote {written} bytes to {output_path}")
        return written

    def _curl_command(self, binary: str, url: str, tmp_path: Path, headers: Dict[str, str]) -> List[str]:
        cmd = [
            binary,
            "--fail",
            "--location",
            "--silent",
            "--show-error",
            "--output",
            str(tmp_path),
        ]
        for name in ("Accept", "Authorization", "User-Agent"):
            value = headers.get(name)
            if value:
                cmd.extend(["--header", f"{name}: {value}"])
        cmd.append(url)
        return cmd

    def _curl_fallback(self, url: str, output_path: Path, headers: Dict[str, str]) -> int:
        binary = self.context.which(CURL_BINARY)
        if not binary:
            raise DownloadFailed(
                f"download failed for {output_path.name}: curl is not installed for the fallback transfer"
            )
        tmp_path = _partial_path(str(output_path))
        cmd = self._curl_command(binary, url, tmp_path, headers)
        log(f"exec {redact(format_cli_command(cmd))}")

        last_error = ""
        for attempt in range(1, self.fallback_attempts + 1):
            remove_quietly(tmp_path)
            try:
                proc = self.context.run_command(cmd)
            except (OSError, subprocess.SubprocessError) as exc:
                remove_quietly(tmp_path)
                raise DownloadFailed(f"failed to run curl: {exc}") from exc
            if proc.returncode == 0:
                try:
                    os.replace(tmp_path, output_path)
                    return output_path.stat().st_size
                except OSError as exc:
                    remove_quietly(tmp_path)
                    raise DownloadFailed(
                        f"curl reported success but {output_path.name} could not be saved: {exc}"
                    ) from exc
            remove_quietly(tmp_path)
            last_error = redact((proc.stderr or "").strip()) or f"exit status {proc.returncode}"
            if attempt < self.fallback_attempts:
                log_error(
                    f"curl download of {output_path.name} failed ({last_error}); retrying"
                    f" ({attempt + 1}/{self.fallback_attempts})"
                )
                if self.fallback_delay > 0:
                    self.context.sleep(self.fallback_delay)
        raise DownloadFailed(
            f"download failed for {output_path.name} after {self.fallback_attempts} "
            f"curl attempt(s): {last_error}"
        )


def download_and_hash(
    downloader: AssetDownloader,
    destination: Path,
    *,
    asset: Optional[AssetInfo] = None,
    url: Optional[str] = None,
    credential: Optional[Credential] = None,
) -> str:
    """Download into `destination`, hash it, and always remove it afterwards."""
    try:
        if asset is not None:
            downloader.download(asset, credential, destination)
        elif url:
            downloader.fetch_url(url, destination, credential)
        else:
            raise DownloadFailed("nothing to download: no asset or URL given")
        return sha256_digest(destination)
    finally:
        remove_quietly(destination)
