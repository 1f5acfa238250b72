"""Shared constants for tapsync."""

from __future__ import annotations

from typing import List, Tuple

PACKAGE_NAME = "tapsync"

DEFAULT_GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_JSON_MEDIA_TYPE = "application/vnd.github+json"
OCTET_STREAM_MEDIA_TYPE = "application/octet-stream"

# Checked in order; the first non-empty value wins.
TOKEN_ENV_VARS: Tuple[str, ...] = (
    "HOMEBREW_GITHUB_API_TOKEN",
    "GITHUB_TOKEN",
    "GH_TOKEN",
)
API_URL_ENV_VAR = "TAPSYNC_GITHUB_API_URL"
CONFIG_ENV_VAR = "TAPSYNC_CONFIG"
VERBOSE_ENV_VAR = "TAPSYNC_VERBOSE"

GH_HELPER_COMMAND: Tuple[str, ...] = ("gh", "auth", "token")
CURL_BINARY = "curl"

KEYRING_SERVICE = "tapsync"
KEYRING_USERNAME = "github_token"

DEFAULT_CONFIG_DIR_NAME = "tapsync"
DEFAULT_TAP_REPO = "homebrew-tap"
FORMULA_DIR_NAME = "Formula"

ARCHIVE_EXTENSIONS: Tuple[str, ...] = (".tar.gz", ".zip")
DEFAULT_PLATFORM_PRIORITY: List[Tuple[str, str]] = [
    ("darwin", "arm64"),
    ("Darwin", "arm64"),
    ("darwin", "aarch64"),
    ("Darwin", "aarch64"),
]

HTTP_TIMEOUT_SECONDS = 30.0
RELEASES_PAGE_SIZE = 100
RELEASES_MAX_PAGES = 10

FALLBACK_DOWNLOAD_ATTEMPTS = 3
FALLBACK_DOWNLOAD_DELAY_SECONDS = 2.0
DOWNLOAD_CHUNK_SIZE = 64 * 1024
HASH_CHUNK_SIZE = 1024 * 1024

EXIT_CODE_FAILURE = 1
EXIT_CODE_USAGE = 2
EXIT_CODE_INTERRUPT = 130
