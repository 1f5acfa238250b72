"""GitHub token discovery and keyring storage for tapsync."""

from __future__ import annotations

import subprocess
from types import SimpleNamespace
from typing import Optional

import keyring
from keyring.errors import NoKeyringError, PasswordDeleteError

from .console import debug, log
from .constants import (
    GH_HELPER_COMMAND,
    KEYRING_SERVICE,
    KEYRING_USERNAME,
    TOKEN_ENV_VARS,
)
from .context import AppContext
from .errors import CLIError, CredentialNotFound
from .models import Credential, DownloadPolicy
from .prompts import prompt_password
from .utils import mask_token

CREDENTIAL_REMEDIATION = """\
Please use one of these methods:

1. GitHub CLI (recommended):
   gh auth login
   export HOMEBREW_GITHUB_API_TOKEN=$(gh auth token)

2. Personal access token (scope: repo):
   create one at https://github.com/settings/tokens/new
   export HOMEBREW_GITHUB_API_TOKEN=ghp_your_token_here

3. Store a token in the system keyring:
   tapsync auth login"""


def credential_not_found() -> CredentialNotFound:
    return CredentialNotFound(
        "a GitHub token is required for private repository access.\n\n"
        + CREDENTIAL_REMEDIATION
    )


def _gh_cli_token(context: AppContext) -> Optional[str]:
    binary = context.which(GH_HELPER_COMMAND[0])
    if not binary:
        return None
    argv = [binary, *GH_HELPER_COMMAND[1:]]
    try:
        proc = context.run_command(argv)
    except (OSError, subprocess.SubprocessError) as exc:
        debug(f"gh auth token failed to run: {exc}")
        return None
    if proc.returncode != 0:
        debug(f"gh auth token exited with status {proc.returncode}")
        return None
    token = (proc.stdout or "").strip()
    return token or None


def _keyring_token() -> Optional[str]:
    try:
        secret = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except NoKeyringError:
        return None
    except Exception as exc:
        debug(f"failed to read token from keyring: {exc}")
        return None
    if not secret:
        return None
    return secret.strip() or None


def find_credential(
    explicit: Optional[str] = None,
    *,
    context: AppContext,
    policy: DownloadPolicy = DownloadPolicy.PRIVATE,
) -> Optional[Credential]:
    candidates = [("flag", explicit)]
    candidates.extend((name, context.env(name)) for name in TOKEN_ENV_VARS)
    for source, value in candidates:
        token = (value or "").strip()
        if token:
            debug(f"using GitHub token from {source}")
            return Credential(token=token, source=source)

    if DownloadPolicy.ALLOW_FALLBACK_HELPERS not in policy:
        return None

    token = _gh_cli_token(context)
    if token:
        debug("using GitHub token from gh auth token")
        return Credential(token=token, source="gh")

    token = _keyring_token()
    if token:
        debug("using GitHub token from system keyring")
        return Credential(token=token, source="keyring")
    return None


def resolve_credential(
    explicit: Optional[str] = None,
    *,
    context: AppContext,
    policy: DownloadPolicy = DownloadPolicy.PRIVATE,
) -> Credential:
    credential = find_credential(explicit, context=context, policy=policy)
    if credential is None:
        raise credential_not_found()
    return credential


def persist_token(token: str) -> None:
    normalized = token.strip()
    if not normalized:
        raise CLIError("attempted to persist empty GitHub token")
    try:
        keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, normalized)
    except NoKeyringError as exc:
        raise CLIError(
            "no keyring backend available; export HOMEBREW_GITHUB_API_TOKEN instead"
        ) from exc
    except Exception as exc:
        raise CLIError(f"failed to store GitHub token in keyring: {exc}") from exc
    log(f"stored GitHub token ({mask_token(normalized)}) in system keyring")


def clear_token() -> None:
    try:
        keyring.delete_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except (NoKeyringError, PasswordDeleteError):
        pass


def handle_auth_login(args: SimpleNamespace) -> int:
    token = (getattr(args, "token", None) or "").strip()
    if not token:
        token = prompt_password("GitHub token:")
    if not token:
        raise CLIError("GitHub token cannot be empty")
    persist_token(token)
    return 0


def handle_auth_logout(_: SimpleNamespace) -> int:
    clear_token()
    log("removed stored GitHub token")
    return 0


def handle_auth_status(args: SimpleNamespace) -> int:
    context: AppContext = args.context
    credential = find_credential(None, context=context, policy=DownloadPolicy.PRIVATE)
    if credential is None:
        log("GitHub token: not configured")
        backend = keyring.get_keyring()
        log(f"keyring backend: {getattr(backend, 'name', 'unknown')}")
        return 0
    log(f"GitHub token source: {credential.source}")
    log(f"effective token: {mask_token(credential.token)}")
    return 0
