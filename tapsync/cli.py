"""Typer entry point for tapsync."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional, Sequence

import typer

from . import __version__
from .assets import parse_platforms
from .checksum import (
    normalize_sha256,
    parse_checksum_text,
    sha256_digest,
    verify_sha256,
)
from .config import (
    effective_config,
    load_config,
    resolve_config_path,
    write_default_config,
)
from .console import configure_console, log, log_error
from .constants import (
    API_URL_ENV_VAR,
    DEFAULT_PLATFORM_PRIORITY,
    DEFAULT_TAP_REPO,
    EXIT_CODE_FAILURE,
    EXIT_CODE_INTERRUPT,
    EXIT_CODE_USAGE,
    VERBOSE_ENV_VAR,
)
from .context import AppContext, context_from_environment
from .credentials import (
    find_credential,
    handle_auth_login,
    handle_auth_logout,
    handle_auth_status,
    resolve_credential,
)
from .download import AssetDownloader
from .errors import CLIError, InvalidReference
from .git import GitRepository
from .github import GitHubClient, resolve_release_asset
from .models import DownloadPolicy, ReleaseReference
from .prompts import InteractionAborted
from .synchronizer import FormulaSynchronizer, SyncOptions

app = typer.Typer(help="Keep Homebrew tap formulas in sync with GitHub releases")
auth_app = typer.Typer(help="GitHub token helpers")
config_app = typer.Typer(help="Configuration file helpers")
app.add_typer(auth_app, name="auth")
app.add_typer(config_app, name="config")


def _resolve_api_url(explicit: Optional[str], configured: Optional[str]) -> Optional[str]:
    return explicit or (os.environ.get(API_URL_ENV_VAR) or "").strip() or configured


def _require(value: Optional[str], flag: str) -> str:
    if not value or not value.strip():
        raise InvalidReference(f"{flag} is required (pass it or set it in the config file)")
    return value.strip()


def handle_update(args: SimpleNamespace) -> int:
    config = load_config()
    owner = _require(args.owner or config.owner, "--owner")
    repo = _require(args.repo or config.repo, "--repo")
    formula = _require(args.formula or config.formula, "--formula")
    platforms = parse_platforms(args.platforms or config.platforms) or list(
        DEFAULT_PLATFORM_PRIORITY
    )
    tap_dir = Path(args.tap_dir or config.tap_dir or ".").expanduser()
    commit = not args.no_commit and (config.commit is not False)
    push = not args.no_push and (config.push is not False)

    context: AppContext = args.context or context_from_environment(
        _resolve_api_url(args.api_url, config.api_url)
    )
    # Public upstreams work without a token; private ones need one.
    credential = find_credential(args.token, context=context, policy=DownloadPolicy.PUBLIC)
    options = SyncOptions(
        owner=owner,
        repo=repo,
        formula=formula,
        tap_repo=args.tap_repo or config.tap_repo or DEFAULT_TAP_REPO,
        tap_dir=tap_dir,
        platforms=platforms,
        dry_run=args.dry_run,
        commit=commit,
        push=push,
    )
    with GitHubClient(context, credential) as github:
        synchronizer = FormulaSynchronizer(
            options,
            github=github,
            downloader=AssetDownloader(context, policy=DownloadPolicy.PUBLIC),
            credential=credential,
            git=GitRepository(context, tap_dir) if commit else None,
        )
        synchronizer.run()
    return 0


def _release_reference(args: SimpleNamespace) -> ReleaseReference:
    if args.url:
        if any((args.owner, args.repo, args.tag, args.asset)):
            raise InvalidReference("pass either a release URL or --owner/--repo/--tag/--asset")
        return ReleaseReference.from_url(args.url)
    return ReleaseReference(
        owner=args.owner or "",
        repo=args.repo or "",
        tag=args.tag or "",
        asset_filename=args.asset or "",
    )


def handle_download(args: SimpleNamespace) -> int:
    ref = _release_reference(args)
    expected = normalize_sha256(args.sha256) if args.sha256 else None
    config = load_config()
    context: AppContext = args.context or context_from_environment(
        _resolve_api_url(args.api_url, config.api_url)
    )
    policy = DownloadPolicy.PUBLIC if args.anonymous else DownloadPolicy.PRIVATE
    if args.anonymous:
        credential = find_credential(args.token, context=context, policy=policy)
    else:
        credential = resolve_credential(args.token, context=context, policy=policy)

    output = Path(args.output or ref.asset_filename).expanduser()
    downloader = AssetDownloader(context, policy=policy)
    log(f"resolving {ref.asset_filename} from {ref.slug} ({ref.tag})")
    with GitHubClient(context, credential) as github:
        release, asset = resolve_release_asset(github, ref)
        if expected is None and args.verify:
            sidecar = release.find_asset(f"{asset.name}.sha256")
            if sidecar is None:
                raise CLIError(
                    f"release {release.tag_name} has no {asset.name}.sha256 checksum file"
                )
            with tempfile.TemporaryDirectory(prefix="tapsync_") as tmp:
                sidecar_path = Path(tmp) / sidecar.name
                downloader.download(sidecar, credential, sidecar_path)
                expected = parse_checksum_text(sidecar_path.read_text(encoding="utf-8"))

        if expected:
            path = downloader.retrieve_verified(asset, credential, output, expected)
            digest = expected
        else:
            downloader.download(asset, credential, output)
            path = output
            digest = sha256_digest(path)
    log(f"saved {path}")
    log(f"SHA256: {digest}")
    return 0


def handle_checksum(args: SimpleNamespace) -> int:
    expected = normalize_sha256(args.sha256) if args.sha256 else None
    if expected and len(args.paths) != 1:
        raise InvalidReference("--sha256 verifies exactly one file")
    for raw in args.paths:
        path = Path(raw)
        try:
            digest = verify_sha256(path, expected) if expected else sha256_digest(path)
        except OSError as exc:
            raise CLIError(f"unable to read {path}: {exc}") from exc
        typer.echo(f"{digest}  {path}")
    return 0


def handle_config_init(args: SimpleNamespace) -> int:
    path = write_default_config(force=args.force)
    log(f"wrote config template to {path}")
    return 0


def handle_config_show(_: SimpleNamespace) -> int:
    values, sources = effective_config(load_config())
    typer.echo(f"config file: {resolve_config_path()}")
    for key, value in values.items():
        typer.echo(f"{key} = {value!r} ({sources[key]})")
    return 0


def _run(handler, args: SimpleNamespace) -> None:
    try:
        rc = handler(args)
    except CLIError as exc:
        log_error(f"error: {exc}")
        raise typer.Exit(code=EXIT_CODE_FAILURE) from exc
    except InteractionAborted as exc:
        log_error("aborted")
        raise typer.Exit(code=EXIT_CODE_INTERRUPT) from exc
    except KeyboardInterrupt as exc:
        # click would turn this into "Aborted!" with exit status 1.
        log_error("interrupted")
        raise typer.Exit(code=EXIT_CODE_INTERRUPT) from exc
    raise typer.Exit(code=rc)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tapsync {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="enable verbose logging"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="show the tapsync version and exit",
    ),
) -> None:
    env_verbose = (os.environ.get(VERBOSE_ENV_VAR) or "").strip().lower()
    if verbose or env_verbose in {"1", "true", "yes", "on"}:
        configure_console(verbose=True)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=EXIT_CODE_USAGE)


@app.command()
def update(
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="GitHub repository owner"),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="GitHub repository name"),
    formula: Optional[str] = typer.Option(None, "--formula", "-f", help="formula name"),
    tap_repo: Optional[str] = typer.Option(
        None, "--tap-repo", "-t", help=f"tap repository name (default: {DEFAULT_TAP_REPO})"
    ),
    tap_dir: Optional[str] = typer.Option(
        None, "--tap-dir", help="path to the tap checkout (default: current directory)"
    ),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub token"),
    platform: List[str] = typer.Option(
        [],
        "--platform",
        help="OS/ARCH asset tokens in priority order (repeatable, e.g. darwin/arm64)",
    ),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="GitHub API base URL"),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-d", help="print intended changes without writing or committing"
    ),
    no_commit: bool = typer.Option(False, "--no-commit", help="write the formula but do not commit"),
    no_push: bool = typer.Option(False, "--no-push", help="commit but do not push"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="enable verbose logging"),
) -> None:
    """Update a formula's version, url and sha256 from the latest release."""
    if verbose:
        configure_console(verbose=True)
    args = SimpleNamespace(
        owner=owner,
        repo=repo,
        formula=formula,
        tap_repo=tap_repo,
        tap_dir=tap_dir,
        token=token,
        platforms=platform,
        api_url=api_url,
        dry_run=dry_run,
        no_commit=no_commit,
        no_push=no_push,
        context=None,
    )
    _run(handle_update, args)


@app.command()
def download(
    url: Optional[str] = typer.Argument(
        None, help="https://github.com/<owner>/<repo>/releases/download/<tag>/<file>"
    ),
    owner: Optional[str] = typer.Option(None, "--owner", help="GitHub repository owner"),
    repo: Optional[str] = typer.Option(None, "--repo", help="GitHub repository name"),
    tag: Optional[str] = typer.Option(None, "--tag", help="release tag"),
    asset: Optional[str] = typer.Option(None, "--asset", help="asset filename"),
    output: Optional[str] = typer.Option(
        None, "--output", "-O", help="destination path (default: asset filename)"
    ),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub token"),
    sha256: Optional[str] = typer.Option(None, "--sha256", help="expected SHA-256 digest"),
    verify: bool = typer.Option(
        False, "--verify", help="verify against the release's <asset>.sha256 file"
    ),
    anonymous: bool = typer.Option(
        False, "--anonymous", help="allow downloads without a token (public repositories)"
    ),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="GitHub API base URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="enable verbose logging"),
) -> None:
    """Resolve a release asset and download it with authentication."""
    if verbose:
        configure_console(verbose=True)
    args = SimpleNamespace(
        url=url,
        owner=owner,
        repo=repo,
        tag=tag,
        asset=asset,
        output=output,
        token=token,
        sha256=sha256,
        verify=verify,
        anonymous=anonymous,
        api_url=api_url,
        context=None,
    )
    _run(handle_download, args)


@app.command()
def checksum(
    paths: List[str] = typer.Argument(..., help="files to hash"),
    sha256: Optional[str] = typer.Option(
        None, "--sha256", help="expected SHA-256 digest of a single file"
    ),
) -> None:
    """Print SHA-256 digests in sha256sum format, optionally verifying one."""
    _run(handle_checksum, SimpleNamespace(paths=paths, sha256=sha256))


@auth_app.command("login")
def auth_login(
    token: Optional[str] = typer.Option(
        None, "--token", help="GitHub token to store (prompted when omitted)"
    ),
) -> None:
    _run(handle_auth_login, SimpleNamespace(token=token))


@auth_app.command("logout")
def auth_logout() -> None:
    _run(handle_auth_logout, SimpleNamespace())


@auth_app.command("status")
def auth_status() -> None:
    _run(handle_auth_status, SimpleNamespace(context=context_from_environment()))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="overwrite an existing config file"),
) -> None:
    _run(handle_config_init, SimpleNamespace(force=force))


@config_app.command("path")
def config_path() -> None:
    typer.echo(str(resolve_config_path()))


@config_app.command("show")
def config_show() -> None:
    _run(handle_config_show, SimpleNamespace())


def main(argv: Optional[Sequence[str]] = None) -> int:
    command = typer.main.get_command(app)
    try:
        command.main(
            args=list(argv) if argv is not None else None,
            prog_name="tapsync",
            standalone_mode=True,
        )
    except (KeyboardInterrupt, typer.Abort):
        log_error("interrupted")
        return EXIT_CODE_INTERRUPT
    except SystemExit as exc:
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
