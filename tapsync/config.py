"""Configuration file support for tapsync."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import PlatformDirs

from .constants import (
    API_URL_ENV_VAR,
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_DIR_NAME,
    DEFAULT_GITHUB_API_URL,
    DEFAULT_PLATFORM_PRIORITY,
    DEFAULT_TAP_REPO,
)
from .errors import CLIError

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover (py<311)
    import tomli as tomllib


@dataclass(frozen=True)
class ConfigFile:
    owner: Optional[str] = None
    repo: Optional[str] = None
    formula: Optional[str] = None
    tap_repo: Optional[str] = None
    tap_dir: Optional[str] = None
    api_url: Optional[str] = None
    platforms: List[str] = field(default_factory=list)
    commit: Optional[bool] = None
    push: Optional[bool] = None


def default_config_path() -> Path:
    dirs = PlatformDirs(appname=DEFAULT_CONFIG_DIR_NAME, appauthor=False, roaming=True)
    return Path(dirs.user_config_path) / "config.toml"


def resolve_config_path() -> Path:
    env_value = (os.environ.get(CONFIG_ENV_VAR) or "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return default_config_path()


def _safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        normalized = value.strip()
        return normalized or None
    return str(value).strip() or None


def _safe_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    return None


def _safe_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    result: List[str] = []
    for item in value:
        s = _safe_str(item)
        if s:
            result.append(s)
    return result


def load_config(path: Optional[Path] = None) -> ConfigFile:
    config_path = path or resolve_config_path()
    if not config_path.exists():
        return ConfigFile()
    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CLIError(f"failed to read config file {config_path}: {exc}") from exc
    except Exception as exc:
        raise CLIError(f"failed to parse config file {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        return ConfigFile()
    return ConfigFile(
        owner=_safe_str(data.get("owner")),
        repo=_safe_str(data.get("repo")),
        formula=_safe_str(data.get("formula")),
        tap_repo=_safe_str(data.get("tap_repo") or data.get("tapRepo")),
        tap_dir=_safe_str(data.get("tap_dir") or data.get("tapDir")),
        api_url=_safe_str(data.get("api_url") or data.get("apiUrl")),
        platforms=_safe_str_list(data.get("platforms")),
        commit=_safe_bool(data.get("commit")),
        push=_safe_bool(data.get("push")),
    )


def config_template() -> str:
    return (
        "# tapsync configuration (TOML)\n"
        "#\n"
        "# Precedence (highest -> lowest):\n"
        "#   CLI flags > environment variables > this file > built-in defaults\n"
        "\n"
        "# owner = \"codefuturist\"\n"
        "# repo = \"monorepository\"\n"
        "# formula = \"packr\"\n"
        "\n"
        f"# tap_repo = \"{DEFAULT_TAP_REPO}\"\n"
        "# tap_dir = \"~/src/homebrew-tap\"\n"
        "\n"
        f"# api_url = \"{DEFAULT_GITHUB_API_URL}\"  # or TAPSYNC_GITHUB_API_URL\n"
        "\n"
        "# Asset selection priority, first match wins\n"
        "# platforms = [\"darwin/arm64\", \"Darwin/arm64\", \"darwin/aarch64\", \"Darwin/aarch64\"]\n"
        "\n"
        "# commit = true\n"
        "# push = true\n"
    )


def write_default_config(path: Optional[Path] = None, *, force: bool) -> Path:
    config_path = path or resolve_config_path()
    if config_path.exists() and not force:
        raise CLIError(f"config file already exists: {config_path} (use --force to overwrite)")
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config_template(), encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"failed to write config file {config_path}: {exc}") from exc
    return config_path


def effective_config(config: ConfigFile) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Compute the effective config for display (no CLI flags), with sources.

    Returns (values, sources) where sources map key -> one of:
    "env", "config", "default".
    """
    sources: Dict[str, str] = {}
    values: Dict[str, Any] = {}

    for key in ("owner", "repo", "formula"):
        value = getattr(config, key)
        values[key] = value
        sources[key] = "config" if value else "default"

    values["tap_repo"] = config.tap_repo or DEFAULT_TAP_REPO
    sources["tap_repo"] = "config" if config.tap_repo else "default"
    values["tap_dir"] = config.tap_dir or "."
    sources["tap_dir"] = "config" if config.tap_dir else "default"

    api_env = (os.environ.get(API_URL_ENV_VAR) or "").strip()
    values["api_url"] = api_env or config.api_url or DEFAULT_GITHUB_API_URL
    sources["api_url"] = "env" if api_env else ("config" if config.api_url else "default")

    if config.platforms:
        values["platforms"] = list(config.platforms)
        sources["platforms"] = "config"
    else:
        values["platforms"] = [f"{os_token}/{arch}" for os_token, arch in DEFAULT_PLATFORM_PRIORITY]
        sources["platforms"] = "default"

    for key in ("commit", "push"):
        value = getattr(config, key)
        values[key] = True if value is None else value
        sources[key] = "default" if value is None else "config"
    return values, sources
