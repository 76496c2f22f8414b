"""Configuration objects for yalc.

The store location is an explicit `StoreConfig` value passed to every operation
rather than process global state. Each operation takes its own options object
with documented defaults, and the way a package is wired into a project is a
single `LinkMode` computed once per add operation.
"""

import configparser
from dataclasses import dataclass, field
from enum import StrEnum
import json
import logging
import os
from pathlib import Path
import sys
from typing import Any

import yaml

__all__ = [
    "StoreConfig",
    "LinkMode",
    "PublishOptions",
    "AddOptions",
    "UpdateOptions",
    "RemoveOptions",
    "CheckOptions",
    "RcConfig",
    "read_rc_config",
]

_LOGGER = logging.getLogger(__name__)

MY_NAME = "yalc"
PACKAGES_FOLDER = ".yalc"
LOCKFILE_NAME = "yalc.lock"
SIGNATURE_FILE_NAME = "yalc.sig"
IGNORE_FILE_NAME = ".yalcignore"
INSTALLATIONS_FILE = "installations.json"
STORE_DIR_ENV = "YALC_STORE_DIR"

_STORE_OVERRIDE: list[Path] = []


def set_store_override(path: Path) -> bool:
    """Override the default store location, only the first call has an effect.

    Returns True if the override was applied.
    """
    if _STORE_OVERRIDE:
        return False
    _STORE_OVERRIDE.append(path.resolve())
    return True


def _default_main_dir() -> Path:
    if _STORE_OVERRIDE:
        return _STORE_OVERRIDE[0]
    if env_dir := os.environ.get(STORE_DIR_ENV):
        return Path(env_dir).resolve()
    if sys.platform == "win32" and (local_app_data := os.environ.get("LOCALAPPDATA")):
        return Path(local_app_data) / MY_NAME.capitalize()
    return Path.home() / f".{MY_NAME}"


@dataclass(frozen=True)
class StoreConfig:
    """Location of the shared package store."""

    main_dir: Path
    """Root of the store, holding packages and the installations file."""

    @classmethod
    def default(cls) -> "StoreConfig":
        """Return the store for this platform, honoring any override."""
        return cls(main_dir=_default_main_dir())

    @property
    def packages_dir(self) -> Path:
        """Directory holding all published package versions."""
        return self.main_dir / "packages"

    @property
    def installations_file(self) -> Path:
        """File recording which projects use which packages."""
        return self.main_dir / INSTALLATIONS_FILE

    def package_dir(self, name: str, version: str = "") -> Path:
        """Directory of a package, or of one of its versions."""
        path = self.packages_dir / name
        if version:
            path = path / version
        return path


class LinkMode(StrEnum):
    """How a package from the store is wired into a project."""

    FILE = "file"
    """Copied into node_modules and referenced with `file:.yalc/<name>`."""

    LINK = "link"
    """Symlinked into node_modules and referenced with `link:.yalc/<name>`."""

    WORKSPACE = "workspace"
    """Copied into node_modules and referenced with `workspace:*`."""

    PURE = "pure"
    """Only copied into the .yalc folder, nothing else in the project changes."""

    SYMLINK = "symlink"
    """Symlinked into node_modules without touching the project manifest."""

    @property
    def symlinked(self) -> bool:
        """Whether node_modules holds a symlink to the .yalc copy."""
        return self in (LinkMode.LINK, LinkMode.SYMLINK)

    @property
    def edits_manifest(self) -> bool:
        """Whether the project manifest is pointed at the local copy."""
        return self in (LinkMode.FILE, LinkMode.LINK, LinkMode.WORKSPACE)

    def local_address(self, name: str) -> str:
        """Dependency specifier written to the project manifest."""
        if self == LinkMode.WORKSPACE:
            return "workspace:*"
        protocol = "link:" if self == LinkMode.LINK else "file:"
        return f"{protocol}{PACKAGES_FOLDER}/{name}"


@dataclass
class PublishOptions:
    """Options for publishing a package into the store."""

    working_dir: Path
    """Directory of the package to publish."""

    signature: bool = False
    """Append a short signature suffix to the published version."""

    changed: bool = False
    """Only publish when the package content changed since last publish."""

    push: bool = False
    """Update all projects using the package after publishing."""

    update: bool = False
    """Run the package manager update command in pushed projects."""

    replace: bool = False
    """Force a full replacement of package content in pushed projects."""

    content: bool = False
    """Log the list of files included in the published package."""

    private: bool = False
    """Publish even when the manifest declares `private: true`."""

    scripts: bool = True
    """Run publish lifecycle scripts."""

    dev_mod: bool = True
    """Strip devDependencies and install scripts from the published manifest."""

    workspace_resolve: bool = True
    """Resolve workspace: and catalog: dependency specifiers."""


@dataclass
class AddOptions:
    """Options for adding packages from the store into a project."""

    working_dir: Path
    """Directory of the consuming project."""

    dev: bool = False
    """Add as a dev dependency."""

    link: bool = False
    """Symlink into node_modules and reference with the link: protocol."""

    link_only: bool = False
    """Symlink into node_modules without editing the project manifest."""

    workspace: bool = False
    """Reference the package with the workspace: protocol."""

    pure: bool | None = None
    """Only copy into the .yalc folder, None lets the project layout decide."""

    replace: bool = False
    """Replace content without comparing file contents."""

    update: bool = False
    """Run the package manager update command afterwards."""

    restore: bool = False
    """Reuse the existing .yalc copy instead of reading from the store."""


def resolve_link_mode(options: AddOptions, pure: bool) -> LinkMode:
    """Compute the single link mode for an add operation."""
    if pure:
        return LinkMode.PURE
    if options.link_only:
        return LinkMode.SYMLINK
    if options.workspace:
        return LinkMode.WORKSPACE
    if options.link:
        return LinkMode.LINK
    return LinkMode.FILE


@dataclass
class UpdateOptions:
    """Options for updating packages already recorded in a project lockfile."""

    working_dir: Path
    """Directory of the consuming project."""

    replace: bool = False
    """Replace content without comparing file contents."""

    update: bool = False
    """Run the package manager update command afterwards."""

    restore: bool = False
    """Reuse the existing .yalc copy instead of reading from the store."""

    no_installations_remove: bool = False
    """Return stale installations instead of removing them."""


@dataclass
class RemoveOptions:
    """Options for removing or retreating packages from a project."""

    working_dir: Path
    """Directory of the consuming project."""

    retreat: bool = False
    """Keep the lockfile entry and installation so the package can be restored."""

    all: bool = False
    """Remove every package in the lockfile."""


@dataclass
class CheckOptions:
    """Options for checking a manifest for local package references."""

    working_dir: Path
    """Directory of the project to check."""

    commit: bool = False
    """Only check when package.json is staged for commit."""


RC_KEYS = ("workspace-resolve", "sig", "dev-mod", "scripts", "quiet", "files")


@dataclass
class RcConfig:
    """User defaults read from yalc rc files and the environment."""

    workspace_resolve: bool = True
    sig: bool = False
    dev_mod: bool = True
    scripts: bool = True
    quiet: bool = False
    files: bool = False

    values: dict[str, bool] = field(default_factory=dict, repr=False)
    """Only the values explicitly set by a config source."""


def _parse_bool(value: str) -> bool | str:
    if value.lower() in ("true", "1"):
        return True
    if value.lower() in ("false", "0"):
        return False
    return value


def _read_rc_file(path: Path) -> dict[str, Any]:
    """Read a single rc file, returning an empty dict on any problem."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as err:
        _LOGGER.warning("Cannot read config file %s: %s", path, err)
        return {}
    if not content.strip():
        return {}
    try:
        if path.name == ".yalcrc":
            parser = configparser.ConfigParser()
            parser.read_string("[yalc]\n" + content)
            return {key: _parse_bool(value) for key, value in parser.items("yalc")}
        if path.name == "package.json":
            data = json.loads(content).get(MY_NAME)
        else:
            data = yaml.safe_load(content)
    except (configparser.Error, json.JSONDecodeError, yaml.YAMLError) as err:
        _LOGGER.warning("Failed to parse config file %s: %s", path, err)
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def _read_env() -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key in RC_KEYS:
        env_key = f"{MY_NAME.upper()}_{key.upper().replace('-', '_')}"
        if (value := os.environ.get(env_key)) is None:
            continue
        result[key] = _parse_bool(value)
    return result


def config_file_paths(working_dir: Path) -> list[Path]:
    """Config files in increasing order of precedence."""
    return [
        working_dir / "package.json",
        working_dir / ".yalcrc",
        working_dir / ".yalcrc.yml",
        working_dir / ".yalcrc.yaml",
        working_dir / ".yalcrc.json",
    ]


def validate_rc(data: dict[str, Any]) -> tuple[dict[str, bool], list[str]]:
    """Return the valid rc values and a list of problems found."""
    valid: dict[str, bool] = {}
    errors: list[str] = []
    for key, value in data.items():
        if key not in RC_KEYS:
            errors.append(f"Unknown configuration option: {key}")
            continue
        if not isinstance(value, bool):
            errors.append(f"{key} must be a boolean, got {type(value).__name__}")
            continue
        valid[key] = value
    return valid, errors


def read_rc_config(working_dir: Path) -> RcConfig:
    """Read yalc defaults for the working directory.

    Sources are merged in order: package.json `yalc` field, `.yalcrc` (INI),
    `.yalcrc.yml`, `.yalcrc.yaml`, `.yalcrc.json`, then `YALC_*` environment
    variables. Invalid values are logged and ignored.
    """
    merged: dict[str, Any] = {}
    for path in config_file_paths(working_dir):
        merged.update(_read_rc_file(path))
    merged.update(_read_env())
    values, errors = validate_rc(merged)
    for error in errors:
        _LOGGER.warning(error)
    return RcConfig(
        **{key.replace("-", "_"): value for key, value in values.items()},
        values=values,
    )
