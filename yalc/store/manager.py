"""Library for listing and analyzing the packages in the store.

These are read only views over the store directory and the installations
file, used by the `list`, `info`, `where` and `clean` commands.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
import functools
import json
import logging
import os
from pathlib import Path
from typing import Any

from mashumaro import DataClassDictMixin
from mashumaro.config import BaseConfig

from ..config import StoreConfig
from ..lockfile import read_lockfile
from ..manifest import MANIFEST_FILE
from .installations import InstallationsConfig, read_installations

__all__ = [
    "StorePackageInfo",
    "StoreStats",
    "PackageUsageInfo",
    "ProjectUsage",
    "list_store_packages",
    "get_unused_packages",
    "get_store_stats",
    "get_package_usage_info",
    "format_size",
    "format_relative_time",
]

_LOGGER = logging.getLogger(__name__)

SIZE_UNITS = ["B", "KB", "MB", "GB"]


@dataclass
class StorePackageInfo(DataClassDictMixin):
    """The latest published version of a package in the store."""

    name: str
    version: str

    published_at: datetime
    """Modification time of the version directory."""

    size: int
    """Total size in bytes of the version directory."""

    store_path: str
    """Absolute path of the version directory."""

    used_in_projects: list[str] = field(default_factory=list)
    """Projects the package was added to."""

    manifest: dict[str, Any] | None = field(default=None, repr=False)

    class Config(BaseConfig):
        omit_none = True


@dataclass
class StoreStats(DataClassDictMixin):
    """Summary of the whole store."""

    total_packages: int
    total_size: int
    unused_packages: int
    last_activity: datetime | None = None

    class Config(BaseConfig):
        omit_none = True


@dataclass
class ProjectUsage(DataClassDictMixin):
    """A project using a store package."""

    path: str
    version: str
    is_dev: bool = False
    is_link: bool = False


@dataclass
class PackageUsageInfo(DataClassDictMixin):
    """All projects using a store package."""

    package_name: str
    version: str
    projects: list[ProjectUsage] = field(default_factory=list)


def _compare_part(a: str, b: str) -> int:
    if a.isdigit() and b.isdigit():
        return int(a) - int(b)
    return (a > b) - (a < b)


def compare_versions(a: str, b: str) -> int:
    """Compare dot separated versions numerically, then lexicographically."""
    a_parts = a.split(".")
    b_parts = b.split(".")
    for i in range(max(len(a_parts), len(b_parts))):
        a_part = a_parts[i] if i < len(a_parts) else "0"
        b_part = b_parts[i] if i < len(b_parts) else "0"
        if result := _compare_part(a_part, b_part):
            return result
    return 0


def sort_versions(versions: list[str]) -> list[str]:
    """Sort versions newest first."""
    return sorted(versions, key=functools.cmp_to_key(compare_versions), reverse=True)


def _directory_size(path: Path) -> int:
    total = 0
    for dirpath, _, filenames in os.walk(path):
        for filename in filenames:
            try:
                total += (Path(dirpath) / filename).stat().st_size
            except OSError:
                continue
    return total


def _package_info(
    name: str, package_dir: Path, installations: InstallationsConfig
) -> StorePackageInfo | None:
    versions = sort_versions([entry.name for entry in package_dir.iterdir() if entry.is_dir()])
    if not versions:
        _LOGGER.warning("Package %s has no version directories", name)
        return None
    version_dir = package_dir / versions[0]
    try:
        manifest = json.loads((version_dir / MANIFEST_FILE).read_text(encoding="utf-8"))
    except FileNotFoundError:
        _LOGGER.warning("Package %s@%s missing %s", name, versions[0], MANIFEST_FILE)
        return None
    except (OSError, ValueError) as err:
        _LOGGER.warning("Failed to read package info for %s: %s", name, err)
        return None
    if (
        not isinstance(manifest, dict)
        or not manifest.get("name")
        or not manifest.get("version")
    ):
        _LOGGER.warning(
            "Package %s@%s has invalid manifest (missing name or version)",
            name,
            versions[0],
        )
        return None
    return StorePackageInfo(
        name=name,
        version=str(manifest["version"]),
        published_at=datetime.fromtimestamp(version_dir.stat().st_mtime),
        size=_directory_size(version_dir),
        store_path=str(version_dir),
        used_in_projects=list(installations.get(name, [])),
        manifest=manifest,
    )


def _package_dirs(packages_dir: Path) -> list[tuple[str, Path]]:
    """Return (name, path) of every package, one level deeper for scopes."""
    result: list[tuple[str, Path]] = []
    for entry in sorted(packages_dir.iterdir()):
        if not entry.is_dir():
            continue
        if entry.name.startswith("@"):
            result.extend(
                (f"{entry.name}/{scoped.name}", scoped)
                for scoped in sorted(entry.iterdir())
                if scoped.is_dir()
            )
        else:
            result.append((entry.name, entry))
    return result


def _scan_store(
    packages_dir: Path, installations: InstallationsConfig
) -> list[StorePackageInfo]:
    if not packages_dir.is_dir():
        return []
    packages: list[StorePackageInfo] = []
    for name, package_dir in _package_dirs(packages_dir):
        try:
            info = _package_info(name, package_dir, installations)
        except OSError as err:
            _LOGGER.warning("Failed to read package info for %s: %s", name, err)
            continue
        if info is not None:
            packages.append(info)
    return sorted(packages, key=lambda info: info.published_at, reverse=True)


async def list_store_packages(store: StoreConfig) -> list[StorePackageInfo]:
    """Return the latest version of every package, newest published first."""
    installations = await read_installations(store)
    return await asyncio.to_thread(_scan_store, store.packages_dir, installations)


async def get_unused_packages(store: StoreConfig) -> list[StorePackageInfo]:
    """Return packages not added to any project."""
    return [
        package
        for package in await list_store_packages(store)
        if not package.used_in_projects
    ]


async def get_store_stats(store: StoreConfig) -> StoreStats:
    """Return a summary of the store."""
    packages = await list_store_packages(store)
    return StoreStats(
        total_packages=len(packages),
        total_size=sum(package.size for package in packages),
        unused_packages=sum(1 for package in packages if not package.used_in_projects),
        last_activity=packages[0].published_at if packages else None,
    )


async def _project_usage(name: str, version: str, path: str) -> ProjectUsage:
    project_dir = Path(path)
    lockfile = await read_lockfile(project_dir)
    is_link = False
    if (entry := lockfile.packages.get(name)) is not None:
        is_link = entry.link_mode.symlinked
    is_dev = False
    try:
        manifest = json.loads((project_dir / MANIFEST_FILE).read_text(encoding="utf-8"))
        is_dev = name in (manifest.get("devDependencies") or {})
    except (OSError, ValueError, AttributeError):
        pass
    return ProjectUsage(path=path, version=version, is_dev=is_dev, is_link=is_link)


async def get_package_usage_info(store: StoreConfig) -> list[PackageUsageInfo]:
    """Return the projects using each package in the store."""
    result: list[PackageUsageInfo] = []
    for package in await list_store_packages(store):
        projects = await asyncio.gather(
            *[
                _project_usage(package.name, package.version, path)
                for path in package.used_in_projects
            ]
        )
        result.append(
            PackageUsageInfo(
                package_name=package.name,
                version=package.version,
                projects=list(projects),
            )
        )
    return result


def format_size(size: int) -> str:
    """Format a size in bytes for humans."""
    if size <= 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {SIZE_UNITS[unit]}"


def format_relative_time(when: datetime, now: datetime | None = None) -> str:
    """Format a timestamp relative to now, e.g. `2d ago`."""
    now = now or datetime.now()
    minutes = int((now - when).total_seconds() // 60)
    if minutes < 60:
        return "just now" if minutes <= 0 else f"{minutes}m ago"
    if (hours := minutes // 60) < 24:
        return f"{hours}h ago"
    if (days := hours // 24) < 30:
        return f"{days}d ago"
    return when.date().isoformat()
