"""Access to published package versions in the store.

The store holds one directory per published version of each package:

```
<store>/packages/my-package/1.0.0/
<store>/packages/@scope/other/2.1.0+5d41402a/
```
"""

import asyncio
import logging
from pathlib import Path
import shutil

import aiofiles.os

from ..config import StoreConfig
from .manager import StorePackageInfo, get_unused_packages

__all__ = [
    "Store",
]

_LOGGER = logging.getLogger(__name__)


def _latest_by_ctime(package_dir: Path) -> str | None:
    versions = [entry for entry in package_dir.iterdir() if entry.is_dir()]
    if not versions:
        return None
    return max(versions, key=lambda entry: entry.stat().st_ctime).name


class Store:
    """A package store rooted at a configured directory."""

    def __init__(self, config: StoreConfig) -> None:
        """Initialize Store."""
        self._config = config

    @property
    def config(self) -> StoreConfig:
        """Location of the store."""
        return self._config

    def package_dir(self, name: str, version: str = "") -> Path:
        """Directory of a package or one of its versions."""
        return self._config.package_dir(name, version)

    async def has_package(self, name: str) -> bool:
        """Return True if any version of the package was published."""
        return await aiofiles.os.path.isdir(self.package_dir(name))

    async def latest_version(self, name: str) -> str | None:
        """Return the most recently published version of a package."""
        if not await self.has_package(name):
            return None
        return await asyncio.to_thread(_latest_by_ctime, self.package_dir(name))

    async def find_version_dir(self, name: str, version: str = "") -> Path | None:
        """Return the directory of the requested or latest version, if present."""
        if not version:
            if (latest := await self.latest_version(name)) is None:
                return None
            version = latest
        version_dir = self.package_dir(name, version)
        if not await aiofiles.os.path.isdir(version_dir):
            return None
        return version_dir

    async def remove_package(self, name: str) -> None:
        """Remove all versions of a package, and its scope folder when empty."""
        package_dir = self.package_dir(name)
        await asyncio.to_thread(shutil.rmtree, package_dir)
        if name.startswith("@"):
            scope_dir = package_dir.parent
            if not await aiofiles.os.listdir(scope_dir):
                await aiofiles.os.rmdir(scope_dir)

    async def clean_packages(self, dry_run: bool = False) -> list[StorePackageInfo]:
        """Remove packages not used by any project.

        Returns the packages that were removed, or would be removed in dry run
        mode. Packages that fail to be removed are logged and not returned.
        """
        unused = await get_unused_packages(self._config)
        if dry_run:
            return unused
        removed: list[StorePackageInfo] = []
        for package in unused:
            try:
                await self.remove_package(package.name)
            except OSError as err:
                _LOGGER.error("Failed to remove %s@%s: %s", package.name, package.version, err)
                continue
            _LOGGER.info("Removed %s@%s", package.name, package.version)
            removed.append(package)
        return removed
