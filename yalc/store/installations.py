"""Library for tracking which projects use which store packages.

The installations file lives in the store root and maps a package name to the
absolute paths of the projects the package was added to:

```json
{
  "my-package": ["/home/user/src/app"]
}
```

It is used by `push` to find the projects to update after publishing. A project
is listed at most once per package, and a package without projects is removed.
"""

from dataclasses import dataclass
import json
import logging
from pathlib import Path

import aiofiles
import aiofiles.os
from mashumaro import DataClassDictMixin

from ..config import StoreConfig
from ..lockfile import read_lockfile

__all__ = [
    "Installation",
    "read_installations",
    "save_installations",
    "add_installations",
    "remove_installations",
    "show_installations",
    "clean_installations",
]

_LOGGER = logging.getLogger(__name__)

InstallationsConfig = dict[str, list[str]]


@dataclass(frozen=True)
class Installation(DataClassDictMixin):
    """A package added to a project."""

    name: str
    """Name of the package."""

    path: str
    """Absolute path of the project directory."""


async def read_installations(store: StoreConfig) -> InstallationsConfig:
    """Read the installations file, returning an empty config when missing."""
    installations_file = store.installations_file
    try:
        async with aiofiles.open(installations_file) as config_file:
            doc = json.loads(await config_file.read())
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as err:
        _LOGGER.error("Error reading installations file %s: %s", installations_file, err)
        return {}
    if not isinstance(doc, dict):
        _LOGGER.error("Ignoring invalid installations file %s", installations_file)
        return {}
    return {
        str(name): [str(path) for path in paths]
        for name, paths in doc.items()
        if isinstance(paths, list)
    }


async def save_installations(store: StoreConfig, config: InstallationsConfig) -> None:
    """Write the installations file."""
    await aiofiles.os.makedirs(store.main_dir, exist_ok=True)
    async with aiofiles.open(store.installations_file, mode="w") as config_file:
        await config_file.write(json.dumps(config, indent=2))


async def add_installations(
    store: StoreConfig, installations: list[Installation]
) -> bool:
    """Register installations, returning True if the file was changed."""
    config = await read_installations(store)
    updated = False
    for installation in installations:
        paths = config.setdefault(installation.name, [])
        if installation.path not in paths:
            paths.append(installation.path)
            updated = True
    if updated:
        await save_installations(store, config)
    return updated


async def remove_installations(
    store: StoreConfig, installations: list[Installation]
) -> bool:
    """Unregister installations, returning True if the file was changed."""
    if not installations:
        return False
    config = await read_installations(store)
    updated = False
    for installation in installations:
        _LOGGER.info(
            "Removing installation of %s in %s", installation.name, installation.path
        )
        paths = config.get(installation.name, [])
        if installation.path in paths:
            paths.remove(installation.path)
            updated = True
        if not paths and installation.name in config:
            del config[installation.name]
            updated = True
    if updated:
        await save_installations(store, config)
    return updated


def _select(config: InstallationsConfig, packages: list[str]) -> InstallationsConfig:
    return {
        name: paths for name, paths in config.items() if not packages or name in packages
    }


async def show_installations(
    store: StoreConfig, packages: list[str]
) -> InstallationsConfig:
    """Return the installations of the packages, or of all packages."""
    return _select(await read_installations(store), packages)


async def clean_installations(
    store: StoreConfig, packages: list[str], dry: bool = False
) -> list[Installation]:
    """Remove installations whose project lockfile no longer has the package.

    Returns the stale installations found. In dry mode nothing is removed.
    """
    stale: list[Installation] = []
    for name, paths in _select(await read_installations(store), packages).items():
        for path in paths:
            lockfile = await read_lockfile(Path(path))
            if name not in lockfile.packages:
                stale.append(Installation(name=name, path=path))
    if stale and not dry:
        await remove_installations(store, stale)
    return stale
