"""Library for removing or retreating packages from a project.

Removing a package restores the dependency specifier it replaced (or drops the
dependency), deletes its node_modules and `.yalc` copies, its lockfile entry and
its installation record.

Retreating only restores the manifest and deletes the node_modules copy. The
lockfile entry, the `.yalc` copy and the installation record are kept so the
package can be brought back with `update --restore`. The installations file
then still lists the project even though nothing in node_modules uses the
package.
"""

import asyncio
import logging
from pathlib import Path
import re
import shutil

import aiofiles.os

from .config import LOCKFILE_NAME, PACKAGES_FOLDER, LinkMode, RemoveOptions, StoreConfig
from .context import trace_context
from .lockfile import LockfileEntry, read_lockfile, remove_lockfile, write_lockfile
from .manifest import parse_package_name, read_manifest, write_manifest
from .store.installations import Installation, remove_installations

__all__ = [
    "remove_packages",
]

_LOGGER = logging.getLogger(__name__)


def is_local_address(address: str, name: str) -> bool:
    """Return True if the specifier points at the package's `.yalc` copy."""
    return bool(
        re.match(
            rf"^(file|link):(\./)?{re.escape(PACKAGES_FOLDER)}/{re.escape(name)}$", address
        )
    )


def _is_managed(address: str, name: str, entry: LockfileEntry | None) -> bool:
    if is_local_address(address, name):
        return True
    return (
        entry is not None
        and entry.link_mode == LinkMode.WORKSPACE
        and address == LinkMode.WORKSPACE.local_address(name)
    )


def _remove_tree(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


async def _remove_if_empty(folder: Path) -> bool:
    """Remove the folder if it exists and is empty, returning True if removed."""
    if not await aiofiles.os.path.isdir(folder) or await aiofiles.os.listdir(folder):
        return False
    await aiofiles.os.rmdir(folder)
    return True


async def remove_packages(
    packages: list[str], options: RemoveOptions, store: StoreConfig
) -> list[str]:
    """Remove or retreat packages from the project, returning their names.

    A `name@version` argument only removes the package when the locked version
    matches. Packages not in the lockfile are still removed from the manifest
    and node_modules if found there.
    """
    working_dir = options.working_dir
    lockfile = await read_lockfile(working_dir)
    if (manifest := await read_manifest(working_dir)) is None:
        return []

    names: list[str] = []
    if packages:
        for package in packages:
            name, version = parse_package_name(package)
            if (entry := lockfile.packages.get(name)) is not None:
                if not version or version == entry.version:
                    names.append(name)
            else:
                _LOGGER.warning(
                    "Package %s not found in %s, still will try to remove.",
                    package,
                    LOCKFILE_NAME,
                )
                names.append(name)
    elif options.all:
        names = list(lockfile.packages)
    else:
        _LOGGER.info("Use --all option to remove all packages.")
        return []

    with trace_context(f"Remove {working_dir}"):
        from_manifest: list[str] = []
        linked: list[str] = []
        for name in names:
            entry = lockfile.packages.get(name)
            if entry is not None and entry.link_mode == LinkMode.SYMLINK:
                linked.append(name)
            deps = None
            for kind in ("dependencies", "devDependencies"):
                if (kind_deps := manifest.dependencies(kind)) and name in kind_deps:
                    deps = kind_deps
            if deps is not None and _is_managed(deps[name], name, entry):
                from_manifest.append(name)
                if entry is not None and entry.replaced:
                    deps[name] = entry.replaced
                else:
                    del deps[name]
            if options.retreat:
                _LOGGER.info(
                    "Retreating package %s version ==> %s",
                    name,
                    entry.replaced if entry else None,
                )
            else:
                lockfile.packages.pop(name, None)

        if not options.retreat and names:
            await write_lockfile(working_dir, lockfile)
        if from_manifest:
            await write_manifest(working_dir, manifest)

        yalc_dir = working_dir / PACKAGES_FOLDER
        for name in from_manifest + linked:
            await asyncio.to_thread(_remove_tree, working_dir / "node_modules" / name)
        if not options.retreat:
            for name in names:
                await asyncio.to_thread(_remove_tree, yalc_dir / name)
        for scope in {name.split("/")[0] for name in names if name.startswith("@")}:
            await _remove_if_empty(yalc_dir / scope)

        if not lockfile.packages and not options.retreat:
            await remove_lockfile(working_dir)
            if not await _remove_if_empty(yalc_dir) and await aiofiles.os.path.exists(
                yalc_dir
            ):
                _LOGGER.warning("%s is not empty, not removing it.", yalc_dir)

    if not options.retreat:
        await remove_installations(
            store,
            [Installation(name=name, path=str(working_dir.absolute())) for name in names],
        )
    return names
