"""Library for updating packages already added to a project.

Packages are read from the project lockfile and added again with the same
link mode they were originally added with.
"""

import logging

from .add import add_packages
from .config import AddOptions, LinkMode, StoreConfig, UpdateOptions
from .context import trace_context
from .lockfile import read_lockfile
from .manifest import parse_package_name
from .store.installations import Installation, remove_installations

__all__ = [
    "update_packages",
]

_LOGGER = logging.getLogger(__name__)

# Order in which link modes are replayed
UPDATE_ORDER = [
    LinkMode.FILE,
    LinkMode.SYMLINK,
    LinkMode.WORKSPACE,
    LinkMode.LINK,
    LinkMode.PURE,
]


def _add_options(mode: LinkMode, options: UpdateOptions) -> AddOptions:
    """Options that add a package again with the recorded link mode."""
    return AddOptions(
        working_dir=options.working_dir,
        replace=options.replace,
        update=options.update,
        restore=options.restore,
        link=mode == LinkMode.LINK,
        link_only=mode == LinkMode.SYMLINK,
        workspace=mode == LinkMode.WORKSPACE,
        pure=mode == LinkMode.PURE,
    )


async def update_packages(
    packages: list[str], options: UpdateOptions, store: StoreConfig
) -> list[Installation]:
    """Update the packages, or all packages in the lockfile when none are given.

    Packages not in the lockfile are returned as installations to remove. They
    are also removed from the installations file unless
    `no_installations_remove` is set.
    """
    working_dir = options.working_dir
    lockfile = await read_lockfile(working_dir)
    names: list[str] = []
    to_remove: list[Installation] = []
    if packages:
        for package in packages:
            name, version = parse_package_name(package)
            if (entry := lockfile.packages.get(name)) is None:
                _LOGGER.warning(
                    "Did not find package %s in lockfile, "
                    "please use 'add' command to add it explicitly.",
                    name,
                )
                to_remove.append(Installation(name=name, path=str(working_dir.absolute())))
                continue
            if version:
                entry.version = version
            names.append(name)
    else:
        names = list(lockfile.packages)

    by_mode: dict[LinkMode, list[str]] = {mode: [] for mode in UPDATE_ORDER}
    for name in names:
        entry = lockfile.packages[name]
        by_mode[entry.link_mode].append(f"{name}@{entry.version}" if entry.version else name)

    with trace_context(f"Update {working_dir}"):
        for mode in UPDATE_ORDER:
            if by_mode[mode]:
                await add_packages(by_mode[mode], _add_options(mode, options), store)

    if not options.no_installations_remove:
        await remove_installations(store, to_remove)
    return to_remove
