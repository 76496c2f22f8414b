"""Library for adding packages from the store into a project.

Each package is first synced from the store into the project's `.yalc` folder
and then wired into `node_modules` according to the link mode:

- `file`: copied into node_modules, referenced as `file:.yalc/<name>`
- `link`: symlinked into node_modules, referenced as `link:.yalc/<name>`
- `workspace`: copied into node_modules, referenced as `workspace:*`
- `symlink`: symlinked into node_modules, the manifest is left unchanged
- `pure`: only the `.yalc` copy is made

The previous dependency specifier is recorded in the lockfile so that it can
be restored when the package is removed. Projects using workspaces default to
pure mode since their package manager manages node_modules itself.
"""

import asyncio
from dataclasses import dataclass
import logging
from pathlib import Path
import shutil

import aiofiles.os

from .config import PACKAGES_FOLDER, AddOptions, LinkMode, StoreConfig, resolve_link_mode
from .context import trace_context
from .lockfile import LockfileEntry, add_packages_to_lockfile
from .manifest import PackageManifest, parse_package_name, read_manifest, write_manifest
from .pm import run_pm_update, run_script
from .signature import read_signature_file
from .store.installations import Installation, add_installations
from .store.store import Store
from .sync_dir import DirSync

__all__ = [
    "add_packages",
]

_LOGGER = logging.getLogger(__name__)

PNPM_WORKSPACE_FILE = "pnpm-workspace.yaml"
PRE_SCRIPT = "preyalc"
POST_SCRIPT = "postyalc"
BIN_MODE = 0o755


@dataclass
class _AddedPackage:
    """A package added to the project by a single add operation."""

    name: str
    version: str
    signature: str
    replaced: str


def update_dependency(
    manifest: PackageManifest, name: str, address: str, dev: bool
) -> tuple[str, bool]:
    """Point the dependency at the local address.

    Returns the specifier that was replaced (empty if none or already local)
    and whether the manifest was changed. An existing dev dependency stays a dev
    dependency unless it is also a regular dependency. With `dev`, a regular
    dependency is moved to the dev dependencies.
    """
    dependencies = manifest.dependencies("dependencies") or {}
    dev_dependencies = manifest.dependencies("devDependencies") or {}
    replaced = ""
    changed = False
    kind = "devDependencies" if dev else "dependencies"
    if dev:
        if name in dependencies:
            replaced = dependencies.pop(name)
            changed = True
    elif name not in dependencies and name in dev_dependencies:
        kind = "devDependencies"

    target = manifest.ensure_dependencies(kind)
    if target.get(name) != address:
        replaced = replaced or target.get(name, "")
        target[name] = address
        changed = True
    if replaced == address:
        replaced = ""
    return replaced, changed


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _symlink_dir(target: Path, link: Path) -> None:
    link.parent.mkdir(parents=True, exist_ok=True)
    link.symlink_to(target, target_is_directory=True)


def _bin_entries(manifest: PackageManifest) -> dict[str, str]:
    match manifest.bin:
        case str(bin_path):
            return {manifest.name.split("/")[-1]: bin_path}
        case dict(bins):
            return {str(name): str(path) for name, path in bins.items()}
    return {}


def _link_bins(working_dir: Path, package_dir: Path, manifest: PackageManifest) -> None:
    """Symlink the package executables into node_modules/.bin."""
    bin_dir = working_dir / "node_modules" / ".bin"
    for bin_name, rel_path in _bin_entries(manifest).items():
        src = package_dir / rel_path
        dest = bin_dir / bin_name
        _LOGGER.info(
            "Linking bin script: %s -> %s",
            package_dir.relative_to(working_dir),
            dest.relative_to(working_dir),
        )
        try:
            bin_dir.mkdir(parents=True, exist_ok=True)
            if dest.is_symlink() or dest.exists():
                dest.unlink()
            dest.symlink_to(src)
            src.chmod(BIN_MODE)
        except OSError as err:
            _LOGGER.warning("Could not create bin symlink %s: %s", dest, err)


async def _resolve_pure(options: AddOptions, manifest: PackageManifest) -> bool:
    """Return True if pure mode applies, warning when it is a default."""
    if options.pure is not None:
        return options.pure
    reason = ""
    if manifest.workspaces:
        reason = "`workspaces` enabled in this package"
    elif await aiofiles.os.path.exists(options.working_dir / PNPM_WORKSPACE_FILE):
        reason = f"`{PNPM_WORKSPACE_FILE}` exists in this package"
    if not reason:
        return False
    _LOGGER.warning(
        "Because of %s --pure option will be used by default, "
        "to override use --no-pure.",
        reason,
    )
    return True


async def _add_package(
    package: str,
    mode: LinkMode,
    local: PackageManifest,
    options: AddOptions,
    store: Store,
    syncer: DirSync,
) -> tuple[_AddedPackage, bool] | None:
    """Add a single package, returning it and whether the manifest changed."""
    working_dir = options.working_dir
    name, version = parse_package_name(package)
    if not name:
        _LOGGER.warning("Could not parse package name %s", package)
        return None
    yalc_dir = working_dir / PACKAGES_FOLDER / name
    if not options.restore:
        if not await store.has_package(name):
            _LOGGER.warning(
                "Could not find package `%s` in store (%s), skipping.",
                name,
                store.package_dir(name),
            )
            return None
        if (version_dir := await store.find_version_dir(name, version)) is None:
            _LOGGER.warning(
                "Could not find package `%s` %s, skipping.",
                package,
                store.package_dir(name, version),
            )
            return None
        await syncer.sync(version_dir, yalc_dir, compare_content=not options.replace)
    else:
        _LOGGER.info("Restoring package `%s` from %s directory", package, PACKAGES_FOLDER)
        if not await aiofiles.os.path.isdir(yalc_dir):
            _LOGGER.warning("Could not find package `%s` %s, skipping.", package, yalc_dir)
            return None

    if (pkg := await read_manifest(yalc_dir)) is None:
        return None

    replaced = ""
    changed = False
    if mode == LinkMode.PURE:
        _LOGGER.info(
            "%s@%s added to %s purely", pkg.name, pkg.version, Path(PACKAGES_FOLDER) / name
        )
    else:
        modules_dir = working_dir / "node_modules" / name
        if mode.symlinked or modules_dir.is_symlink():
            await asyncio.to_thread(_remove_path, modules_dir)
        if mode.symlinked:
            await asyncio.to_thread(_symlink_dir, yalc_dir, modules_dir)
        else:
            await syncer.sync(yalc_dir, modules_dir, compare_content=not options.replace)
        if mode.edits_manifest:
            replaced, changed = update_dependency(
                local, pkg.name, mode.local_address(pkg.name), options.dev
            )
        if pkg.bin and mode.symlinked:
            await asyncio.to_thread(_link_bins, working_dir, yalc_dir, pkg)
        action = "linked" if mode == LinkMode.SYMLINK else "added"
        _LOGGER.info("Package %s@%s %s ==> %s", pkg.name, pkg.version, action, modules_dir)

    signature = await read_signature_file(yalc_dir)
    await run_script(working_dir, local, f"{POST_SCRIPT}.{package}")
    return (
        _AddedPackage(name=name, version=version, signature=signature, replaced=replaced),
        changed,
    )


async def add_packages(
    packages: list[str], options: AddOptions, store: StoreConfig
) -> list[Installation]:
    """Add packages from the store to the project in the working directory.

    Packages missing from the store are skipped with a warning. Returns the
    installations that were recorded.
    """
    if not packages:
        return []
    working_dir = options.working_dir
    if (local := await read_manifest(working_dir)) is None:
        return []

    pure = await _resolve_pure(options, local)
    mode = resolve_link_mode(options, pure)
    package_store = Store(store)
    syncer = DirSync()

    await run_script(working_dir, local, PRE_SCRIPT)
    added: list[_AddedPackage] = []
    manifest_changed = False
    for package in packages:
        with trace_context(f"Add {package}"):
            await run_script(working_dir, local, f"{PRE_SCRIPT}.{package}")
            result = await _add_package(
                package, mode, local, options, package_store, syncer
            )
        if result is None:
            continue
        added.append(result[0])
        manifest_changed |= result[1]

    if manifest_changed:
        await write_manifest(working_dir, local)
    if added:
        await add_packages_to_lockfile(
            working_dir,
            {
                item.name: LockfileEntry.from_link_mode(
                    mode,
                    version=item.version,
                    signature=item.signature,
                    replaced=item.replaced,
                )
                for item in added
            },
        )
    await run_script(working_dir, local, POST_SCRIPT)

    installations = [
        Installation(name=item.name, path=str(working_dir.absolute())) for item in added
    ]
    await add_installations(store, installations)
    if options.update:
        await run_pm_update(working_dir, packages)
    return installations
