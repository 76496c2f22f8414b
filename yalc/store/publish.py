"""Library for publishing a package from its source directory into the store.

Publishing copies the files that would be packed by npm into
`<store>/packages/<name>/<version>/`, writes a signature of their content and a
rewritten manifest:

- `devDependencies` and install scripts are stripped (`dev_mod`)
- `workspace:` and `catalog:` specifiers are resolved (`workspace_resolve`)
- the signature is embedded as `yalcSig`, and optionally appended to the
  version as `+<signature[:8]>` (`signature`)

With `push`, every project the package was added to is updated afterwards.
"""

import asyncio
import logging
from pathlib import Path
import shutil

from ..config import PublishOptions, StoreConfig, UpdateOptions
from ..context import trace_context
from ..exceptions import InputException
from ..manifest import PackageManifest, read_manifest, write_manifest
from ..packlist import get_packlist
from ..pm import run_script
from ..resolver import resolve_manifest
from ..signature import (
    SHORT_SIGNATURE_LENGTH,
    file_digest,
    package_signature,
    read_signature_file,
    write_signature_file,
)
from ..update import update_packages
from .installations import Installation, read_installations, remove_installations

__all__ = [
    "publish_package",
    "copy_package_to_store",
]

_LOGGER = logging.getLogger(__name__)

PRE_SCRIPTS = ["prepublish", "prepare", "prepublishOnly", "prepack", "preyalcpublish"]
POST_SCRIPTS = ["postyalcpublish", "postpack", "publish", "postpublish"]
DEV_SCRIPTS = ("prepare", "prepublish")
SIGNATURE_FIELD = "yalcSig"


async def _read_valid_manifest(working_dir: Path) -> PackageManifest:
    if (manifest := await read_manifest(working_dir)) is None:
        raise InputException(f"Invalid or missing package manifest in {working_dir}")
    return manifest


def strip_dev_fields(manifest: PackageManifest) -> PackageManifest:
    """Return a copy without dev dependencies and install time scripts."""
    result = manifest.copy()
    result.data.pop("devDependencies", None)
    if isinstance(scripts := result.data.get("scripts"), dict):
        for script in DEV_SCRIPTS:
            scripts.pop(script, None)
    return result


def _copy_files(src_dir: Path, dest_dir: Path, files: list[str]) -> None:
    shutil.rmtree(dest_dir, ignore_errors=True)
    for rel_path in files:
        dest = dest_dir / rel_path
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_dir / rel_path, dest)


async def copy_package_to_store(
    options: PublishOptions, store: StoreConfig
) -> str | bool:
    """Copy the package files into the store and return the signature.

    In `changed` mode, returns False without touching the store when the
    content signature matches the published one.
    """
    working_dir = options.working_dir
    manifest = await _read_valid_manifest(working_dir)
    version_dir = store.package_dir(manifest.name, manifest.version)

    files = await get_packlist(working_dir, manifest)
    if options.content:
        _LOGGER.info("Files included in published content:")
        for rel_path in files:
            _LOGGER.info("- %s", rel_path)
        _LOGGER.info("Total %d files.", len(files))

    digests = await asyncio.gather(
        *[file_digest(working_dir / rel_path, rel_path) for rel_path in files]
    )
    signature = package_signature(list(zip(files, digests)))

    if options.changed and signature == await read_signature_file(version_dir):
        return False

    await asyncio.to_thread(_copy_files, working_dir, version_dir, files)
    await write_signature_file(version_dir, signature)

    if options.dev_mod:
        manifest = strip_dev_fields(manifest)
    if options.workspace_resolve:
        manifest = await resolve_manifest(manifest, working_dir)
    else:
        manifest = manifest.copy()
    manifest.data[SIGNATURE_FIELD] = signature
    if options.signature:
        manifest.version = f"{manifest.version}+{signature[:SHORT_SIGNATURE_LENGTH]}"
    await write_manifest(version_dir, manifest)
    return signature


async def _push(name: str, options: PublishOptions, store: StoreConfig) -> None:
    """Update the package in every project it was added to."""
    installations = await read_installations(store)
    stale: list[Installation] = []
    for path in installations.get(name, []):
        _LOGGER.info("Pushing %s in %s", name, path)
        stale.extend(
            await update_packages(
                [name],
                UpdateOptions(
                    working_dir=Path(path),
                    replace=options.replace,
                    update=options.update,
                    no_installations_remove=True,
                ),
                store,
            )
        )
    await remove_installations(store, stale)


async def publish_package(options: PublishOptions, store: StoreConfig) -> str | None:
    """Publish the package in the working directory into the store.

    Returns the content signature, or None when the package was not published
    because it is private or unchanged.
    """
    working_dir = options.working_dir
    manifest = await _read_valid_manifest(working_dir)
    if manifest.private and not options.private:
        _LOGGER.warning(
            "Will not publish package with `private: true` "
            "use --private flag to force publishing."
        )
        return None

    with trace_context(f"Publish {manifest.name}"):
        if options.scripts:
            for script in PRE_SCRIPTS:
                await run_script(working_dir, manifest, script)

        result = await copy_package_to_store(options, store)
        if result is False:
            _LOGGER.warning("Package content has not changed, skipping publishing.")
            return None

        if options.scripts:
            for script in POST_SCRIPTS:
                await run_script(working_dir, manifest, script)

        version_dir = store.package_dir(manifest.name, manifest.version)
        if (published := await read_manifest(version_dir)) is not None:
            _LOGGER.info("%s@%s published in store.", published.name, published.version)

        if options.push:
            await _push(manifest.name, options, store)
    return str(result)

