"""Library for rewriting workspace and catalog dependency specifiers.

A published package must not reference `workspace:` or `catalog:` specifiers
since they only have a meaning inside the workspace it was built in. Before a
manifest is written to the store, these are replaced with concrete version
ranges.

- `workspace:*`, `workspace:^` and `workspace:~` are replaced with the version
  of the sibling package found through `node_modules` lookup, keeping the
  `^`/`~` prefix. When the sibling cannot be found the range becomes `*`.
- `workspace:<range>` is replaced with `<range>`.
- `catalog:` specifiers are looked up in the catalog configuration.
"""

import logging
from pathlib import Path

from .catalog import (
    CatalogConfig,
    is_catalog_dependency,
    read_catalog_config,
    resolve_catalog_dependency,
)
from .manifest import DEPENDENCY_FIELDS, MANIFEST_FILE, PackageManifest, read_manifest

__all__ = [
    "resolve_manifest",
    "resolve_workspace_version",
    "find_package_dir",
]

_LOGGER = logging.getLogger(__name__)

WORKSPACE_PROTOCOL = "workspace:"
WORKSPACE_SELECTORS = ("*", "^", "~")


def find_package_dir(name: str, working_dir: Path) -> Path | None:
    """Find an installed package by walking up through node_modules folders."""
    for directory in [working_dir, *working_dir.parents]:
        candidate = directory / "node_modules" / name
        if (candidate / MANIFEST_FILE).is_file():
            return candidate
    return None


async def resolve_workspace_version(
    selector: str, name: str, working_dir: Path
) -> str:
    """Resolve the part of a `workspace:` specifier after the protocol."""
    if selector not in WORKSPACE_SELECTORS:
        return selector
    prefix = selector if selector in ("^", "~") else ""
    if (package_dir := find_package_dir(name, working_dir)) is None or (
        manifest := await read_manifest(package_dir)
    ) is None:
        _LOGGER.warning("Could not resolve workspace package location for %s", name)
        return "*"
    return f"{prefix}{manifest.version}"


async def _resolve_dependency(
    spec: str, name: str, working_dir: Path, catalog: CatalogConfig
) -> str:
    if spec.startswith(WORKSPACE_PROTOCOL):
        resolved = await resolve_workspace_version(
            spec[len(WORKSPACE_PROTOCOL) :], name, working_dir
        )
        _LOGGER.info("Resolving workspace package %s version ==> %s", name, resolved)
        return resolved
    if is_catalog_dependency(spec):
        resolved = resolve_catalog_dependency(spec, name, catalog)
        _LOGGER.info("Resolving catalog package %s (%s) ==> %s", name, spec, resolved)
        return resolved
    return spec


async def resolve_manifest(
    manifest: PackageManifest, working_dir: Path
) -> PackageManifest:
    """Return a copy of the manifest with workspace and catalog specifiers resolved."""
    result = manifest.copy()
    catalog = read_catalog_config(working_dir)
    for kind in DEPENDENCY_FIELDS:
        if not isinstance(deps := result.dependencies(kind), dict):
            continue
        for name, spec in list(deps.items()):
            if isinstance(spec, str):
                deps[name] = await _resolve_dependency(spec, name, working_dir, catalog)
    return result
