"""Library for resolving `catalog:` dependency specifiers.

Catalogs are shared version ranges declared once for a workspace, either in
`pnpm-workspace.yaml`:

```yaml
catalog:
  react: ^18.2.0
catalogs:
  legacy:
    react: ^16.14.0
```

or in the `catalog` and `catalogs` fields of `package.json`, which take
precedence. A dependency declared as `catalog:` uses the default catalog and
`catalog:legacy` uses the named catalog.

Parsed configurations are cached per working directory and invalidated when
the workspace file modification time changes.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any

from mashumaro import DataClassDictMixin
import yaml

from .manifest import MANIFEST_FILE

__all__ = [
    "CatalogConfig",
    "CatalogCache",
    "read_catalog_config",
    "resolve_catalog_dependency",
    "is_catalog_dependency",
]

_LOGGER = logging.getLogger(__name__)

WORKSPACE_FILE = "pnpm-workspace.yaml"
CATALOG_PROTOCOL = "catalog:"
MAX_CACHE_SIZE = 50


@dataclass
class CatalogConfig(DataClassDictMixin):
    """Catalogs available in a working directory."""

    default: dict[str, str] = field(default_factory=dict)
    """The default catalog, used by `catalog:`."""

    named: dict[str, dict[str, str]] = field(default_factory=dict)
    """Named catalogs, used by `catalog:<name>`."""


def _parse_catalog(data: Any, source: str) -> dict[str, str]:
    """Return only the well formed entries of a single catalog."""
    if not isinstance(data, dict):
        _LOGGER.warning("Ignoring catalog in %s: not a mapping", source)
        return {}
    result: dict[str, str] = {}
    for dep_name, version in data.items():
        if isinstance(version, bool) or not isinstance(version, (str, int, float)):
            _LOGGER.warning(
                "Ignoring catalog entry %s in %s: invalid version %r",
                dep_name,
                source,
                version,
            )
            continue
        if str(dep_name).strip() and str(version).strip():
            result[str(dep_name).strip()] = str(version).strip()
    return result


def _parse_catalogs(data: Any, source: str) -> dict[str, dict[str, str]]:
    if not isinstance(data, dict):
        _LOGGER.warning("Ignoring catalogs in %s: not a mapping", source)
        return {}
    return {
        str(name): _parse_catalog(catalog, f"{source} ({name})")
        for name, catalog in data.items()
    }


def _parse_workspace_file(path: Path) -> CatalogConfig:
    """Parse the catalog sections of a workspace file, ignoring other keys."""
    config = CatalogConfig()
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as err:
        _LOGGER.warning("Could not parse %s for catalog configuration: %s", path, err)
        return config
    if not isinstance(doc, dict):
        return config
    if (catalog := doc.get("catalog")) is not None:
        config.default = _parse_catalog(catalog, str(path))
    if (catalogs := doc.get("catalogs")) is not None:
        config.named = _parse_catalogs(catalogs, str(path))
    return config


def _merge_manifest(working_dir: Path, config: CatalogConfig) -> None:
    manifest_path = working_dir / MANIFEST_FILE
    try:
        doc = json.loads(manifest_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return
    except (OSError, ValueError) as err:
        _LOGGER.warning(
            "Could not read %s for catalog configuration: %s", manifest_path, err
        )
        return
    if not isinstance(doc, dict):
        return
    if doc.get("catalog"):
        config.default = {
            **config.default,
            **_parse_catalog(doc["catalog"], str(manifest_path)),
        }
    if doc.get("catalogs"):
        config.named = {
            **config.named,
            **_parse_catalogs(doc["catalogs"], str(manifest_path)),
        }


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0


@dataclass
class _CacheEntry:
    config: CatalogConfig
    mtime: float


class CatalogCache:
    """Bounded cache of catalog configurations keyed by working directory."""

    def __init__(self, max_size: int = MAX_CACHE_SIZE) -> None:
        """Initialize CatalogCache."""
        self._max_size = max_size
        self._entries: OrderedDict[Path, _CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, working_dir: Path) -> CatalogConfig:
        """Return the catalog configuration for a working directory."""
        workspace_file = working_dir / WORKSPACE_FILE
        mtime = _mtime(workspace_file)
        if (entry := self._entries.get(working_dir)) and entry.mtime == mtime:
            return entry.config

        config = CatalogConfig()
        if mtime:
            config = _parse_workspace_file(workspace_file)
        _merge_manifest(working_dir, config)

        self._entries.pop(working_dir, None)
        while len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[working_dir] = _CacheEntry(config=config, mtime=mtime)
        return config

    def clear(self) -> None:
        """Remove all cached configurations."""
        self._entries.clear()


_CACHE = CatalogCache()


def read_catalog_config(working_dir: Path) -> CatalogConfig:
    """Return the catalogs for a working directory using the shared cache."""
    return _CACHE.get(working_dir)


def clear_catalog_cache() -> None:
    """Clear the shared cache."""
    _CACHE.clear()


def is_catalog_dependency(version: Any) -> bool:
    """Return True if the specifier uses the catalog protocol."""
    if not isinstance(version, str):
        return False
    version = version.strip()
    return version.startswith(CATALOG_PROTOCOL) or version == "catalog"


def resolve_catalog_dependency(
    catalog_version: str, dep_name: str, config: CatalogConfig
) -> str:
    """Resolve a catalog specifier to the version range in the catalog.

    Unresolvable specifiers are logged and returned as a fallback value, so the
    published manifest keeps an explicit marker of what could not be resolved.
    """
    if not catalog_version.strip() or not dep_name.strip():
        _LOGGER.warning(
            "Invalid input for catalog resolution: catalog_version=%r, dep_name=%r",
            catalog_version,
            dep_name,
        )
        return catalog_version or CATALOG_PROTOCOL

    catalog_version = catalog_version.strip()
    dep_name = dep_name.strip().strip("'\"")
    catalog_ref = catalog_version.replace(CATALOG_PROTOCOL, "", 1)
    if catalog_ref == "catalog":
        catalog_ref = ""

    if not catalog_ref:
        if version := config.default.get(dep_name):
            return version
        _LOGGER.warning(
            "Package %s not found in default catalog, using %s as fallback",
            dep_name,
            CATALOG_PROTOCOL,
        )
        return CATALOG_PROTOCOL

    if not (named_catalog := config.named.get(catalog_ref)):
        _LOGGER.warning(
            "Named catalog %s not found, using %s as fallback",
            catalog_ref,
            catalog_version,
        )
        return catalog_version

    if not (version := named_catalog.get(dep_name)):
        _LOGGER.warning(
            "Package %s not found in catalog %s, using %s as fallback",
            dep_name,
            catalog_ref,
            catalog_version,
        )
        return catalog_version
    return version
