"""Library for reading and writing the project lockfile.

The lockfile (`yalc.lock`) records which store packages were added to a
project and how, so that `update` can replay the same operation and `remove`
can restore the original dependency specifiers:

```json
{
  "version": "v1",
  "packages": {
    "my-package": {
      "signature": "5d41402abc4b2a76b9719d911017c592",
      "file": true,
      "replaced": "^1.0.0"
    }
  }
}
```

Lockfiles written by older versions hold the package map at the top level
and are upgraded when read.
"""

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
from mashumaro import DataClassDictMixin
from mashumaro.config import BaseConfig

from .config import LOCKFILE_NAME, LinkMode

__all__ = [
    "Lockfile",
    "LockfileEntry",
    "read_lockfile",
    "write_lockfile",
    "remove_lockfile",
    "add_packages_to_lockfile",
]

_LOGGER = logging.getLogger(__name__)

LOCKFILE_VERSION = "v1"


@dataclass
class LockfileEntry(DataClassDictMixin):
    """How a single package was added to the project."""

    version: str | None = None
    """Version requested when the package was added, if pinned."""

    signature: str | None = None
    """Signature of the package content that was added."""

    file: bool | None = None
    """Referenced with the `file:` protocol."""

    link: bool | None = None
    """Referenced with the `link:` protocol."""

    pure: bool | None = None
    """Only copied into the .yalc folder."""

    workspace: bool | None = None
    """Referenced with the `workspace:` protocol."""

    replaced: str | None = None
    """Dependency specifier the package replaced in the manifest."""

    class Config(BaseConfig):
        omit_none = True

    @classmethod
    def from_link_mode(
        cls,
        mode: LinkMode,
        version: str | None = None,
        signature: str | None = None,
        replaced: str | None = None,
    ) -> "LockfileEntry":
        """Create an entry with the single flag that records the link mode."""
        return cls(
            version=version or None,
            signature=signature or None,
            file=True if mode == LinkMode.FILE else None,
            link=True if mode == LinkMode.LINK else None,
            pure=True if mode == LinkMode.PURE else None,
            workspace=True if mode == LinkMode.WORKSPACE else None,
            replaced=replaced or None,
        )

    @property
    def link_mode(self) -> LinkMode:
        """Return the link mode recorded by the entry."""
        if self.pure:
            return LinkMode.PURE
        if self.workspace:
            return LinkMode.WORKSPACE
        if self.link:
            return LinkMode.LINK
        if self.file:
            return LinkMode.FILE
        return LinkMode.SYMLINK


@dataclass
class Lockfile(DataClassDictMixin):
    """Contents of the project lockfile."""

    version: str = LOCKFILE_VERSION
    packages: dict[str, LockfileEntry] = field(default_factory=dict)

    class Config(BaseConfig):
        omit_none = True

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Lockfile":
        """Parse a lockfile document, upgrading older formats."""
        if doc.get("version") == LOCKFILE_VERSION and isinstance(
            doc.get("packages"), dict
        ):
            return cls.from_dict(doc)
        return cls.from_dict({"version": LOCKFILE_VERSION, "packages": doc})

    def dumps(self) -> str:
        """Serialize the lockfile."""
        return json.dumps(self.to_dict(), indent=2)


async def read_lockfile(working_dir: Path) -> Lockfile:
    """Read the project lockfile, returning an empty one if missing or invalid."""
    lockfile_path = working_dir / LOCKFILE_NAME
    try:
        async with aiofiles.open(lockfile_path) as lockfile:
            doc = json.loads(await lockfile.read())
    except FileNotFoundError:
        return Lockfile()
    except (OSError, ValueError) as err:
        _LOGGER.warning("Could not read lockfile %s: %s", lockfile_path, err)
        return Lockfile()
    if not isinstance(doc, dict):
        _LOGGER.warning("Ignoring invalid lockfile %s", lockfile_path)
        return Lockfile()
    try:
        return Lockfile.parse_doc(doc)
    except (ValueError, TypeError) as err:
        _LOGGER.warning("Ignoring invalid lockfile %s: %s", lockfile_path, err)
        return Lockfile()


async def write_lockfile(working_dir: Path, lockfile: Lockfile) -> None:
    """Write the project lockfile."""
    async with aiofiles.open(working_dir / LOCKFILE_NAME, mode="w") as lockfile_file:
        await lockfile_file.write(lockfile.dumps())


async def remove_lockfile(working_dir: Path) -> None:
    """Remove the project lockfile if it exists."""
    lockfile_path = working_dir / LOCKFILE_NAME
    if await aiofiles.os.path.exists(lockfile_path):
        await aiofiles.os.remove(lockfile_path)


async def add_packages_to_lockfile(
    working_dir: Path, entries: dict[str, LockfileEntry]
) -> None:
    """Record added packages, keeping previously replaced specifiers."""
    lockfile = await read_lockfile(working_dir)
    for name, entry in entries.items():
        if (old := lockfile.packages.get(name)) is not None and not entry.replaced:
            entry.replaced = old.replaced
        lockfile.packages[name] = entry
    await write_lockfile(working_dir, lockfile)
