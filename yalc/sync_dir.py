"""Library for mirroring one directory tree into another with minimal I/O.

The destination is made an exact copy of the source: new entries are copied,
obsolete entries are removed and common files are only copied when they differ.
Files are first compared by size and modification time and, when those differ
and content comparison is enabled, by content digest. Copies keep the source
modification time, so syncing an unchanged tree again does nothing.

Example usage:

```python
from yalc.sync_dir import DirSync

syncer = DirSync()
result = await syncer.sync(store_dir, project_dir / ".yalc" / "my-package")
print(f"Copied {len(result.copied)} files")
```

`node_modules` directories are never entered on either side.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import shutil

from .signature import file_digest

__all__ = [
    "DirSync",
    "SyncResult",
]

_LOGGER = logging.getLogger(__name__)

SKIP_DIRS = {"node_modules"}


@dataclass
class SyncResult:
    """Entries changed in the destination by a sync."""

    copied: list[str] = field(default_factory=list)
    """Relative paths of files and directories copied or created."""

    removed: list[str] = field(default_factory=list)
    """Relative paths of entries removed."""

    @property
    def changed(self) -> bool:
        """Return True if the destination was modified."""
        return bool(self.copied or self.removed)


@dataclass
class _SourceFile:
    """Cached information about a source entry."""

    stat: os.stat_result
    digest: str | None = None


def _list_tree(root: Path) -> list[str]:
    """Return the relative posix paths of all entries under root."""
    if not root.is_dir():
        return []
    result: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        rel_dir = Path(dirpath).relative_to(root)
        for name in dirnames + sorted(filenames):
            result.append((rel_dir / name).as_posix())
    return result


def _same_stats(src: os.stat_result, dest: os.stat_result) -> bool:
    return src.st_mtime_ns == dest.st_mtime_ns and src.st_size == dest.st_size


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


def _copy_file(src: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)


def _outermost(rels: list[str]) -> list[str]:
    """Drop paths nested in another path of the list."""
    result: list[str] = []
    for rel in sorted(rels):
        if not any(rel.startswith(f"{parent}/") for parent in result):
            result.append(rel)
    return result


class DirSync:
    """A sync session that caches source listings, stats and digests.

    A single session may be used to sync the same source into several
    destinations without listing or hashing the source again. Create a new
    session when the source may have changed.
    """

    def __init__(self) -> None:
        """Initialize DirSync."""
        self._listings: dict[Path, list[str]] = {}
        self._files: dict[Path, _SourceFile] = {}

    async def _source_listing(self, src_dir: Path) -> list[str]:
        if (listing := self._listings.get(src_dir)) is None:
            listing = await asyncio.to_thread(_list_tree, src_dir)
            self._listings[src_dir] = listing
        return listing

    async def _source_file(self, path: Path) -> _SourceFile:
        if (entry := self._files.get(path)) is None:
            entry = _SourceFile(stat=await asyncio.to_thread(path.stat))
            self._files[path] = entry
        return entry

    async def _source_digest(self, path: Path) -> str:
        entry = await self._source_file(path)
        if entry.digest is None:
            entry.digest = await file_digest(path)
        return entry.digest

    async def _needs_copy(
        self, src_path: Path, dest_path: Path, compare_content: bool
    ) -> bool:
        src = await self._source_file(src_path)
        dest_stat = await asyncio.to_thread(dest_path.stat)
        if _same_stats(src.stat, dest_stat):
            return False
        if not compare_content:
            return True
        src_digest = await self._source_digest(src_path)
        return src_digest != await file_digest(dest_path)

    async def sync(
        self, src_dir: Path, dest_dir: Path, compare_content: bool = True
    ) -> SyncResult:
        """Make dest_dir an exact mirror of src_dir."""
        src_dir = src_dir.resolve()
        src_list = await self._source_listing(src_dir)
        dest_list = await asyncio.to_thread(_list_tree, dest_dir)
        src_set = set(src_list)
        dest_set = set(dest_list)

        new_entries = [rel for rel in src_list if rel not in dest_set]
        to_remove = [rel for rel in dest_list if rel not in src_set]
        common = [rel for rel in src_list if rel in dest_set]

        dirs_in_dest: set[str] = set()
        to_copy: list[str] = []
        for rel in common:
            src_path = src_dir / rel
            dest_path = dest_dir / rel
            try:
                src_is_dir = await asyncio.to_thread(src_path.is_dir)
                dest_is_dir = await asyncio.to_thread(dest_path.is_dir)
                if dest_is_dir:
                    dirs_in_dest.add(rel)
                if src_is_dir and dest_is_dir:
                    continue
                if src_is_dir != dest_is_dir:
                    to_remove.append(rel)
                    if src_is_dir:
                        new_entries.append(rel)
                    else:
                        to_copy.append(rel)
                    continue
                if await self._needs_copy(src_path, dest_path, compare_content):
                    to_copy.append(rel)
            except OSError as err:
                _LOGGER.warning("Could not compare %s: %s", src_path, err)

        for rel in to_remove:
            if rel not in src_set and await asyncio.to_thread((dest_dir / rel).is_dir):
                dirs_in_dest.add(rel)

        result = SyncResult()
        # Files first, then directories, so a directory is only removed once
        await self._gather(
            [
                self._run(_remove, dest_dir / rel, rel, result.removed)
                for rel in to_remove
                if rel not in dirs_in_dest
            ]
        )
        removed_dirs = [rel for rel in to_remove if rel in dirs_in_dest]
        await self._gather(
            [
                self._run(_remove, dest_dir / rel, rel, result.removed)
                for rel in _outermost(removed_dirs)
            ]
        )

        new_dirs: list[str] = []
        new_files: list[str] = []
        for rel in new_entries:
            if await asyncio.to_thread((src_dir / rel).is_dir):
                new_dirs.append(rel)
            else:
                new_files.append(rel)
        for rel in new_dirs:
            await self._run(
                lambda path: path.mkdir(parents=True, exist_ok=True),
                dest_dir / rel,
                rel,
                result.copied,
            )
        await self._gather(
            [
                self._run(
                    lambda path, src=src_dir / rel: _copy_file(src, path),
                    dest_dir / rel,
                    rel,
                    result.copied,
                )
                for rel in new_files + to_copy
            ]
        )
        _LOGGER.debug(
            "Synced %s to %s: %d copied, %d removed",
            src_dir,
            dest_dir,
            len(result.copied),
            len(result.removed),
        )
        return result

    async def _gather(self, tasks: list[Awaitable[None]]) -> None:
        if tasks:
            await asyncio.gather(*tasks)

    async def _run(
        self, func: Callable[[Path], None], path: Path, rel: str, done: list[str]
    ) -> None:
        """Run a file operation, logging failures instead of aborting the sync."""
        try:
            await asyncio.to_thread(func, path)
        except OSError as err:
            _LOGGER.warning("Could not sync %s: %s", path, err)
            return
        done.append(rel)
