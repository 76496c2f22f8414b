"""Library for computing the list of files included in a published package.

The rules follow the npm packing behavior:

- With a `files` field in the manifest, only entries matching those patterns
  are included, plus files that are always packed (the manifest, readme,
  license, changelog, the `main` file and `bin` files).
- Without a `files` field, the whole tree is included except for patterns in
  `.npmignore`, or `.gitignore` when there is no `.npmignore`.
- Version control folders, `node_modules`, lockfiles and editor junk are never
  included.

The result is further filtered by patterns in the project `.yalcignore` file.
Patterns use gitignore semantics as implemented by `pathspec`.
"""

import asyncio
import logging
import os
from pathlib import Path
import re

import aiofiles
import pathspec

from .config import IGNORE_FILE_NAME
from .manifest import PackageManifest

__all__ = [
    "get_packlist",
    "list_all_files",
]

_LOGGER = logging.getLogger(__name__)

SKIP_DIRS = {".git", "node_modules"}

ALWAYS_EXCLUDE = [
    ".git",
    "node_modules",
    ".npmrc",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    ".DS_Store",
    "npm-debug.log",
    "*.orig",
    ".*.swp",
    "yalc.lock",
]

# Only applied when the manifest has no `files` field
DEFAULT_EXCLUDE = ["/.yalc/"]

ALWAYS_INCLUDE_RE = re.compile(
    r"^(package\.json|readme(\..*)?|licen[cs]e(\..*)?|changelog(\..*)?)$",
    re.IGNORECASE,
)


def _spec(lines: list[str]) -> pathspec.GitIgnoreSpec:
    return pathspec.GitIgnoreSpec.from_lines(lines)


def _normalize(path: str) -> str:
    return path[2:] if path.startswith("./") else path


def list_all_files(working_dir: Path) -> list[str]:
    """Return every file under the directory except node_modules and .git."""
    result: list[str] = []
    for dirpath, dirnames, filenames in os.walk(working_dir):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        rel_dir = Path(dirpath).relative_to(working_dir)
        result.extend((rel_dir / name).as_posix() for name in sorted(filenames))
    return result


def _required_files(manifest: PackageManifest) -> set[str]:
    """Files that are packed even when not matched by `files`."""
    required: set[str] = set()
    if isinstance(main := manifest.data.get("main"), str):
        required.add(_normalize(main))
    match manifest.bin:
        case str(bin_path):
            required.add(_normalize(bin_path))
        case dict(bins):
            required.update(_normalize(path) for path in bins.values())
    return required


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return []


def _build_packlist(working_dir: Path, manifest: PackageManifest) -> list[str]:
    exclude = _spec(ALWAYS_EXCLUDE)
    candidates = [f for f in list_all_files(working_dir) if not exclude.match_file(f)]

    if (patterns := manifest.files) is not None:
        if not isinstance(patterns, list) or not all(
            isinstance(pattern, str) for pattern in patterns
        ):
            raise ValueError("Manifest 'files' must be a list of strings")
        included = _spec([_normalize(pattern) for pattern in patterns])
        required = _required_files(manifest)
        return [
            f
            for f in candidates
            if included.match_file(f) or f in required or ALWAYS_INCLUDE_RE.match(f)
        ]

    ignore_lines = _read_lines(working_dir / ".npmignore")
    if not (working_dir / ".npmignore").exists():
        ignore_lines = _read_lines(working_dir / ".gitignore")
    ignored = _spec(DEFAULT_EXCLUDE + ignore_lines)
    return [
        f for f in candidates if ALWAYS_INCLUDE_RE.match(f) or not ignored.match_file(f)
    ]


async def _read_yalcignore(working_dir: Path) -> pathspec.GitIgnoreSpec:
    try:
        async with aiofiles.open(working_dir / IGNORE_FILE_NAME) as ignore_file:
            content = await ignore_file.read()
    except FileNotFoundError:
        return _spec([])
    return _spec(content.splitlines())


async def get_packlist(working_dir: Path, manifest: PackageManifest) -> list[str]:
    """Return the sorted relative paths of files to publish from the directory.

    When the inclusion rules cannot be applied, every file except those in
    `node_modules` and `.git` is returned instead. That fallback ignores the
    `files` field and `.npmignore`, so it may publish more than intended.
    """
    try:
        files = await asyncio.to_thread(_build_packlist, working_dir, manifest)
    except (OSError, ValueError) as err:
        _LOGGER.warning(
            "Could not compute package file list (%s), "
            "publishing all files except node_modules and .git",
            err,
        )
        files = await asyncio.to_thread(list_all_files, working_dir)
    yalcignore = await _read_yalcignore(working_dir)
    return sorted(f for f in files if not yalcignore.match_file(f))
