"""Library for detecting local package references in a project manifest.

Intended as a pre-commit check so that a manifest pointing at `.yalc` copies
is not committed by accident.
"""

import json
import logging
from pathlib import Path
import re

import aiofiles
import git

from .config import PACKAGES_FOLDER, CheckOptions
from .exceptions import InputException
from .manifest import MANIFEST_FILE

__all__ = [
    "check_manifest",
]

_LOGGER = logging.getLogger(__name__)

LOCAL_ADDRESS_RE = re.compile(rf"^(file|link):(\./)?{re.escape(PACKAGES_FOLDER)}/")


def staged_manifests(working_dir: Path) -> list[str]:
    """Return the package manifests staged for commit in the repository."""
    try:
        repo = git.repo.Repo(str(working_dir), search_parent_directories=True)
        staged = repo.git.diff("--cached", "--name-only")
    except git.GitError as err:
        raise InputException(f"Unable to read staged changes in {working_dir}: {err}") from err
    return [
        name for name in staged.splitlines() if Path(name.strip()).name == MANIFEST_FILE
    ]


def find_local_dependencies(manifest: dict) -> list[str]:
    """Return names of dependencies that reference the `.yalc` folder."""
    result: list[str] = []
    for kind in ("dependencies", "devDependencies"):
        for name, spec in (manifest.get(kind) or {}).items():
            if isinstance(spec, str) and LOCAL_ADDRESS_RE.match(spec):
                result.append(name)
    return result


async def check_manifest(options: CheckOptions) -> list[str]:
    """Return the dependencies of the project that reference `.yalc` copies.

    With `commit`, the check only runs when a package manifest is staged.
    """
    if options.commit and not staged_manifests(options.working_dir):
        _LOGGER.debug("No staged %s, skipping check", MANIFEST_FILE)
        return []
    manifest_path = options.working_dir / MANIFEST_FILE
    try:
        async with aiofiles.open(manifest_path, encoding="utf-8") as manifest_file:
            manifest = json.loads(await manifest_file.read())
    except (OSError, ValueError) as err:
        raise InputException(f"Unable to read {manifest_path}: {err}") from err
    local_deps = find_local_dependencies(manifest)
    if local_deps:
        _LOGGER.info("Yalc dependencies found: %s", ", ".join(local_deps))
    return local_deps
