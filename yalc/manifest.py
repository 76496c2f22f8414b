"""Representation of a package manifest (package.json).

The manifest is kept as the raw JSON mapping so that fields yalc does not know
about survive a read/modify/write cycle untouched. The original indentation of
the file is remembered and reused when writing so that edits do not reformat
unrelated content.
"""

from collections import Counter
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import re
from typing import Any

import aiofiles

from .exceptions import InputException

__all__ = [
    "PackageManifest",
    "read_manifest",
    "write_manifest",
    "parse_package_name",
    "MANIFEST_FILE",
]

_LOGGER = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"
DEFAULT_INDENT = "  "
DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "peerDependencies")
SORTED_FIELDS = ("dependencies", "devDependencies")

_PACKAGE_NAME_RE = re.compile(r"(^@[^/]+/)?([^@]+)@?(.*)")


def parse_package_name(package: str) -> tuple[str, str]:
    """Split a `name@version` package argument into name and version.

    Scoped names keep their leading `@scope/`. The version is empty when not
    specified.
    """
    if not (match := _PACKAGE_NAME_RE.match(package)):
        return "", ""
    return (match.group(1) or "") + match.group(2), match.group(3) or ""


def detect_indent(content: str) -> str:
    """Return the most common indentation step of a JSON document.

    A step is the whitespace a line adds to the indentation of the previous
    line. The first step seen wins a tie.
    """
    steps: Counter[str] = Counter()
    previous = ""
    for line in content.splitlines():
        if not line.strip():
            continue
        indent = line[: len(line) - len(line.lstrip(" \t"))]
        if len(indent) > len(previous) and indent.startswith(previous):
            steps[indent[len(previous) :]] += 1
        previous = indent
    if not steps:
        return DEFAULT_INDENT
    return steps.most_common(1)[0][0]


@dataclass
class PackageManifest:
    """A package manifest with its original formatting."""

    data: dict[str, Any]
    """Raw manifest contents, in file order."""

    indent: str = field(default=DEFAULT_INDENT, compare=False)
    """Indentation of the source file, not persisted as a field."""

    @classmethod
    def parse(cls, content: str) -> "PackageManifest":
        """Parse and validate the contents of a manifest file."""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as err:
            raise InputException(f"Manifest is not valid JSON: {err}") from err
        if not isinstance(data, dict):
            raise InputException("Manifest must be a JSON object")
        name = data.get("name")
        version = data.get("version")
        if not name or not isinstance(name, str):
            raise InputException(f"Manifest has missing or invalid name ({name})")
        if not version or not isinstance(version, str):
            raise InputException(
                f"Manifest has missing or invalid version ({version})"
            )
        return cls(data=data, indent=detect_indent(content))

    @property
    def name(self) -> str:
        return str(self.data["name"])

    @property
    def version(self) -> str:
        return str(self.data["version"])

    @version.setter
    def version(self, value: str) -> None:
        self.data["version"] = value

    @property
    def private(self) -> bool:
        return bool(self.data.get("private"))

    @property
    def bin(self) -> str | dict[str, str] | None:
        return self.data.get("bin")

    @property
    def workspaces(self) -> Any:
        return self.data.get("workspaces")

    @property
    def scripts(self) -> dict[str, str]:
        return self.data.get("scripts") or {}

    @property
    def files(self) -> list[str] | None:
        return self.data.get("files")

    @property
    def catalog(self) -> Any:
        return self.data.get("catalog")

    @property
    def catalogs(self) -> Any:
        return self.data.get("catalogs")

    def dependencies(self, kind: str = "dependencies") -> dict[str, str] | None:
        """Return one of the dependency maps, if present."""
        return self.data.get(kind)

    def ensure_dependencies(self, kind: str) -> dict[str, str]:
        """Return one of the dependency maps, creating it when missing."""
        if (deps := self.data.get(kind)) is None:
            deps = {}
            self.data[kind] = deps
        return deps

    def copy(self) -> "PackageManifest":
        """Return a deep copy of the manifest."""
        return PackageManifest(data=json.loads(json.dumps(self.data)), indent=self.indent)

    def dumps(self) -> str:
        """Serialize with sorted dependency maps and the original indentation."""
        data = dict(self.data)
        for kind in SORTED_FIELDS:
            if isinstance(deps := data.get(kind), dict):
                data[kind] = {key: deps[key] for key in sorted(deps)}
        return json.dumps(data, indent=self.indent, ensure_ascii=False) + "\n"


async def read_manifest(working_dir: Path) -> PackageManifest | None:
    """Read the manifest in the directory, or None when missing or invalid."""
    manifest_path = working_dir / MANIFEST_FILE
    try:
        async with aiofiles.open(manifest_path, encoding="utf-8") as manifest_file:
            content = await manifest_file.read()
    except OSError as err:
        _LOGGER.error("Could not read %s: %s", manifest_path, err)
        return None
    try:
        return PackageManifest.parse(content)
    except InputException as err:
        _LOGGER.error("Invalid package manifest at %s: %s", manifest_path, err)
        return None


async def write_manifest(working_dir: Path, manifest: PackageManifest) -> None:
    """Write the manifest to the directory."""
    manifest_path = working_dir / MANIFEST_FILE
    async with aiofiles.open(manifest_path, mode="w", encoding="utf-8") as manifest_file:
        await manifest_file.write(manifest.dumps())
