"""Test helpers for yalc."""

import json
from pathlib import Path
from typing import Any


def write_package(
    path: Path, manifest: dict[str, Any], files: dict[str, str] | None = None
) -> Path:
    """Create a package directory with a manifest and files."""
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps(manifest, indent=2) + "\n")
    for rel_path, content in (files or {}).items():
        file_path = path / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
    return path


def read_json(path: Path) -> Any:
    """Read a json file."""
    return json.loads(path.read_text())
