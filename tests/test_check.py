"""Tests for checking a manifest for local package references."""

import json
from pathlib import Path

import git
import pytest

from yalc.check import check_manifest, find_local_dependencies
from yalc.config import CheckOptions
from yalc.exceptions import InputException

MANIFEST = {
    "name": "app",
    "version": "1.0.0",
    "dependencies": {"my-lib": "file:.yalc/my-lib", "lodash": "^4.17.21"},
    "devDependencies": {"@scope/util": "link:./.yalc/@scope/util"},
    "peerDependencies": {"react": "file:.yalc/react"},
}


def test_find_local_dependencies() -> None:
    """Test dependencies pointing at the .yalc folder are found."""
    assert find_local_dependencies(MANIFEST) == ["my-lib", "@scope/util"]
    assert find_local_dependencies({"name": "app"}) == []


async def test_check_manifest(tmp_path: Path) -> None:
    """Test checking the manifest in a project directory."""
    (tmp_path / "package.json").write_text(json.dumps(MANIFEST))
    assert await check_manifest(CheckOptions(working_dir=tmp_path)) == [
        "my-lib",
        "@scope/util",
    ]


async def test_check_missing_manifest(tmp_path: Path) -> None:
    """Test a project without a manifest cannot be checked."""
    with pytest.raises(InputException, match="Unable to read"):
        await check_manifest(CheckOptions(working_dir=tmp_path))


async def test_check_commit(tmp_path: Path) -> None:
    """Test the commit check only runs with a staged manifest."""
    repo = git.Repo.init(tmp_path)
    (tmp_path / "package.json").write_text(json.dumps(MANIFEST))
    options = CheckOptions(working_dir=tmp_path, commit=True)
    assert await check_manifest(options) == []

    repo.index.add(["package.json"])
    assert await check_manifest(options) == ["my-lib", "@scope/util"]
