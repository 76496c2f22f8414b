"""Tests for yalc commands run against temporary projects."""

import json
from pathlib import Path

import pytest

from yalc.exceptions import CommandException

from .. import read_json, write_package
from . import run_command


@pytest.fixture(name="store_dir")
def store_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for the store location used by the commands."""
    return tmp_path / "store"


@pytest.fixture(name="package_dir")
def package_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for a package to publish."""
    return write_package(
        tmp_path / "my-lib",
        {"name": "my-lib", "version": "1.0.0", "main": "index.js"},
        {"index.js": "module.exports = 1;\n"},
    )


@pytest.fixture(name="project_dir")
def project_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for a project consuming the package."""
    return write_package(
        tmp_path / "app",
        {"name": "app", "version": "0.1.0", "dependencies": {"my-lib": "^0.9.0"}},
    )


async def test_dir(store_dir: Path) -> None:
    """Test printing the store location."""
    result = await run_command(["--store-folder", str(store_dir), "dir"])
    assert result == f"{store_dir.resolve()}\n"


async def test_publish_add_remove(
    store_dir: Path, package_dir: Path, project_dir: Path
) -> None:
    """Test the publish, add, check and remove commands together."""
    store_args = ["--store-folder", str(store_dir)]
    await run_command(store_args + ["publish", str(package_dir)])
    assert (store_dir / "packages" / "my-lib" / "1.0.0" / "index.js").is_file()

    await run_command(store_args + ["add", "my-lib"], cwd=project_dir)
    assert read_json(project_dir / "package.json")["dependencies"] == {
        "my-lib": "file:.yalc/my-lib"
    }
    assert json.loads((store_dir / "installations.json").read_text()) == {
        "my-lib": [str(project_dir)]
    }

    with pytest.raises(CommandException, match="Yalc dependencies found: my-lib"):
        await run_command(store_args + ["check"], cwd=project_dir)

    result = await run_command(store_args + ["where", "my-lib"])
    assert result == f"{project_dir}\n"

    await run_command(store_args + ["remove", "my-lib"], cwd=project_dir)
    assert read_json(project_dir / "package.json")["dependencies"] == {
        "my-lib": "^0.9.0"
    }
    assert not (project_dir / "yalc.lock").exists()
    await run_command(store_args + ["check"], cwd=project_dir)


async def test_publish_invalid(store_dir: Path, tmp_path: Path) -> None:
    """Test publishing a directory without a manifest reports an error."""
    with pytest.raises(CommandException, match="yalc error"):
        await run_command(["--store-folder", str(store_dir), "publish", str(tmp_path)])
