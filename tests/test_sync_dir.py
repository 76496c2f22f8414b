"""Tests for the directory sync library."""

import os
from pathlib import Path

import pytest

from yalc.sync_dir import DirSync


@pytest.fixture(name="src_dir")
def src_dir_fixture(tmp_path: Path) -> Path:
    """Fixture with an example package tree."""
    src = tmp_path / "src"
    (src / "lib" / "util").mkdir(parents=True)
    (src / "node_modules" / "dep").mkdir(parents=True)
    (src / "package.json").write_text('{"name": "my-lib", "version": "1.0.0"}')
    (src / ".npmrc").write_text("registry=http://localhost\n")
    (src / "lib" / "index.js").write_text("module.exports = 1;\n")
    (src / "lib" / "util" / "helper.js").write_text("module.exports = 2;\n")
    (src / "node_modules" / "dep" / "index.js").write_text("ignored\n")
    return src


async def test_sync_copies_tree(src_dir: Path, tmp_path: Path) -> None:
    """Test an empty destination receives a copy of the source."""
    dest = tmp_path / "dest"
    result = await DirSync().sync(src_dir, dest)
    assert result.changed
    assert sorted(result.copied) == [
        ".npmrc",
        "lib",
        "lib/index.js",
        "lib/util",
        "lib/util/helper.js",
        "package.json",
    ]
    assert not result.removed
    assert (dest / "lib" / "util" / "helper.js").read_text() == "module.exports = 2;\n"
    assert not (dest / "node_modules").exists()


async def test_sync_is_idempotent(src_dir: Path, tmp_path: Path) -> None:
    """Test syncing an unchanged tree a second time does nothing."""
    dest = tmp_path / "dest"
    await DirSync().sync(src_dir, dest)
    result = await DirSync().sync(src_dir, dest)
    assert not result.changed


async def test_sync_changed_file(src_dir: Path, tmp_path: Path) -> None:
    """Test a modified source file is copied again."""
    dest = tmp_path / "dest"
    await DirSync().sync(src_dir, dest)

    (src_dir / "lib" / "index.js").write_text("module.exports = 'changed';\n")
    result = await DirSync().sync(src_dir, dest)
    assert result.copied == ["lib/index.js"]
    assert (dest / "lib" / "index.js").read_text() == "module.exports = 'changed';\n"


async def test_sync_same_content_new_mtime(src_dir: Path, tmp_path: Path) -> None:
    """Test a file with a new mtime but identical content is not copied."""
    dest = tmp_path / "dest"
    await DirSync().sync(src_dir, dest)
    os.utime(dest / "package.json", (1_000_000, 1_000_000))

    result = await DirSync().sync(src_dir, dest)
    assert not result.changed

    result = await DirSync().sync(src_dir, dest, compare_content=False)
    assert result.copied == ["package.json"]


async def test_sync_removes_obsolete(src_dir: Path, tmp_path: Path) -> None:
    """Test entries missing from the source are removed."""
    dest = tmp_path / "dest"
    await DirSync().sync(src_dir, dest)
    (dest / "old" / "nested").mkdir(parents=True)
    (dest / "old" / "nested" / "file.js").write_text("stale\n")
    (dest / "stale.js").write_text("stale\n")

    result = await DirSync().sync(src_dir, dest)
    assert sorted(result.removed) == ["old", "old/nested/file.js", "stale.js"]
    assert not (dest / "old").exists()
    assert not (dest / "stale.js").exists()
    assert (dest / "lib" / "index.js").exists()


async def test_sync_type_mismatch(src_dir: Path, tmp_path: Path) -> None:
    """Test a directory replaced by a file of the same name."""
    dest = tmp_path / "dest"
    await DirSync().sync(src_dir, dest)
    (dest / "package.json").unlink()
    (dest / "package.json").mkdir()
    (dest / "package.json" / "inner").write_text("x")

    result = await DirSync().sync(src_dir, dest)
    assert "package.json" in result.copied
    assert (dest / "package.json").is_file()
    assert (dest / "package.json").read_text() == (src_dir / "package.json").read_text()


async def test_sync_keeps_destination_node_modules(src_dir: Path, tmp_path: Path) -> None:
    """Test node_modules in the destination is never touched."""
    dest = tmp_path / "dest"
    (dest / "node_modules" / "other").mkdir(parents=True)
    (dest / "node_modules" / "other" / "index.js").write_text("kept\n")

    await DirSync().sync(src_dir, dest)
    assert (dest / "node_modules" / "other" / "index.js").read_text() == "kept\n"
