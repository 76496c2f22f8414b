"""Tests for listing and summarizing store packages."""

from datetime import datetime, timedelta
import json
import os
from pathlib import Path

import pytest

from yalc.config import StoreConfig
from yalc.lockfile import Lockfile, LockfileEntry, write_lockfile
from yalc.store import Store
from yalc.store.installations import Installation, add_installations
from yalc.store.manager import (
    compare_versions,
    format_relative_time,
    format_size,
    get_package_usage_info,
    get_store_stats,
    get_unused_packages,
    list_store_packages,
    sort_versions,
)

from .. import write_package


def add_store_version(store: StoreConfig, name: str, version: str, mtime: float) -> Path:
    """Create a published version in the store with the given timestamp."""
    version_dir = write_package(
        store.package_dir(name, version),
        {"name": name, "version": version},
        {"index.js": "x" * 100},
    )
    os.utime(version_dir, (mtime, mtime))
    return version_dir


@pytest.fixture(name="populated_store")
async def populated_store_fixture(store: StoreConfig, tmp_path: Path) -> StoreConfig:
    """Fixture for a store with a few packages, one of them used."""
    add_store_version(store, "my-lib", "1.0.0", 1_000_000)
    add_store_version(store, "my-lib", "1.10.0", 3_000_000)
    add_store_version(store, "my-lib", "1.9.0", 2_000_000)
    add_store_version(store, "@scope/util", "0.1.0", 4_000_000)
    project = write_package(tmp_path / "app", {"name": "app", "version": "1.0.0"})
    await add_installations(store, [Installation(name="my-lib", path=str(project))])
    return store


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ("1.0.0", "1.0.0", 0),
        ("1.10.0", "1.9.0", 1),
        ("1.0.0", "1.0.1", -1),
        ("1.0.0-beta", "1.0.0-alpha", 1),
        ("2.0", "2.0.0", 0),
    ],
)
def test_compare_versions(a: str, b: str, expected: int) -> None:
    """Test versions compare by numeric then lexicographic components."""
    assert compare_versions(a, b) == expected


def test_sort_versions() -> None:
    """Test versions are sorted newest first."""
    assert sort_versions(["1.0.0", "1.10.0", "1.9.0"]) == ["1.10.0", "1.9.0", "1.0.0"]


async def test_list_store_packages(populated_store: StoreConfig) -> None:
    """Test the latest version of each package is listed newest first."""
    packages = await list_store_packages(populated_store)
    assert [(p.name, p.version) for p in packages] == [
        ("@scope/util", "0.1.0"),
        ("my-lib", "1.10.0"),
    ]
    assert packages[0].used_in_projects == []
    assert len(packages[1].used_in_projects) == 1
    assert packages[1].size > 100


async def test_list_empty_store(store: StoreConfig) -> None:
    """Test listing a store that does not exist yet."""
    assert await list_store_packages(store) == []
    stats = await get_store_stats(store)
    assert stats.total_packages == 0
    assert stats.last_activity is None


async def test_skips_invalid_packages(store: StoreConfig) -> None:
    """Test packages without a valid manifest are skipped."""
    (store.package_dir("broken", "1.0.0")).mkdir(parents=True)
    (store.package_dir("empty")).mkdir(parents=True)
    write_package(store.package_dir("noversion", "1.0.0"), {"name": "noversion"})
    assert await list_store_packages(store) == []


async def test_unused_and_stats(populated_store: StoreConfig) -> None:
    """Test unused packages and the store summary."""
    unused = await get_unused_packages(populated_store)
    assert [p.name for p in unused] == ["@scope/util"]

    stats = await get_store_stats(populated_store)
    assert stats.total_packages == 2
    assert stats.unused_packages == 1
    assert stats.last_activity == datetime.fromtimestamp(4_000_000)


async def test_package_usage_info(populated_store: StoreConfig, tmp_path: Path) -> None:
    """Test usage details are read from each project."""
    project = tmp_path / "app"
    (project / "package.json").write_text(
        json.dumps(
            {"name": "app", "version": "1.0.0", "devDependencies": {"my-lib": "link:.yalc/my-lib"}}
        )
    )
    await write_lockfile(project, Lockfile(packages={"my-lib": LockfileEntry(link=True)}))

    usage = await get_package_usage_info(populated_store)
    by_name = {info.package_name: info for info in usage}
    assert by_name["@scope/util"].projects == []
    projects = by_name["my-lib"].projects
    assert len(projects) == 1
    assert projects[0].path == str(project)
    assert projects[0].version == "1.10.0"
    assert projects[0].is_dev
    assert projects[0].is_link


async def test_clean_packages(populated_store: StoreConfig) -> None:
    """Test unused packages are removed from the store."""
    store = Store(populated_store)
    dry = await store.clean_packages(dry_run=True)
    assert [p.name for p in dry] == ["@scope/util"]
    assert await store.has_package("@scope/util")

    removed = await store.clean_packages()
    assert [p.name for p in removed] == ["@scope/util"]
    assert not await store.has_package("@scope/util")
    assert not (populated_store.packages_dir / "@scope").exists()
    assert await store.has_package("my-lib")


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 B"),
        (512, "512.0 B"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (3 * 1024**3, "3.0 GB"),
    ],
)
def test_format_size(size: int, expected: str) -> None:
    """Test human readable sizes."""
    assert format_size(size) == expected


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(seconds=10), "just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3), "3h ago"),
        (timedelta(days=2), "2d ago"),
        (timedelta(days=45), "2024-01-01"),
    ],
)
def test_format_relative_time(delta: timedelta, expected: str) -> None:
    """Test relative timestamps."""
    when = datetime(2024, 1, 1, 12, 0, 0)
    assert format_relative_time(when, now=when + delta) == expected
