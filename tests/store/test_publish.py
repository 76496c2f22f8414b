"""Tests for publishing packages into the store."""

from collections.abc import Generator
import logging
from pathlib import Path

import pytest

from yalc.config import PublishOptions, StoreConfig
from yalc.exceptions import InputException
from yalc.store.publish import copy_package_to_store, publish_package, strip_dev_fields
from yalc.manifest import PackageManifest

from .. import read_json, write_package


async def test_publish(package_dir: Path, store: StoreConfig) -> None:
    """Test the package files and rewritten manifest are copied to the store."""
    signature = await publish_package(PublishOptions(working_dir=package_dir), store)
    assert signature
    assert len(signature) == 32

    version_dir = store.package_dir("my-lib", "1.0.0")
    assert sorted(p.relative_to(version_dir).as_posix() for p in version_dir.rglob("*")) == [
        "README.md",
        "bin",
        "bin/cli.js",
        "index.js",
        "package.json",
        "yalc.sig",
    ]
    assert (version_dir / "yalc.sig").read_text() == signature
    manifest = read_json(version_dir / "package.json")
    assert manifest["yalcSig"] == signature
    assert manifest["version"] == "1.0.0"
    assert "devDependencies" not in manifest

    # Source manifest is unchanged
    assert "yalcSig" not in read_json(package_dir / "package.json")


async def test_publish_signature_version(package_dir: Path, store: StoreConfig) -> None:
    """Test the short signature is appended to the published version."""
    signature = await publish_package(
        PublishOptions(working_dir=package_dir, signature=True, dev_mod=False), store
    )
    assert signature
    manifest = read_json(store.package_dir("my-lib", "1.0.0") / "package.json")
    assert manifest["version"] == f"1.0.0+{signature[:8]}"
    assert manifest["devDependencies"] == {"typescript": "^5.0.0"}


async def test_publish_changed(package_dir: Path, store: StoreConfig) -> None:
    """Test publishing with `changed` skips unchanged content."""
    options = PublishOptions(working_dir=package_dir, changed=True)
    first = await copy_package_to_store(options, store)
    assert isinstance(first, str)
    assert await copy_package_to_store(options, store) is False
    assert await publish_package(options, store) is None

    (package_dir / "index.js").write_text("module.exports = 2;\n")
    second = await copy_package_to_store(options, store)
    assert isinstance(second, str)
    assert second != first


async def test_publish_same_signature(package_dir: Path, store: StoreConfig) -> None:
    """Test publishing the same content twice produces the same signature."""
    first = await copy_package_to_store(PublishOptions(working_dir=package_dir), store)
    second = await copy_package_to_store(PublishOptions(working_dir=package_dir), store)
    assert first == second


async def test_publish_private(
    tmp_path: Path, store: StoreConfig, caplog: pytest.LogCaptureFixture
) -> None:
    """Test private packages are only published when forced."""
    package_dir = write_package(
        tmp_path / "secret", {"name": "secret", "version": "1.0.0", "private": True}
    )
    with caplog.at_level(logging.WARNING):
        assert await publish_package(PublishOptions(working_dir=package_dir), store) is None
    assert "private: true" in caplog.text
    assert not store.package_dir("secret").exists()

    assert await publish_package(
        PublishOptions(working_dir=package_dir, private=True), store
    )
    assert store.package_dir("secret", "1.0.0").is_dir()


async def test_publish_invalid_manifest(tmp_path: Path, store: StoreConfig) -> None:
    """Test publishing a directory without a valid manifest fails."""
    (tmp_path / "package.json").write_text('{"name": "no-version"}')
    with pytest.raises(InputException):
        await publish_package(PublishOptions(working_dir=tmp_path), store)


async def test_publish_resolves_workspace(tmp_path: Path, store: StoreConfig) -> None:
    """Test workspace and catalog specifiers are resolved when publishing."""
    write_package(
        tmp_path / "node_modules" / "sibling", {"name": "sibling", "version": "3.1.0"}
    )
    package_dir = write_package(
        tmp_path / "packages" / "my-lib",
        {
            "name": "my-lib",
            "version": "1.0.0",
            "dependencies": {"sibling": "workspace:^", "react": "catalog:"},
            "catalog": {"react": "^18.2.0"},
        },
    )
    await publish_package(PublishOptions(working_dir=package_dir), store)
    manifest = read_json(store.package_dir("my-lib", "1.0.0") / "package.json")
    assert manifest["dependencies"] == {"react": "^18.2.0", "sibling": "^3.1.0"}

    await publish_package(
        PublishOptions(working_dir=package_dir, workspace_resolve=False), store
    )
    manifest = read_json(store.package_dir("my-lib", "1.0.0") / "package.json")
    assert manifest["dependencies"] == {"react": "catalog:", "sibling": "workspace:^"}


def test_strip_dev_fields() -> None:
    """Test dev dependencies and install scripts are removed."""
    manifest = PackageManifest(
        data={
            "name": "my-lib",
            "version": "1.0.0",
            "devDependencies": {"jest": "^29.0.0"},
            "scripts": {"prepare": "tsc", "prepublish": "tsc", "test": "jest"},
        }
    )
    stripped = strip_dev_fields(manifest)
    assert stripped.data == {
        "name": "my-lib",
        "version": "1.0.0",
        "scripts": {"test": "jest"},
    }
    assert "devDependencies" in manifest.data


@pytest.fixture(name="low_file_limit")
def low_file_limit_fixture() -> Generator[int, None, None]:
    """Fixture that lowers the open file limit of the process."""
    resource = pytest.importorskip("resource")
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    limit = 256
    if soft != resource.RLIM_INFINITY and soft < limit:
        limit = soft
    resource.setrlimit(resource.RLIMIT_NOFILE, (limit, hard))
    try:
        yield limit
    finally:
        resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))


async def test_publish_many_files(
    tmp_path: Path, store: StoreConfig, low_file_limit: int
) -> None:
    """Test publishing more files than may be open at once."""
    count = low_file_limit * 4
    package = write_package(
        tmp_path / "big",
        {"name": "big", "version": "1.0.0"},
        {f"lib/f{i}.js": f"module.exports = {i};\n" for i in range(count)},
    )
    signature = await publish_package(PublishOptions(working_dir=package), store)
    assert signature
    version_dir = store.package_dir("big", "1.0.0")
    assert len(list((version_dir / "lib").iterdir())) == count


async def test_signature_independent_of_file_order(
    tmp_path: Path, store: StoreConfig
) -> None:
    """Test the same files created in a different order have one signature."""
    files = {
        "index.js": "module.exports = 1;\n",
        "lib/a.js": "exports.a = 1;\n",
        "lib/b.js": "exports.b = 2;\n",
        "README.md": "# ordered\n",
    }
    manifest = {"name": "ordered", "version": "1.0.0"}
    first = write_package(tmp_path / "first", manifest, files)
    second = write_package(
        tmp_path / "second", manifest, dict(reversed(list(files.items())))
    )

    first_sig = await copy_package_to_store(PublishOptions(working_dir=first), store)
    second_sig = await copy_package_to_store(
        PublishOptions(working_dir=second), StoreConfig(tmp_path / "other-store")
    )
    assert isinstance(first_sig, str)
    assert first_sig == second_sig
