"""Tests for resolving workspace and catalog specifiers."""

import json
from pathlib import Path

import pytest

from yalc.catalog import clear_catalog_cache
from yalc.manifest import PackageManifest
from yalc.resolver import find_package_dir, resolve_manifest, resolve_workspace_version


@pytest.fixture(name="workspace")
def workspace_fixture(tmp_path: Path) -> Path:
    """Fixture with a workspace holding a sibling package in node_modules."""
    sibling = tmp_path / "node_modules" / "@scope" / "sibling"
    sibling.mkdir(parents=True)
    (sibling / "package.json").write_text(
        json.dumps({"name": "@scope/sibling", "version": "2.3.4"})
    )
    (tmp_path / "pnpm-workspace.yaml").write_text("catalog:\n  react: ^18.2.0\n")
    package_dir = tmp_path / "packages" / "my-lib"
    package_dir.mkdir(parents=True)
    clear_catalog_cache()
    return package_dir


def test_find_package_dir(workspace: Path) -> None:
    """Test finding an installed package in a parent node_modules."""
    found = find_package_dir("@scope/sibling", workspace)
    assert found is not None
    assert found.name == "sibling"
    assert find_package_dir("missing", workspace) is None


@pytest.mark.parametrize(
    ("selector", "expected"),
    [
        ("*", "2.3.4"),
        ("^", "^2.3.4"),
        ("~", "~2.3.4"),
        ("^2.0.0", "^2.0.0"),
        ("1.x", "1.x"),
    ],
)
async def test_resolve_workspace_version(
    workspace: Path, selector: str, expected: str
) -> None:
    """Test workspace selectors resolve to the sibling version."""
    assert await resolve_workspace_version(selector, "@scope/sibling", workspace) == expected


async def test_resolve_workspace_missing(workspace: Path) -> None:
    """Test an unresolvable workspace package falls back to any version."""
    assert await resolve_workspace_version("^", "missing", workspace) == "*"


async def test_resolve_manifest(workspace: Path) -> None:
    """Test a manifest copy has all workspace and catalog specifiers replaced."""
    (workspace / "package.json").write_text(
        json.dumps({"name": "my-lib", "version": "1.0.0", "catalog": {"react": "^18.3.0"}})
    )
    manifest = PackageManifest(
        data={
            "name": "my-lib",
            "version": "1.0.0",
            "dependencies": {
                "@scope/sibling": "workspace:^",
                "react": "catalog:",
                "lodash": "^4.17.21",
            },
            "peerDependencies": {"@scope/sibling": "workspace:*"},
            "devDependencies": {"missing": "catalog:testing"},
        }
    )
    resolved = await resolve_manifest(manifest, workspace)
    assert resolved.dependencies() == {
        "@scope/sibling": "^2.3.4",
        "react": "^18.3.0",
        "lodash": "^4.17.21",
    }
    assert resolved.dependencies("peerDependencies") == {"@scope/sibling": "2.3.4"}
    assert resolved.dependencies("devDependencies") == {"missing": "catalog:testing"}
    assert manifest.dependencies() == {
        "@scope/sibling": "workspace:^",
        "react": "catalog:",
        "lodash": "^4.17.21",
    }
