"""Fixtures for yalc tests."""

from collections.abc import Generator
import logging
from pathlib import Path

import pytest

from yalc import context
from yalc.catalog import clear_catalog_cache
from yalc.config import PublishOptions, StoreConfig
from yalc.store.publish import publish_package

from . import write_package

_LOGGER = logging.getLogger(__name__)

# Global collector for the whole session
SESSION_COLLECTOR = context.TraceCollector()


@pytest.fixture(name="store")
def store_fixture(tmp_path: Path) -> StoreConfig:
    """Fixture for an empty store in a temporary directory."""
    return StoreConfig(tmp_path / "store")


@pytest.fixture(name="package_dir")
def package_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for the source directory of a package."""
    return write_package(
        tmp_path / "my-lib",
        {
            "name": "my-lib",
            "version": "1.0.0",
            "main": "index.js",
            "bin": "bin/cli.js",
            "devDependencies": {"typescript": "^5.0.0"},
        },
        {
            "index.js": "module.exports = 1;\n",
            "bin/cli.js": "#!/usr/bin/env node\n",
            "README.md": "# my-lib\n",
        },
    )


@pytest.fixture(name="project_dir")
def project_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for a project consuming the package."""
    return write_package(
        tmp_path / "app",
        {
            "name": "app",
            "version": "0.1.0",
            "dependencies": {"my-lib": "^0.9.0", "lodash": "^4.17.21"},
        },
    )


@pytest.fixture(name="published")
async def published_fixture(package_dir: Path, store: StoreConfig) -> str:
    """Fixture that publishes the package into the store."""
    signature = await publish_package(PublishOptions(working_dir=package_dir), store)
    assert signature
    return signature


@pytest.fixture(autouse=True)
def clear_caches() -> Generator[None, None, None]:
    """Reset the shared catalog cache between tests."""
    clear_catalog_cache()
    yield
    clear_catalog_cache()


@pytest.fixture(autouse=True)
def trace_capture() -> Generator[None, None, None]:
    """Capture traces for each test and add them to the session collector."""
    with context.get_trace_collector() as collector:
        yield
        for name, duration in collector.timings.items():
            SESSION_COLLECTOR.add(name, duration)


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    """Print the trace summary at the end of the session."""
    if not SESSION_COLLECTOR.timings:
        return

    print("\n\n" + "=" * 20 + " TRACE SUMMARY " + "=" * 20)
    for name, duration in sorted(
        SESSION_COLLECTOR.timings.items(), key=lambda x: x[1], reverse=True
    ):
        count = SESSION_COLLECTOR.counts[name]
        print(f" - {name:<20}: {duration:>6.2f}s (count: {count:>3})")
    print("=" * 55 + "\n")
