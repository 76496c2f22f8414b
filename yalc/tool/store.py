"""Yalc actions for inspecting and cleaning the package store."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import Any, cast

from yalc.config import StoreConfig
from yalc.manifest import parse_package_name
from yalc.store import Store
from yalc.store.manager import (
    StorePackageInfo,
    format_relative_time,
    format_size,
    get_package_usage_info,
    get_store_stats,
    get_unused_packages,
    list_store_packages,
)

from .format import JsonFormatter, PrintFormatter


_LOGGER = logging.getLogger(__name__)


def _package_row(package: StorePackageInfo, detailed: bool) -> dict[str, Any]:
    row: dict[str, Any] = {
        "name": package.name,
        "version": package.version,
        "published": format_relative_time(package.published_at),
    }
    if detailed:
        row["size"] = format_size(package.size)
        row["projects"] = len(package.used_in_projects)
    return row


class ListAction:
    """Yalc list action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "list",
                help="List packages in the store",
                description="List the latest version of every package in the store.",
            ),
        )
        args.add_argument(
            "--detailed",
            action="store_true",
            help="Include size and usage of each package",
        )
        args.add_argument(
            "--unused",
            action="store_true",
            help="Only list packages not used by any project",
        )
        args.add_argument(
            "--json",
            action="store_true",
            help="Output the store contents as json",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        detailed: bool,
        unused: bool,
        json: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        store = StoreConfig.default()
        if unused:
            packages = await get_unused_packages(store)
        else:
            packages = await list_store_packages(store)
        if json:
            stats = await get_store_stats(store)
            JsonFormatter().print(
                {
                    "packages": [
                        {
                            key: value
                            for key, value in package.to_dict().items()
                            if key != "manifest"
                        }
                        for package in packages
                    ],
                    "stats": stats.to_dict(),
                }
            )
            return
        PrintFormatter(empty="no packages found in store").print(
            [_package_row(package, detailed) for package in packages]
        )
        if detailed:
            stats = await get_store_stats(store)
            print()
            print(
                f"Total: {stats.total_packages} packages, "
                f"{format_size(stats.total_size)}, {stats.unused_packages} unused"
            )


class InfoAction:
    """Yalc info action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "info",
                help="Show information about a package in the store",
                description="Show the latest version of a package and the projects using it.",
            ),
        )
        args.add_argument("package", help="Name of the package")
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        package: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        name, _ = parse_package_name(package)
        store = StoreConfig.default()
        found = [info for info in await list_store_packages(store) if info.name == name]
        if not found:
            print(f"{name} not found in store")
            return
        info = found[0]
        print(f"name: {info.name}")
        print(f"version: {info.version}")
        print(f"published: {format_relative_time(info.published_at)}")
        print(f"size: {format_size(info.size)}")
        print(f"path: {info.store_path}")
        usage = next(
            (usage for usage in await get_package_usage_info(store) if usage.package_name == name),
            None,
        )
        if usage is None or not usage.projects:
            print("projects: none")
            return
        print("projects:")
        PrintFormatter(keys=["path", "is_dev", "is_link"]).print(
            [project.to_dict() for project in usage.projects]
        )


class WhereAction:
    """Yalc where action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "where",
                help="Print the projects using a package",
                description="Print the project directories a package was added to.",
            ),
        )
        args.add_argument("package", help="Name of the package")
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        package: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        name, _ = parse_package_name(package)
        store = StoreConfig.default()
        if not await Store(store).has_package(name):
            print(f"{name} not found in store")
            return
        found = [info for info in await list_store_packages(store) if info.name == name]
        projects = found[0].used_in_projects if found else []
        if not projects:
            print(f"{name} is not used in any project")
            return
        for path in projects:
            print(path)


class CleanAction:
    """Yalc clean action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "clean",
                help="Remove unused packages from the store",
                description="Remove packages from the store that no project uses.",
            ),
        )
        args.add_argument(
            "--unused",
            action="store_true",
            help="Remove packages not used by any project (the default)",
        )
        args.add_argument(
            "--dry-run",
            action="store_true",
            help="Only print the packages that would be removed",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        dry_run: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        removed = await Store(StoreConfig.default()).clean_packages(dry_run=dry_run)
        PrintFormatter(keys=["name", "version"], empty="no unused packages found").print(
            [{"name": info.name, "version": info.version} for info in removed]
        )
        if removed and dry_run:
            print("Dry run, nothing was removed.")


class DirAction:
    """Yalc dir action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "dir",
                help="Show yalc system directory",
                description="Print the location of the package store.",
            ),
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        print(StoreConfig.default().main_dir)
