"""Yalc installations action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from yalc.config import StoreConfig
from yalc.store.installations import clean_installations, show_installations

from .add import add_package_args
from .format import PrintFormatter


_LOGGER = logging.getLogger(__name__)


class InstallationsShowAction:
    """Show installations of packages."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "show",
                help="Show projects using packages",
                description="Print the projects each package was added to.",
            ),
        )
        add_package_args(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = await show_installations(StoreConfig.default(), packages)
        results = [
            {"name": name, "path": path}
            for name, paths in config.items()
            for path in paths
        ]
        PrintFormatter(empty="no installations found").print(results)


class InstallationsCleanAction:
    """Clean stale installations."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "clean",
                help="Remove installations no longer in project lockfiles",
                description=(
                    "Remove installations of packages whose project lockfile "
                    "no longer contains the package."
                ),
            ),
        )
        add_package_args(args)
        args.add_argument(
            "--dry",
            action="store_true",
            help="Only print the installations that would be removed",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        dry: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        stale = await clean_installations(StoreConfig.default(), packages, dry=dry)
        PrintFormatter(empty="no stale installations found").print(
            [installation.to_dict() for installation in stale]
        )
        if stale and dry:
            print("Dry run, nothing was removed.")


class InstallationsAction:
    """Yalc installations action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "installations",
                help="Work with installations file: show/clean",
                description="Inspect or clean the record of projects using store packages.",
            ),
        )
        subcmds = args.add_subparsers(
            title="Available commands",
            required=True,
        )
        InstallationsShowAction.register(subcmds)
        InstallationsCleanAction.register(subcmds)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        # No-op given subcommands are always the dispatch target
