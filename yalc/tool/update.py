"""Yalc update and restore actions."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import pathlib
from typing import cast

from yalc.config import StoreConfig, UpdateOptions
from yalc.update import update_packages

from .add import add_package_args


_LOGGER = logging.getLogger(__name__)


def add_update_flag(args: ArgumentParser) -> None:
    """Add the flag running the package manager update command."""
    args.add_argument(
        "--update",
        "--upgrade",
        action="store_true",
        help="Run the package manager update command afterwards",
    )


class UpdateAction:
    """Yalc update action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "update",
                help="Update packages from yalc repo",
                description=(
                    "Update packages in the project lockfile from the local store, "
                    "or all of them if none are given."
                ),
            ),
        )
        add_package_args(args)
        add_update_flag(args)
        args.add_argument(
            "--restore",
            action="store_true",
            help="Use the existing .yalc copies instead of the store",
        )
        args.add_argument(
            "--replace",
            action="store_true",
            help="Force package content replacement",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        update: bool,
        restore: bool,
        replace: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = UpdateOptions(
            working_dir=pathlib.Path.cwd(),
            update=update,
            restore=restore,
            replace=replace,
        )
        await update_packages(packages, options, StoreConfig.default())


class RestoreAction:
    """Yalc restore action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "restore",
                help="Restore retreated packages",
                description="Add retreated packages back from their .yalc copies.",
            ),
        )
        add_package_args(args)
        add_update_flag(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        update: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = UpdateOptions(
            working_dir=pathlib.Path.cwd(), update=update, restore=True
        )
        await update_packages(packages, options, StoreConfig.default())
