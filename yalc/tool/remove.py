"""Yalc remove and retreat actions."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import pathlib
from typing import cast

from yalc.config import RemoveOptions, StoreConfig
from yalc.remove import remove_packages

from .add import add_package_args


_LOGGER = logging.getLogger(__name__)


def add_all_flag(args: ArgumentParser) -> None:
    """Add the flag selecting every package in the lockfile."""
    args.add_argument(
        "--all",
        action="store_true",
        help="Apply to all packages in the lockfile",
    )


class RemoveAction:
    """Yalc remove action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "remove",
                help="Remove packages from the project",
                description="Remove packages from the project and restore their previous versions.",
            ),
        )
        add_package_args(args)
        add_all_flag(args)
        args.add_argument(
            "--retreat",
            action="store_true",
            help="Keep the packages in the lockfile to be restored later",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        all: bool,  # pylint: disable=redefined-builtin
        retreat: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = RemoveOptions(working_dir=pathlib.Path.cwd(), all=all, retreat=retreat)
        await remove_packages(packages, options, StoreConfig.default())


class RetreatAction:
    """Yalc retreat action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "retreat",
                help="Remove packages from project, but leave in lock file (to be restored later)",
                description=(
                    "Restore the previous versions of packages while keeping them "
                    "in the lockfile and .yalc folder."
                ),
            ),
        )
        add_package_args(args)
        add_all_flag(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        all: bool,  # pylint: disable=redefined-builtin
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = RemoveOptions(working_dir=pathlib.Path.cwd(), all=all, retreat=True)
        await remove_packages(packages, options, StoreConfig.default())
