"""Yalc add and link actions."""

import logging
from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import pathlib
from typing import cast

from yalc.add import add_packages
from yalc.config import AddOptions, StoreConfig


_LOGGER = logging.getLogger(__name__)


def add_package_args(args: ArgumentParser) -> None:
    """Add the package names argument."""
    args.add_argument(
        "packages",
        nargs="*",
        help="Packages to use, as `name` or `name@version`",
    )


def add_pure_flag(args: ArgumentParser) -> None:
    """Add the flag controlling pure mode."""
    args.add_argument(
        "--pure",
        action=BooleanOptionalAction,
        default=None,
        help="Only copy into the .yalc folder without touching node_modules or package.json",
    )


class AddAction:
    """Yalc add action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "add",
                help="Add package from yalc repo to the project",
                description="Add packages from the local store to the project in the current directory.",
            ),
        )
        add_package_args(args)
        args.add_argument(
            "--dev",
            "-D",
            "--save-dev",
            action="store_true",
            help="Add as a dev dependency",
        )
        args.add_argument(
            "--link",
            action="store_true",
            help="Use the link: protocol and symlink into node_modules",
        )
        args.add_argument(
            "--workspace",
            "-W",
            action="store_true",
            help="Use the workspace: protocol",
        )
        args.add_argument(
            "--restore",
            action="store_true",
            help="Use the existing .yalc copy instead of the store",
        )
        args.add_argument(
            "--update",
            "--upgrade",
            action="store_true",
            help="Run the package manager update command afterwards",
        )
        add_pure_flag(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        dev: bool,
        link: bool,
        workspace: bool,
        restore: bool,
        update: bool,
        pure: bool | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = AddOptions(
            working_dir=pathlib.Path.cwd(),
            dev=dev,
            link=link,
            workspace=workspace,
            restore=restore,
            update=update,
            pure=pure,
        )
        await add_packages(packages, options, StoreConfig.default())


class LinkAction:
    """Yalc link action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "link",
                help="Link package from yalc repo to the project",
                description=(
                    "Symlink packages from the local store into node_modules "
                    "without changing package.json."
                ),
            ),
        )
        add_package_args(args)
        add_pure_flag(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        packages: list[str],
        pure: bool | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = AddOptions(working_dir=pathlib.Path.cwd(), link_only=True, pure=pure)
        await add_packages(packages, options, StoreConfig.default())
