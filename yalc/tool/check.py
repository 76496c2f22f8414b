"""Yalc check action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import pathlib
import sys
from typing import cast

from yalc.check import check_manifest
from yalc.config import CheckOptions


_LOGGER = logging.getLogger(__name__)


class CheckAction:
    """Yalc check action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "check",
                help="Check package.json for yalc packages",
                description=(
                    "Exit with an error if package.json references packages in the "
                    ".yalc folder, e.g. from a pre-commit hook."
                ),
            ),
        )
        args.add_argument(
            "--commit",
            action="store_true",
            help="Only check when package.json is staged for commit",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        commit: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        local_deps = await check_manifest(
            CheckOptions(working_dir=pathlib.Path.cwd(), commit=commit)
        )
        if local_deps:
            print("Yalc dependencies found:", ", ".join(local_deps))
            sys.exit(1)
