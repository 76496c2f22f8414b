"""Yalc publish and push actions."""

import logging
from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import pathlib
from typing import cast, Any

from yalc.config import PublishOptions, StoreConfig, read_rc_config
from yalc.store.publish import publish_package


_LOGGER = logging.getLogger(__name__)


def add_publish_flags(args: ArgumentParser) -> None:
    """Add flags shared by publish and push."""
    args.add_argument(
        "working_dir",
        help="Directory of the package to publish",
        type=pathlib.Path,
        default=None,
        nargs="?",
    )
    args.add_argument(
        "--sig",
        action=BooleanOptionalAction,
        default=None,
        help="Append a short content signature to the published version",
    )
    args.add_argument(
        "--scripts",
        "--script",
        action=BooleanOptionalAction,
        default=None,
        help="Run publish lifecycle scripts",
    )
    args.add_argument(
        "--dev-mod",
        action=BooleanOptionalAction,
        default=None,
        help="Remove devDependencies from the published manifest",
    )
    args.add_argument(
        "--workspace-resolve",
        action=BooleanOptionalAction,
        default=None,
        help="Resolve workspace: and catalog: dependency versions",
    )
    args.add_argument(
        "--changed",
        action="store_true",
        help="Only publish if the package content has changed",
    )
    args.add_argument(
        "--content",
        "--files",
        action="store_true",
        default=None,
        help="Show the files included in the published content",
    )
    args.add_argument(
        "--private",
        action="store_true",
        help="Publish even if the package is marked private",
    )
    args.add_argument(
        "--update",
        "--upgrade",
        action="store_true",
        help="Run the package manager update command in pushed projects",
    )
    args.add_argument(
        "--replace",
        action="store_true",
        help="Force package content replacement in pushed projects",
    )


def _choose(value: bool | None, default: bool) -> bool:
    return default if value is None else value


def build_publish_options(
    working_dir: pathlib.Path | None,
    push: bool,
    scripts_default: bool,
    **kwargs: Any,
) -> PublishOptions:
    """Build publish options from flags, using rc config for unset flags."""
    working_dir = pathlib.Path.cwd() / (working_dir or "")
    rc = read_rc_config(working_dir)
    return PublishOptions(
        working_dir=working_dir,
        push=push,
        signature=_choose(kwargs.get("sig"), rc.sig),
        scripts=_choose(kwargs.get("scripts"), rc.values.get("scripts", scripts_default)),
        dev_mod=_choose(kwargs.get("dev_mod"), rc.dev_mod),
        workspace_resolve=_choose(kwargs.get("workspace_resolve"), rc.workspace_resolve),
        content=_choose(kwargs.get("content"), rc.files),
        changed=bool(kwargs.get("changed")),
        private=bool(kwargs.get("private")),
        update=bool(kwargs.get("update")),
        replace=bool(kwargs.get("replace")),
    )


class PublishAction:
    """Yalc publish action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "publish",
                help="Publish package in yalc local repo",
                description="Publish the package in the current directory into the local store.",
            ),
        )
        add_publish_flags(args)
        args.add_argument(
            "--push",
            action="store_true",
            help="Update the package in all projects that use it",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        working_dir: pathlib.Path | None,
        push: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = build_publish_options(
            working_dir, push=push, scripts_default=True, **kwargs
        )
        await publish_package(options, StoreConfig.default())


class PushAction:
    """Yalc push action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "push",
                help="Publish package in yalc local repo and push to all installations",
                description=(
                    "Publish the package in the current directory and update it "
                    "in all projects that use it."
                ),
            ),
        )
        add_publish_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        working_dir: pathlib.Path | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        options = build_publish_options(
            working_dir, push=True, scripts_default=False, **kwargs
        )
        await publish_package(options, StoreConfig.default())
