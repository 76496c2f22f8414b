"""Command line tool for publishing and linking local node packages."""

import argparse
import asyncio
import logging
import pathlib
import sys
import traceback

from yalc.config import read_rc_config, set_store_override
from yalc.exceptions import YalcException
from . import add, check, installations, publish, remove, store, update

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yalc",
        description="Command line utility for working with local node packages.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print errors",
    )
    parser.add_argument(
        "--store-folder",
        type=pathlib.Path,
        help="Use a custom store location instead of the default",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    publish.PublishAction.register(subparsers)
    publish.PushAction.register(subparsers)
    add.AddAction.register(subparsers)
    add.LinkAction.register(subparsers)
    update.UpdateAction.register(subparsers)
    update.RestoreAction.register(subparsers)
    remove.RemoveAction.register(subparsers)
    remove.RetreatAction.register(subparsers)
    check.CheckAction.register(subparsers)
    installations.InstallationsAction.register(subparsers)
    store.ListAction.register(subparsers)
    store.InfoAction.register(subparsers)
    store.WhereAction.register(subparsers)
    store.CleanAction.register(subparsers)
    store.DirAction.register(subparsers)
    return parser


def main() -> None:
    """Yalc command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args()

    level = args.log_level
    if not level:
        quiet = args.quiet or read_rc_config(pathlib.Path.cwd()).quiet
        level = logging.ERROR if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")

    if args.store_folder:
        set_store_override(args.store_folder)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except YalcException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("yalc error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
