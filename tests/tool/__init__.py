"""Test helpers for yalc tools."""

from pathlib import Path

from yalc.command import Command, run

YALC_BIN = "yalc"


async def run_command(
    args: list[str], env: dict[str, str] | None = None, cwd: Path | None = None
) -> str:
    return await run(Command([YALC_BIN] + args, env=env, cwd=cwd))
