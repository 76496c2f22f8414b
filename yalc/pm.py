"""Package manager detection and lifecycle script execution.

The package manager of a project is detected from its lockfile. It decides how
lifecycle scripts are invoked and which command updates installed packages.
"""

from enum import StrEnum
import logging
from pathlib import Path

from . import command
from .exceptions import CommandException, ScriptException
from .manifest import PackageManifest

__all__ = [
    "PackageManager",
    "get_package_manager",
    "run_script",
    "run_pm_update",
]

_LOGGER = logging.getLogger(__name__)


class PackageManager(StrEnum):
    """A supported node package manager."""

    PNPM = "pnpm"
    YARN = "yarn"
    NPM = "npm"

    @property
    def lock_file(self) -> str:
        """Marker file that identifies the package manager."""
        return LOCK_FILES[self]

    @property
    def run_script_cmd(self) -> list[str]:
        """Command prefix used to run a manifest script."""
        return RUN_SCRIPT_CMDS[self]

    @property
    def update_cmd(self) -> list[str]:
        """Command used to update installed packages."""
        return UPDATE_CMDS[self]


LOCK_FILES = {
    PackageManager.PNPM: "pnpm-lock.yaml",
    PackageManager.YARN: "yarn.lock",
    PackageManager.NPM: "package-lock.json",
}
RUN_SCRIPT_CMDS = {
    PackageManager.PNPM: ["pnpm"],
    PackageManager.YARN: ["yarn"],
    PackageManager.NPM: ["npm", "run"],
}
UPDATE_CMDS = {
    PackageManager.PNPM: ["pnpm", "update"],
    PackageManager.YARN: ["yarn", "upgrade"],
    PackageManager.NPM: ["npm", "update"],
}
DEFAULT_PM = PackageManager.NPM


def get_package_manager(working_dir: Path) -> PackageManager:
    """Detect the package manager of a project from its lockfile."""
    for pm in PackageManager:
        if (working_dir / pm.lock_file).exists():
            return pm
    return DEFAULT_PM


async def run_script(
    working_dir: Path, manifest: PackageManifest, script: str
) -> bool:
    """Run a manifest script if declared, returning True if it ran.

    Output is streamed to the terminal. A failing script raises a
    `ScriptException`.
    """
    if not (script_cmd := manifest.scripts.get(script)):
        return False
    pm = get_package_manager(working_dir)
    _LOGGER.info("Running %s script: %s", script, script_cmd)
    try:
        await command.run(
            command.Command(
                [*pm.run_script_cmd, script], cwd=working_dir, loud=True
            )
        )
    except CommandException as err:
        raise ScriptException(script, str(err)) from err
    return True


async def run_pm_update(working_dir: Path, packages: list[str]) -> None:
    """Run the package manager update command for the packages."""
    pm = get_package_manager(working_dir)
    cmd = command.Command([*pm.update_cmd, *packages], cwd=working_dir, loud=True)
    _LOGGER.info("Running %s in %s", cmd.string, working_dir)
    await command.run(cmd)
