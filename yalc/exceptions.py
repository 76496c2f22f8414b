"""Exceptions related to yalc."""

__all__ = [
    "YalcException",
    "InputException",
    "CommandException",
    "ScriptException",
]


class YalcException(Exception):
    """Generic base exception used for this library."""


class InputException(YalcException):
    """Raised when a package manifest is missing or not formatted as expected."""


class CommandException(YalcException):
    """Raised when there is a failure running a subcommand."""


class ScriptException(CommandException):
    """Raised when a package lifecycle script exits with an error."""

    def __init__(self, script: str, message: str) -> None:
        super().__init__(f"Script '{script}' failed: {message}")
        self.script = script
