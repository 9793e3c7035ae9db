"""Command-line flags of the operator manager."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


class CommandLineError(ValueError):
    """The command line could not be parsed."""

    def __init__(self, program_name: str, message: str) -> None:
        super().__init__(message)
        self.program_name = program_name


@dataclass
class CommandLine:
    enable_leader_election: bool = False
    metrics_addr: str = ":8080"


def _parse_bool(program_name: str, flag: str, value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise CommandLineError(
        program_name, f"invalid boolean value {value!r} for -{flag}: parse error"
    )


def parse_command_line(program_name: str, args: Iterable[str] | None) -> CommandLine:
    """Parse flags; parsing stops at the first non-flag argument or at "--".

    Flags may be written with one or two dashes, and values either as the
    next argument or after "=".
    """
    result = CommandLine()
    remaining = iter(args or ())

    for arg in remaining:
        if len(arg) < 2 or not arg.startswith("-"):
            break
        if arg == "--":
            break

        body = arg[2:] if arg.startswith("--") else arg[1:]
        if not body or body.startswith("-") or body.startswith("="):
            raise CommandLineError(program_name, f"bad flag syntax: {arg}")

        name, has_value, value = body.partition("=")

        if name in ("h", "help"):
            raise CommandLineError(program_name, "flag: help requested")

        if name == "enable-leader-election":
            result.enable_leader_election = (
                _parse_bool(program_name, name, value) if has_value else True
            )
        elif name == "metrics-addr":
            if not has_value:
                value = next(remaining, None)
                if value is None:
                    raise CommandLineError(program_name, f"flag needs an argument: -{name}")
            result.metrics_addr = value
        else:
            raise CommandLineError(program_name, f"flag provided but not defined: -{name}")

    return result