"""Command line helpers: quiet-flag detection and error reporting."""

from __future__ import annotations

import traceback
from collections.abc import Sequence

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_RED = "\x1b[31m"
_RESET = "\x1b[0m"


class _StopParsing(Exception):
    """Parsing ends here, as it would on --help or a malformed flag."""


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise _StopParsing(text)


def _parse_long(body: str, quiet: bool) -> bool:
    name, sep, value = body.partition("=")
    if not name or name.startswith("-") or name.startswith("="):
        raise _StopParsing(body)
    if name == "quiet":
        return _parse_bool(value) if sep else True
    if name == "help":
        raise _StopParsing(body)
    return quiet


def _parse_shorthands(shorthands: str, quiet: bool) -> bool:
    while shorthands:
        char, rest = shorthands[0], shorthands[1:]
        if char == "q":
            if len(shorthands) > 2 and shorthands[1] == "=":
                return _parse_bool(shorthands[2:])
            quiet = True
        elif char == "h":
            raise _StopParsing(shorthands)
        elif len(shorthands) > 2 and shorthands[1] == "=":
            # an unknown "-x=value" swallows the rest of the argument
            return quiet
        shorthands = rest
    return quiet


def check_quiet(args: Sequence[str]) -> bool:
    """Return True if -q / --quiet is set in args.

    Unknown flags are ignored; parsing stops at "--", at -h / --help and at a
    malformed flag, as the full command line parser would.
    """
    quiet = False
    try:
        for arg in args:
            if arg == "--":
                break
            if len(arg) < 2 or not arg.startswith("-"):
                continue
            if arg.startswith("--"):
                quiet = _parse_long(arg[2:], quiet)
            else:
                quiet = _parse_shorthands(arg[1:], quiet)
    except _StopParsing:
        pass
    return quiet


def _label(text: str, color_enabled: bool, plain_prefix: str = "") -> str:
    if color_enabled:
        return f"{_RED}{text}{_RESET}"
    return f"{plain_prefix}{text}"


def format_error(err: BaseException, color_enabled: bool, verbose: bool) -> list[str]:
    """Return the log lines that report err to the user.

    The first line states the error. If the error carries the output of a
    failed command, that output follows. With verbose set the traceback is
    added when there is one.
    """
    lines = [f"{_label('ERROR', color_enabled)}: {err}"]

    output = getattr(err, "output", None)
    if output is not None:
        if isinstance(output, bytes):
            output = output.decode("utf-8", "replace")
        lines.append(f"{_label('Command Output', color_enabled, chr(10))}: {output}")

    if verbose and err.__traceback__ is not None:
        trace = "".join(traceback.format_tb(err.__traceback__))
        lines.append(f"{_label('Stack Trace', color_enabled, chr(10))}: {trace}")
    return lines