"""Message and line formatting.

Messages are built printf-style from the variadic arguments a caller hands to
an entry point; lines add the level tag, an optional timestamp and an
optional call site.
"""

from __future__ import annotations

import json
import math
import re
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeAlias

from rich.pretty import pretty_repr

from .callsite import CallSite
from .config import LogLevel


_PLACEHOLDER = re.compile(r"%[sdifjoO%]")


def exception_trace(error: BaseException) -> str:
    """Return the traceback text of *error* without the final newline.

    An exception that was never raised has no frames and renders as
    ``"<Type>: <message>"``.
    """
    return "".join(traceback.format_exception(error)).rstrip("\n")


def inspect_value(value: object) -> str:
    """Render a non-string argument the way an interactive console would."""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseException):
        return exception_trace(value)
    return pretty_repr(value)


def _as_number(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return math.nan


def _number_text(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    return str(int(number)) if number.is_integer() else str(number)


def _format_d(value: object) -> str:
    if isinstance(value, int):
        return str(int(value))
    return _number_text(_as_number(value))


def _format_i(value: object) -> str:
    number = _as_number(value)
    if math.isnan(number) or math.isinf(number):
        return "NaN"
    return str(int(number))


def _format_f(value: object) -> str:
    return _number_text(_as_number(value))


def _format_j(value: object) -> str:
    try:
        return json.dumps(value, default=str)
    except ValueError:
        return "[Circular]"


_CONVERSIONS: dict[str, Callable[[object], str]] = {
    "s": str,
    "d": _format_d,
    "i": _format_i,
    "f": _format_f,
    "j": _format_j,
    "o": pretty_repr,
    "O": pretty_repr,
}


def format_message(*args: object) -> str:
    """Format *args* printf-style.

    A string first argument is a template: ``%s %d %i %f %j %o %O`` consume the
    following arguments in order and ``%%`` is a literal percent sign. A
    placeholder with no argument left is kept as written. Arguments not
    consumed by the template are appended, separated by spaces. A lone
    argument is returned untouched.
    """
    if not args:
        return ""
    first, rest = args[0], args[1:]
    if not isinstance(first, str):
        return " ".join(inspect_value(arg) for arg in args)
    if not rest:
        return first

    consumed = 0

    def substitute(match: re.Match[str]) -> str:
        nonlocal consumed
        token = match.group()
        if token == "%%":
            return "%"
        if consumed >= len(rest):
            return token
        value = rest[consumed]
        consumed += 1
        return _CONVERSIONS[token[1]](value)

    text = _PLACEHOLDER.sub(substitute, first)
    return " ".join([text, *(inspect_value(arg) for arg in rest[consumed:])])


# -- error-level arguments ----------------------------------------------------


@dataclass(frozen=True)
class ErrorArgument:
    """An exception passed as a log argument, carried by its trace text."""

    trace: str


@dataclass(frozen=True)
class PlainArgument:
    value: object


LogArgument: TypeAlias = ErrorArgument | PlainArgument


def classify_argument(value: object) -> LogArgument:
    if isinstance(value, BaseException):
        return ErrorArgument(exception_trace(value))
    return PlainArgument(value)


def format_error_args(*args: object) -> tuple[object, ...]:
    """Rewrite the arguments of the error entry point.

    - ``(err, ...)``: the trace of ``err`` replaces it.
    - ``(context, err, ...)``: collapses to ``"<context>:\\n<trace of err>"``.
    - anything else is returned unchanged.
    """
    if not args:
        return args
    match classify_argument(args[0]):
        case ErrorArgument(trace=trace):
            return (trace, *args[1:])
    if len(args) > 1:
        match classify_argument(args[1]):
            case ErrorArgument(trace=trace):
                return (f"{args[0]}:\n{trace}",)
    return args


# -- lines --------------------------------------------------------------------


def format_timestamp(moment: datetime, time_format: str | None = None) -> str:
    """ISO-8601 with milliseconds, or ``strftime(time_format)`` when given."""
    if time_format:
        return moment.strftime(time_format)
    return moment.isoformat(timespec="milliseconds")


def format_line(
    level: LogLevel,
    message: str,
    *,
    timestamp: str | None = None,
    call_site: CallSite | None = None,
) -> str:
    """Assemble ``[<timestamp>] <LEVEL>\\t[<file>:<line>] <message>``.

    The timestamp and call-site segments are omitted when not supplied.
    """
    head = f"[{timestamp}] " if timestamp is not None else ""
    head += f"{level.name}\t"
    if call_site is not None:
        head += f"[{call_site.file}:{call_site.line}] "
    return head + message


def terminate(line: str) -> str:
    return f"{line}\n"
