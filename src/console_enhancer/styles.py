from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from rich.color import ColorSystem
from rich.style import Style

from .config import LogLevel


StyleAttribute: TypeAlias = Literal[
    "bold",
    "b",
    "dim",
    "italic",
    "i",
    "underline",
    "u",
    "reverse",
]
ColorName: TypeAlias = Literal[
    "black",
    "red",
    "green",
    "yellow",
    "blue",
    "magenta",
    "cyan",
    "white",
]

StyleLike: TypeAlias = StyleAttribute | ColorName | Style | str


CLEAR = "\x1b[0m"

# Rendered through rich and cut away, leaving only the opening codes.
_MARKER = "\x00"


def ansi_code(attribute: StyleLike) -> str:
    """Return the escape sequence for a single display attribute.

    Codes come from the standard 16-color system so every terminal renders
    them the same way: ``bold`` is ``ESC[1m``, ``red`` is ``ESC[31m``.
    """
    style = attribute if isinstance(attribute, Style) else Style.parse(attribute)
    rendered = style.render(_MARKER, color_system=ColorSystem.STANDARD)
    return rendered.partition(_MARKER)[0]


def add_codes(text: str, attributes: tuple[StyleLike, ...]) -> str:
    """Wrap *text* with the codes for *attributes* and a trailing clear.

    Each code is prepended in turn, so the first attribute sits closest to the
    text and the last one opens the line. A trailing newline stays outside
    the escapes.
    """
    body, newline = (text[:-1], "\n") if text.endswith("\n") else (text, "")
    for attribute in attributes:
        body = ansi_code(attribute) + body
    return f"{body}{CLEAR}{newline}"


@dataclass(frozen=True)
class LevelStyleProfile:
    attributes: tuple[StyleLike, ...]

    def render(self, text: str) -> str:
        return add_codes(text, self.attributes)


LEVEL_PROFILES: dict[LogLevel, LevelStyleProfile] = {
    LogLevel.ERROR: LevelStyleProfile(("bold", "red")),
    LogLevel.WARN: LevelStyleProfile(("bold", "yellow")),
    LogLevel.INFO: LevelStyleProfile(("bold", "white")),
    LogLevel.DEBUG: LevelStyleProfile(("white",)),
    LogLevel.TRACE: LevelStyleProfile(("bold", "black")),
}


def render(text: str, level: LogLevel) -> str:
    """Style *text* for *level*. ``ALL`` is a threshold only and has no style."""
    try:
        profile = LEVEL_PROFILES[level]
    except KeyError:
        raise ValueError(f"No style for log level: {level.name}") from None
    return profile.render(text)
