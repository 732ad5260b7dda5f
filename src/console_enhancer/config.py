from __future__ import annotations

import os
from enum import IntEnum
from pathlib import Path
from typing import Any, Literal, TypeAlias, TypedDict, cast

from dotenv import find_dotenv, load_dotenv


class LogLevel(IntEnum):
    """Log severity levels. Lower values are more severe and always included."""

    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3
    TRACE = 4
    ALL = 5


LevelName: TypeAlias = Literal["ERROR", "WARN", "INFO", "DEBUG", "TRACE", "VERBOSE", "ALL"]
LogLevelLike: TypeAlias = LogLevel | LevelName | str


# Legacy level name still accepted in configuration.
_LEVEL_ALIASES: dict[str, str] = {"VERBOSE": "TRACE"}

EMITTING_LEVELS: tuple[LogLevel, ...] = (
    LogLevel.ERROR,
    LogLevel.WARN,
    LogLevel.INFO,
    LogLevel.DEBUG,
    LogLevel.TRACE,
)

DEFAULT_LOG_PATH = Path("logs") / "server.log"


def resolve_level_name(name: LogLevelLike | None) -> LogLevel | None:
    """Return the ``LogLevel`` for *name*, or ``None`` if it is not a known level.

    Names are case-sensitive; ``"VERBOSE"`` is accepted as ``"TRACE"``.
    """
    if isinstance(name, LogLevel):
        return name
    if not isinstance(name, str):
        return None
    name = _LEVEL_ALIASES.get(name, name)
    return LogLevel.__members__.get(name)


class LevelFilter:
    """Single ordered severity threshold.

    Unknown level names are ignored and the previous threshold is kept; this
    matches how the console has always treated bad configuration.
    """

    def __init__(self, threshold: LogLevel = LogLevel.ALL) -> None:
        self.threshold = threshold

    def __repr__(self) -> str:
        return f"LevelFilter(threshold={self.threshold.name})"

    def configure(self, name: LogLevelLike | None) -> LogLevel:
        level = resolve_level_name(name)
        if level is not None:
            self.threshold = level
        return self.threshold

    def should_emit(self, level: LogLevel) -> bool:
        return level <= self.threshold


class EnhancerConfig(TypedDict, total=False):
    """Options accepted by :func:`console_enhancer.install`."""

    level: LogLevelLike
    """Severity threshold. One of ERROR, WARN, INFO, DEBUG, TRACE, VERBOSE, ALL."""
    file: bool
    """Append every accepted line to ``filepath`` as well. Defaults to ``False``."""
    filepath: str | os.PathLike[str]
    """Target log file. Defaults to ``logs/server.log``."""
    include_date: bool
    """Prefix each line with a bracketed timestamp. Defaults to ``False``."""
    path_replace: str | None
    """Substring removed from resolved source file names."""
    source_info: bool | None
    """Force call-site display on or off. ``None`` shows it unless the level is ERROR."""
    time_format: str | None
    """``strftime`` pattern for timestamps, or ``None`` for ISO-8601."""


_CONFIG_KEYS: frozenset[str] = EnhancerConfig.__optional_keys__

_LEGACY_KEYS: dict[str, str] = {
    "includeDate": "include_date",
    "pathReplace": "path_replace",
    "sourceInfo": "source_info",
    "timeFormat": "time_format",
}


def get_default_config() -> EnhancerConfig:
    """Return the default configuration."""
    return EnhancerConfig(
        level="ALL",
        file=False,
        filepath=DEFAULT_LOG_PATH,
        include_date=False,
        path_replace=None,
        source_info=None,
        time_format=None,
    )


def _normalize_config(config: dict[str, Any] | None) -> EnhancerConfig:
    """Fold legacy option names into current ones and drop unknown keys.

    Older configurations pass ``path`` + ``filename`` as two separate
    options; they are joined into ``filepath``.
    """
    if config is None:
        return EnhancerConfig()

    normalized: dict[str, Any] = dict(config)
    for legacy, current in _LEGACY_KEYS.items():
        if legacy in normalized:
            value = normalized.pop(legacy)
            normalized.setdefault(current, value)

    legacy_dir = normalized.pop("path", None)
    legacy_name = normalized.pop("filename", None)
    if (legacy_dir or legacy_name) and "filepath" not in normalized:
        normalized["filepath"] = Path(legacy_dir or DEFAULT_LOG_PATH.parent) / (
            legacy_name or DEFAULT_LOG_PATH.name
        )

    return cast(
        EnhancerConfig, {k: v for k, v in normalized.items() if k in _CONFIG_KEYS}
    )


def merge_config(config: EnhancerConfig | dict[str, Any] | None) -> EnhancerConfig:
    """Return the defaults overlaid with the normalized *config*."""
    merged = get_default_config()
    merged.update(_normalize_config(cast(dict[str, Any] | None, config)))
    if not merged.get("filepath"):
        merged["filepath"] = DEFAULT_LOG_PATH
    return merged


def _env_flag(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


def config_from_env(prefix: str = "CONSOLE_ENHANCER_") -> EnhancerConfig:
    """Build a configuration from environment variables.

    A ``.env`` file found from the working directory upward is loaded first;
    variables already set win. Recognized variables: ``<prefix>LEVEL``, ``<prefix>FILE``,
    ``<prefix>FILEPATH``, ``<prefix>INCLUDE_DATE``, ``<prefix>PATH_REPLACE``.
    Unset variables are left out so defaults apply.
    """
    load_dotenv(find_dotenv(usecwd=True))
    config = EnhancerConfig()
    if (level := os.getenv(f"{prefix}LEVEL")) is not None:
        config["level"] = level
    if (file_flag := _env_flag(os.getenv(f"{prefix}FILE"))) is not None:
        config["file"] = file_flag
    if filepath := os.getenv(f"{prefix}FILEPATH"):
        config["filepath"] = Path(filepath).expanduser()
    if (include_date := _env_flag(os.getenv(f"{prefix}INCLUDE_DATE"))) is not None:
        config["include_date"] = include_date
    if (path_replace := os.getenv(f"{prefix}PATH_REPLACE")) is not None:
        config["path_replace"] = path_replace
    return config
