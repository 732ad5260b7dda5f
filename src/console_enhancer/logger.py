from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any, ClassVar

from rich.console import Console

from .appenders import (
    AppendOutcome,
    Appender,
    AppenderFanout,
    ConsoleAppender,
    FileAppendError,
    FileAppender,
    Reporter,
)
from .callsite import CallSiteResolver, StackCallSiteResolver
from .config import (
    EnhancerConfig,
    LevelFilter,
    LogLevel,
    LogLevelLike,
    _normalize_config,
    merge_config,
)
from .formatting import (
    format_error_args,
    format_line,
    format_message,
    format_timestamp,
    terminate,
)


_bootstrap_console = Console(stderr=True)


def _print_to_stderr(message: str) -> None:
    """Default bootstrap reporter: plain, unfiltered output on stderr."""
    _bootstrap_console.print(
        message, markup=False, highlight=False, emoji=False, soft_wrap=True
    )


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ConsoleEnhancer:
    """Leveled console logger with call-site attribution and pluggable appenders.

    Holds the whole logging state: the severity threshold, the source-info and
    timestamp switches, the call-site resolver, the appender list and the
    bootstrap reporter used when the file appender fails.

    :param config: Options, see :class:`~console_enhancer.config.EnhancerConfig`.
    :param console: Rich console whose file receives terminal output
        (standard error by default).
    :param resolver: Call-site resolver; frame-walking by default.
    :param reporter: Receives descriptions of failed file writes.
    :param clock: Returns the moment used for timestamps.

    Example::

        log = ConsoleEnhancer({"level": "INFO", "include_date": True})
        log.info("listening on %s:%d", host, port)
        log.error("request failed", exc)
    """

    ENTRY_POINTS: ClassVar[tuple[str, ...]] = (
        "error",
        "warn",
        "info",
        "debug",
        "verbose",
        "log",
    )

    def __init__(
        self,
        config: EnhancerConfig | dict[str, Any] | None = None,
        *,
        console: Console | None = None,
        resolver: CallSiteResolver | None = None,
        reporter: Reporter | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._filter = LevelFilter()
        self._console_appender = ConsoleAppender(console)
        self._resolver: CallSiteResolver = resolver or StackCallSiteResolver()
        self._reporter: Reporter = reporter or _print_to_stderr
        self._clock = clock or _local_now
        self._fanout = AppenderFanout([self._console_appender])
        self._file_appender: FileAppender | None = None
        self._pending: deque[AppendOutcome] = deque()
        self._first_failure: FileAppendError | None = None
        self._pending_lock = threading.Lock()
        self.config: EnhancerConfig = merge_config(None)
        self.show_source_info = True
        self.include_date = False
        self.time_format: str | None = None
        self.configure(config)

    def __repr__(self) -> str:
        return (
            f"ConsoleEnhancer(level={self.level.name!r}, "
            f"source_info={self.show_source_info}, appenders={list(self._fanout)!r})"
        )

    # -- configuration --------------------------------------------------------

    @property
    def level(self) -> LogLevel:
        return self._filter.threshold

    @property
    def appenders(self) -> tuple[Appender, ...]:
        return tuple(self._fanout)

    @property
    def resolver(self) -> CallSiteResolver:
        return self._resolver

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    def configure(self, config: EnhancerConfig | dict[str, Any] | None = None) -> None:
        """Apply *config*, rebuilding the appender list from the console appender.

        An unknown or missing level keeps the current threshold.
        """
        options = merge_config(config)
        threshold = self._filter.configure(_normalize_config(config).get("level"))
        options["level"] = threshold.name

        source_info = options.get("source_info")
        if source_info is None:
            # Errors carry their own trace, so ERROR-only logging skips frame lookups.
            self.show_source_info = threshold is not LogLevel.ERROR
        else:
            self.show_source_info = bool(source_info)
        self.include_date = bool(options.get("include_date"))
        self.time_format = options.get("time_format")
        self._resolver.path_replace = options.get("path_replace")

        fanout = AppenderFanout([self._console_appender])
        self._file_appender = None
        if options.get("file"):
            self._file_appender = FileAppender(options["filepath"], self._reporter)
            fanout.register(self._file_appender)
        self._fanout = fanout
        self.config = options

    def set_level(self, level: LogLevelLike) -> LogLevel:
        """Change the threshold without touching the rest of the configuration."""
        return self._filter.configure(level)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return self._filter.should_emit(level)

    def attach(
        self,
        *,
        console: Console | None = None,
        resolver: CallSiteResolver | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Swap the terminal console, call-site resolver or clock.

        Arguments left as ``None`` keep the current value. The next
        :meth:`configure` puts a new console into the appender list.
        """
        if console is not None:
            self._console_appender = ConsoleAppender(console)
        if resolver is not None:
            resolver.path_replace = self._resolver.path_replace
            self._resolver = resolver
        if clock is not None:
            self._clock = clock

    def bind(self, surface: object) -> None:
        """Assign the entry points onto *surface* (e.g. a host's console object)."""
        for name in self.ENTRY_POINTS:
            setattr(surface, name, getattr(self, name))
        setattr(surface, _ENHANCER_ATTR, self)

    # -- dispatch -------------------------------------------------------------

    def _dispatch(
        self,
        level: LogLevel,
        args: tuple[object, ...],
        prepare: Callable[..., tuple[object, ...]] | None = None,
    ) -> None:
        # Must be called directly from an entry point; the resolver counts frames.
        if not self._filter.should_emit(level):
            return
        call_site = self._resolver.resolve() if self.show_source_info else None
        if prepare is not None:
            args = prepare(*args)
        timestamp = (
            format_timestamp(self._clock(), self.time_format)
            if self.include_date
            else None
        )
        line = format_line(
            level, format_message(*args), timestamp=timestamp, call_site=call_site
        )
        self._fanout.dispatch(level, terminate(line), on_outcome=self._track)

    def _track(self, outcome: AppendOutcome) -> None:
        # The writer completes in queue order, so finished outcomes sit at the
        # left. Only the first failure is kept until the next flush.
        with self._pending_lock:
            while self._pending and self._pending[0].done():
                self._settle(self._pending.popleft())
            self._pending.append(outcome)

    def _settle(self, outcome: AppendOutcome) -> None:
        error = outcome.exception()
        if isinstance(error, FileAppendError) and self._first_failure is None:
            self._first_failure = error

    # -- entry points ---------------------------------------------------------

    def error(self, *args: object) -> None:
        """Log at ERROR.

        ``error(exc)`` logs the traceback of ``exc``; ``error("context", exc)``
        logs ``"context:"`` followed by the traceback on the next line.
        """
        self._dispatch(LogLevel.ERROR, args, format_error_args)

    def warn(self, *args: object) -> None:
        self._dispatch(LogLevel.WARN, args)

    def info(self, *args: object) -> None:
        self._dispatch(LogLevel.INFO, args)

    def debug(self, *args: object) -> None:
        self._dispatch(LogLevel.DEBUG, args)

    def verbose(self, *args: object) -> None:
        """Log at TRACE."""
        self._dispatch(LogLevel.TRACE, args)

    log = debug
    trace = verbose

    # -- file completion ------------------------------------------------------

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued file writes.

        Raises the first :class:`~console_enhancer.appenders.FileAppendError`
        among them; every failure has already gone to the reporter.
        """
        with self._pending_lock:
            pending = list(self._pending)
            self._pending.clear()
            first_error, self._first_failure = self._first_failure, None
        for outcome in pending:
            try:
                outcome.result(timeout)
            except FileAppendError as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def close(self) -> None:
        """Drain the file writer and stop its thread. Failures stay reported only."""
        if self._file_appender is not None:
            self._file_appender.close()
        with self._pending_lock:
            self._pending.clear()
            self._first_failure = None


_ENHANCER_ATTR = "_console_enhancer"


def install(
    config: EnhancerConfig | dict[str, Any] | None = None,
    *,
    surface: object | None = None,
    console: Console | None = None,
    resolver: CallSiteResolver | None = None,
    clock: Callable[[], datetime] | None = None,
) -> ConsoleEnhancer:
    """Configure a :class:`ConsoleEnhancer` and return it.

    With *surface*, the entry points ``error``, ``warn``, ``info``, ``debug``,
    ``verbose`` and ``log`` are also assigned onto it. The surface's own
    ``error`` found on first installation becomes the bootstrap reporter for
    file failures. Installing again onto the same surface reconfigures the
    logger already bound there instead of stacking a new one; a *console*,
    *resolver* or *clock* passed again replaces the one it had.
    """
    if surface is not None:
        existing = getattr(surface, _ENHANCER_ATTR, None)
        if isinstance(existing, ConsoleEnhancer):
            existing.attach(console=console, resolver=resolver, clock=clock)
            existing.configure(config)
            existing.bind(surface)
            return existing

    reporter: Reporter | None = None
    if surface is not None:
        pristine = getattr(surface, "error", None)
        if callable(pristine):
            reporter = pristine

    enhancer = ConsoleEnhancer(
        config, console=console, resolver=resolver, reporter=reporter, clock=clock
    )
    if surface is not None:
        enhancer.bind(surface)
    return enhancer


def enhance(
    options: LogLevelLike | EnhancerConfig | dict[str, Any] | None = None,
    *,
    surface: object | None = None,
) -> ConsoleEnhancer:
    """Shorthand for :func:`install` accepting a bare level name."""
    if isinstance(options, (str, LogLevel)):
        options = EnhancerConfig(level=options)
    return install(options, surface=surface)
