from __future__ import annotations

import atexit
import os
import queue
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future
from pathlib import Path
from typing import ClassVar, Protocol, TypeAlias

from rich.console import Console

from .config import LogLevel
from .styles import render


Reporter: TypeAlias = Callable[[str], object]


class FileAppendError(Exception):
    """A line could not be appended to the log file."""

    def __init__(self, path: os.PathLike[str] | str, cause: BaseException) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Unable to append log to {self.path}: {cause}")


class AppendOutcome:
    """Completion handle for one asynchronous file write."""

    def __init__(self, path: Path, future: Future[None]) -> None:
        self.path = path
        self._future = future

    def __repr__(self) -> str:
        state = "failed" if self.failed() else "done" if self.done() else "pending"
        return f"AppendOutcome(path={str(self.path)!r}, state={state})"

    def done(self) -> bool:
        return self._future.done()

    def failed(self) -> bool:
        return self._future.done() and self._future.exception() is not None

    def exception(self, timeout: float | None = None) -> BaseException | None:
        return self._future.exception(timeout)

    def result(self, timeout: float | None = None) -> None:
        """Block until written; raise :class:`FileAppendError` if the write failed."""
        self._future.result(timeout)


class Appender(Protocol):
    def write(self, level: LogLevel, line: str) -> AppendOutcome | None: ...


# -- terminal -----------------------------------------------------------------


_terminal_console: Console | None = None


def get_terminal_console() -> Console:
    """Return the shared stderr console, creating it on first use."""
    global _terminal_console
    if _terminal_console is None:
        _terminal_console = Console(stderr=True)
    return _terminal_console


class ConsoleAppender:
    """Write styled lines to standard error, synchronously.

    Lines are written to the console's file handle as-is so the level escape
    codes are not reinterpreted. Write errors propagate to the caller.
    """

    def __init__(self, console: Console | None = None, *, styled: bool = True) -> None:
        self.console = console or get_terminal_console()
        self.styled = styled
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"ConsoleAppender(styled={self.styled})"

    def write(self, level: LogLevel, line: str) -> None:
        text = render(line, level) if self.styled else line
        with self._lock:
            stream = self.console.file
            stream.write(text)
            stream.flush()


# -- file ---------------------------------------------------------------------


_FailureCallback: TypeAlias = Callable[[FileAppendError], object]
_QueuedLine: TypeAlias = tuple[str, Future[None], _FailureCallback | None]


class _FileWriter:
    """Single writer thread and FIFO queue for one log file.

    Every appender targeting the same resolved path shares one writer, so
    lines never interleave and land in the order they were queued. The thread
    starts on the first write and is stopped at interpreter exit.
    """

    _instances: ClassVar[dict[Path, _FileWriter]] = {}
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, path: Path) -> None:
        self._path = path
        self._queue: queue.Queue[_QueuedLine | None] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        atexit.register(self.close)

    @classmethod
    def get_or_create(cls, path: Path) -> _FileWriter:
        resolved = path.resolve()
        with cls._registry_lock:
            if resolved not in cls._instances:
                cls._instances[resolved] = cls(path)
            return cls._instances[resolved]

    @property
    def path(self) -> Path:
        return self._path

    def submit(
        self, text: str, on_failure: _FailureCallback | None = None
    ) -> Future[None]:
        """Queue *text* for appending.

        *on_failure* runs on the writer thread before the returned future
        fails, so anyone waiting on the future sees the failure already
        reported.
        """
        future: Future[None] = Future()
        with self._lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(
                    target=self._run,
                    name=f"console-enhancer-writer:{self._path.name}",
                    daemon=True,
                )
                self._thread.start()
            self._queue.put((text, future, on_failure))
        return future

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                text, future, on_failure = item
                if not future.set_running_or_notify_cancel():
                    continue
                try:
                    with open(self._path, "a", encoding="utf-8") as handle:
                        handle.write(text)
                except Exception as exc:
                    error = FileAppendError(self._path, exc)
                    try:
                        if on_failure is not None:
                            on_failure(error)
                    finally:
                        future.set_exception(error)
                else:
                    future.set_result(None)
            finally:
                self._queue.task_done()

    def join(self) -> None:
        """Block until every queued line has been handled."""
        self._queue.join()

    def close(self) -> None:
        """Drain the queue and stop the writer thread (idempotent).

        Submissions wait until the old thread has exited, so a restarted
        writer never shares the queue with it.
        """
        with self._lock:
            thread = self._thread
            if thread is not None and thread.is_alive():
                self._queue.put(None)
                thread.join()
            self._thread = None


class FileAppender:
    """Append plain lines to a UTF-8 file without blocking the caller.

    The parent directory is created when the appender is built. A failed
    write is reported through *reporter* with the path and the underlying
    error, and stays on the returned :class:`AppendOutcome` so whoever waits
    on it gets a :class:`FileAppendError`.

    :param path: Target log file.
    :param reporter: Called with a description of every failed write.
    """

    def __init__(self, path: os.PathLike[str] | str, reporter: Reporter) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._reporter = reporter
        self._writer = _FileWriter.get_or_create(self.path)

    def __repr__(self) -> str:
        return f"FileAppender(path={str(self.path)!r})"

    def write(self, level: LogLevel, line: str) -> AppendOutcome:
        future = self._writer.submit(line, self._report_failure)
        return AppendOutcome(self.path, future)

    def _report_failure(self, error: FileAppendError) -> None:
        self._reporter(str(error))

    def join(self) -> None:
        self._writer.join()

    def close(self) -> None:
        self._writer.close()


# -- fan-out ------------------------------------------------------------------


class AppenderFanout:
    """Ordered list of appenders; every line goes to all of them.

    Appenders are called in registration order. An exception from one
    appender does not stop the others; the first one is re-raised once all
    have been called.
    """

    def __init__(self, appenders: Iterable[Appender] = ()) -> None:
        self._appenders: list[Appender] = list(appenders)

    def __repr__(self) -> str:
        return f"AppenderFanout({self._appenders!r})"

    def __iter__(self) -> Iterator[Appender]:
        return iter(self._appenders)

    def __len__(self) -> int:
        return len(self._appenders)

    def register(self, appender: Appender) -> None:
        self._appenders.append(appender)

    def dispatch(
        self,
        level: LogLevel,
        line: str,
        on_outcome: Callable[[AppendOutcome], object] | None = None,
    ) -> list[AppendOutcome]:
        """Write *line* to every appender and return the pending file outcomes.

        *on_outcome* sees each outcome as soon as its appender returns, so
        outcomes are not lost when another appender raises.
        """
        outcomes: list[AppendOutcome] = []
        first_error: Exception | None = None
        for appender in self._appenders:
            try:
                outcome = appender.write(level, line)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
                continue
            if outcome is not None:
                outcomes.append(outcome)
                if on_outcome is not None:
                    on_outcome(outcome)
        if first_error is not None:
            raise first_error
        return outcomes
