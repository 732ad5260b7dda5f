import io
import platform
import re
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text


ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")
FIXED_MOMENT = datetime(2026, 10, 18, 9, 12, 44, 31000, tzinfo=timezone.utc)

# Terminal console for session output on stderr (avoids pytest stdout capture)
_terminal_console = Console(
    record=False, log_path=False, log_time=False, stderr=True, width=100
)


def _format_duration(seconds: float) -> str:
    """Format duration in human-readable form."""
    if seconds < 0.001:
        return f"{seconds * 1_000_000:.0f}µs"
    elif seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    else:
        mins, secs = divmod(seconds, 60)
        return f"{int(mins)}m {secs:.1f}s"


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub("", text)


class BufferConsole:
    """A rich Console writing into memory, plus helpers to read it back."""

    def __init__(self) -> None:
        self.buffer = io.StringIO()
        self.console = Console(file=self.buffer, force_terminal=False, width=200)

    @property
    def raw(self) -> str:
        return self.buffer.getvalue()

    @property
    def lines(self) -> list[str]:
        """Unstyled lines written so far, without their newline."""
        return strip_ansi(self.raw).splitlines()


@pytest.fixture
def buffer_console() -> BufferConsole:
    return BufferConsole()


@pytest.fixture
def reported() -> list[str]:
    """Collects messages sent to a bootstrap reporter (use ``reported.append``)."""
    return []


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_MOMENT


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "server.log"


def pytest_sessionstart(session: pytest.Session) -> None:
    session.name = "Console Enhancer Tests"
    object.__setattr__(session, "start_time", time.perf_counter())


@pytest.fixture(autouse=True, scope="session")
def log_session_start_and_end(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    config = request.config
    session = request.session

    env_table = Table(show_header=False, box=None, padding=(0, 2))
    env_table.add_column("Key", style="dim")
    env_table.add_column("Value")
    env_table.add_row(
        "Python",
        f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    )
    env_table.add_row("Platform", platform.platform())
    env_table.add_row("Root", str(config.rootpath))
    env_table.add_row("Invocation Args", " ".join(["pytest", *sys.argv[1:]]))

    _terminal_console.print()
    _terminal_console.print(
        Panel(
            env_table,
            title=f"[bold magenta]{session.name}[/]",
            subtitle=f"[dim]{time.strftime('%Y-%m-%d %H:%M:%S')}[/]",
            border_style="magenta",
            padding=(1, 2),
        )
    )

    yield

    duration = _format_duration(time.perf_counter() - session.start_time)  # type: ignore[attr-defined]
    passed = session.testscollected - session.testsfailed
    status_style = "green" if session.testsfailed == 0 else "red"

    summary = Text()
    summary.append(f"✓ {passed} passed", style="green")
    if session.testsfailed:
        summary.append(f"  ✗ {session.testsfailed} failed", style="red")
    summary.append(f"  ⏱ {duration}", style="dim")

    _terminal_console.print()
    _terminal_console.print(
        Panel(
            summary,
            title="[bold]Session Complete[/]",
            border_style=status_style,
            padding=(0, 2),
        )
    )


@pytest.fixture(autouse=True, scope="module")
def log_module_start_and_end(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    module_name = request.module.__name__.replace("tests.", "")

    _terminal_console.print()
    _terminal_console.rule(f"[bold blue]{module_name}[/]", style="blue")

    yield

    _terminal_console.rule(style="blue")
