from __future__ import annotations

import inspect
from collections.abc import Callable
from types import FrameType
from typing import NamedTuple, Protocol


# Frames walked back from the resolver itself: resolver -> dispatch ->
# entry point -> caller. Anything deeper is never inspected.
MAX_STACK_DEPTH = 4
CALLER_OFFSET = 3


class CallSite(NamedTuple):
    """Source location of the code that invoked a logging entry point."""

    file: str
    line: int | str
    function: str = "anonymous"


UNKNOWN_CALL_SITE = CallSite(file="unknown", line="?", function="anonymous")


def source_basename(filename: str, path_replace: str | None = None) -> str:
    """Return the part of *filename* after its last ``/`` or ``\\``.

    If *path_replace* is set, its first occurrence is removed from the result.
    """
    cut = max(filename.rfind("/"), filename.rfind("\\"))
    name = filename[cut + 1 :]
    if path_replace:
        name = name.replace(path_replace, "", 1)
    return name


class CallSiteResolver(Protocol):
    path_replace: str | None

    def resolve(self, stack_offset: int = CALLER_OFFSET) -> CallSite: ...


class StackCallSiteResolver:
    """Resolve call sites by walking interpreter frames.

    Only ``max_depth`` frames are ever visited. Frame references are dropped
    before returning so no reference cycle outlives the call.

    :param path_replace: Substring stripped from every resolved file name.
    :param max_depth: Upper bound on the frames walked back.
    :param currentframe: Frame accessor, ``inspect.currentframe`` by default.
    """

    def __init__(
        self,
        path_replace: str | None = None,
        *,
        max_depth: int = MAX_STACK_DEPTH,
        currentframe: Callable[[], FrameType | None] = inspect.currentframe,
    ) -> None:
        self.path_replace = path_replace
        self.max_depth = max_depth
        self._currentframe = currentframe

    def __repr__(self) -> str:
        return (
            f"StackCallSiteResolver(path_replace={self.path_replace!r}, "
            f"max_depth={self.max_depth})"
        )

    def resolve(self, stack_offset: int = CALLER_OFFSET) -> CallSite:
        """Return the call site *stack_offset* frames above the caller of this method.

        The default offset lands on the user code that called a logger
        entry point. Degrades to :data:`UNKNOWN_CALL_SITE` when frames are
        unavailable or the stack is shallower than requested.
        """
        if stack_offset >= self.max_depth:
            return UNKNOWN_CALL_SITE
        # currentframe() returns the frame of its caller; the accessor is
        # called from here, so this is our own frame.
        frame = self._currentframe()
        try:
            for _ in range(stack_offset):
                if frame is None:
                    break
                frame = frame.f_back
            if frame is None:
                return UNKNOWN_CALL_SITE
            code = frame.f_code
            function = code.co_qualname
            if not function or function == "<module>":
                function = "anonymous"
            return CallSite(
                file=source_basename(code.co_filename, self.path_replace),
                line=frame.f_lineno,
                function=function,
            )
        finally:
            del frame


class NullCallSiteResolver:
    """Resolver for environments without frame introspection; always unknown."""

    def __init__(self, path_replace: str | None = None) -> None:
        self.path_replace = path_replace

    def resolve(self, stack_offset: int = CALLER_OFFSET) -> CallSite:
        return UNKNOWN_CALL_SITE
