"""Top-level package for Console Enhancer."""

from .appenders import (
    AppendOutcome,
    Appender,
    AppenderFanout,
    ConsoleAppender,
    FileAppendError,
    FileAppender,
)
from .callsite import (
    UNKNOWN_CALL_SITE,
    CallSite,
    CallSiteResolver,
    NullCallSiteResolver,
    StackCallSiteResolver,
)
from .config import (
    EnhancerConfig,
    LevelFilter,
    LogLevel,
    LogLevelLike,
    config_from_env,
    get_default_config,
)
from .logger import ConsoleEnhancer, enhance, install


__all__ = [
    "UNKNOWN_CALL_SITE",
    "AppendOutcome",
    "Appender",
    "AppenderFanout",
    "CallSite",
    "CallSiteResolver",
    "ConsoleAppender",
    "ConsoleEnhancer",
    "EnhancerConfig",
    "FileAppendError",
    "FileAppender",
    "LevelFilter",
    "LogLevel",
    "LogLevelLike",
    "NullCallSiteResolver",
    "StackCallSiteResolver",
    "config_from_env",
    "enhance",
    "get_default_config",
    "install",
]
