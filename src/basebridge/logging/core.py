"""Core logging interfaces and data structures for the relayer.

This module provides:
- LogLevel, including the ``success`` level that closes each relay step
- LogContext and the scoped ``log_context`` used to tag relay operations
- LogEntry, LogFormatter and LogHandler
- LogManager and the process-wide ``get_logger``/``setup_logging`` helpers
"""

import sys
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class LogLevel(Enum):
    """Log levels, lowest first."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {level: rank for rank, level in enumerate(LogLevel)}


@dataclass
class LogContext:
    """Where a log line comes from.

    ``component`` is the relay direction, ``operation`` the step being run.
    """

    component: Optional[str] = None
    operation: Optional[str] = None
    deploy_env: Optional[str] = None
    message_hash: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "operation": self.operation,
            "deploy_env": self.deploy_env,
            "message_hash": self.message_hash,
            "metadata": dict(self.metadata),
        }

    def merged_with(self, other: Optional["LogContext"]) -> "LogContext":
        """Overlay the fields ``other`` sets on top of this context."""
        if other is None:
            return self
        return LogContext(
            component=other.component or self.component,
            operation=other.operation or self.operation,
            deploy_env=other.deploy_env or self.deploy_env,
            message_hash=other.message_hash or self.message_hash,
            metadata={**self.metadata, **other.metadata},
        )


_scoped_context: "ContextVar[Optional[LogContext]]" = ContextVar(
    "basebridge_log_context", default=None
)


@contextmanager
def log_context(**fields: Any) -> Iterator[LogContext]:
    """Tag every entry logged inside the block, including from awaited calls.

    Scopes nest; inner fields win. The scope is per task, so concurrent
    relays keep their own message hash.
    """
    outer = _scoped_context.get()
    scoped = (outer or LogContext()).merged_with(LogContext(**fields))
    token = _scoped_context.set(scoped)
    try:
        yield scoped
    finally:
        _scoped_context.reset(token)


@dataclass
class LogEntry:
    """A single log record."""

    timestamp: float
    level: LogLevel
    message: str
    logger_name: str
    context: LogContext
    exception: Optional[BaseException] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "message": self.message,
            "logger_name": self.logger_name,
            "context": self.context.to_dict(),
            "exception": repr(self.exception) if self.exception is not None else None,
            "extra": self.extra,
        }


@dataclass
class LogConfig:
    """Log configuration.

    ``format_type`` selects the console formatter: ``text`` or ``json``.
    """

    name: str = "basebridge"
    level: LogLevel = LogLevel.INFO
    format_type: str = "text"
    console: bool = True


class LogFormatter(ABC):
    """Abstract log formatter."""

    @abstractmethod
    def format(self, entry: LogEntry) -> str:
        """Render ``entry`` as a single string."""


class LogHandler(ABC):
    """Abstract log handler."""

    def __init__(self, level: LogLevel = LogLevel.TRACE):
        self.level = level
        self.formatter: Optional[LogFormatter] = None
        self._lock = threading.RLock()

    def set_formatter(self, formatter: LogFormatter) -> None:
        self.formatter = formatter

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def handle(self, entry: LogEntry) -> None:
        if entry.level.rank >= self.level.rank:
            self.emit(entry)

    @abstractmethod
    def emit(self, entry: LogEntry) -> None:
        """Write ``entry`` out."""

    def close(self) -> None:
        pass


class LogManager:
    """Routes entries from named loggers to the registered handlers."""

    def __init__(self, config: Optional[LogConfig] = None):
        self.config = config or LogConfig()
        self.loggers: Dict[str, "BridgeLogger"] = {}
        self.handlers: Dict[str, LogHandler] = {}
        self._context = LogContext()
        self._lock = threading.RLock()

        if self.config.console:
            self._install_console()

    def _install_console(self) -> None:
        from .formatters import JSONFormatter, TextFormatter
        from .handlers import ConsoleHandler

        console = ConsoleHandler()
        console.set_formatter(
            JSONFormatter() if self.config.format_type == "json" else TextFormatter()
        )
        self.add_handler("console", console)

    def get_logger(self, name: str) -> "BridgeLogger":
        with self._lock:
            return self.loggers.setdefault(name, BridgeLogger(name, self))

    def add_handler(self, name: str, handler: LogHandler) -> None:
        with self._lock:
            self.handlers[name] = handler

    def set_context(self, context: LogContext) -> None:
        """Set the process-wide context that every entry starts from."""
        with self._lock:
            self._context = context

    def log(
        self,
        level: LogLevel,
        message: str,
        logger_name: str,
        context: Optional[LogContext] = None,
        exception: Optional[BaseException] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        merged = self._context.merged_with(_scoped_context.get()).merged_with(context)
        entry = LogEntry(
            timestamp=time.time(),
            level=level,
            message=message,
            logger_name=logger_name,
            context=merged,
            exception=exception,
            extra=extra or {},
        )
        with self._lock:
            handlers: List[LogHandler] = list(self.handlers.values())
        for handler in handlers:
            handler.handle(entry)

    def shutdown(self) -> None:
        with self._lock:
            for handler in self.handlers.values():
                handler.close()
            self.handlers.clear()
            self.loggers.clear()


class BridgeLogger:
    """Named logger bound to a LogManager."""

    def __init__(self, name: str, manager: LogManager):
        self.name = name
        self.manager = manager

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level.rank >= self.manager.config.level.rank

    def log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        if self.is_enabled_for(level):
            self.manager.log(level, message, self.name, **kwargs)

    def trace(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.TRACE, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.INFO, message, **kwargs)

    def success(self, message: str, **kwargs: Any) -> None:
        """Log the successful end of a relay step."""
        self.log(LogLevel.SUCCESS, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at error level with the exception being handled attached."""
        kwargs.setdefault("exception", sys.exc_info()[1])
        self.log(LogLevel.ERROR, message, **kwargs)


_manager: Optional[LogManager] = None
_manager_lock = threading.Lock()


def get_log_manager() -> LogManager:
    """Get the process-wide log manager, creating it on first use."""
    global _manager
    with _manager_lock:
        if _manager is None:
            _manager = LogManager()
        return _manager


class _LazyLogger:
    def __init__(self, name: str):
        self.name = name

    def __getattr__(self, item: str) -> Any:
        return getattr(get_log_manager().get_logger(self.name), item)


def get_logger(name: str = "basebridge") -> Any:
    """Get a logger by name.

    The returned logger resolves the manager on every call, so module-level
    loggers follow a later ``setup_logging``.
    """
    return _LazyLogger(name)


def setup_logging(config: LogConfig) -> LogManager:
    """Replace the process-wide log manager."""
    global _manager
    with _manager_lock:
        if _manager is not None:
            _manager.shutdown()
        _manager = LogManager(config)
        return _manager


def shutdown_logging() -> None:
    global _manager
    with _manager_lock:
        if _manager is not None:
            _manager.shutdown()
            _manager = None
