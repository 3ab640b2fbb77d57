"""Structured Logging for formschema

structlog events for the engines, the registry and schema interchange.

Features:
- Console rendering for development, JSON for production
- contextvars propagation (bind a form or request id once per call site)
- Redaction: validated payloads carry passwords and tokens, so sensitive keys
  are masked anywhere in an event, and so is the offending value of any event
  whose field path ends in a sensitive name

The library never configures logging on import; applications call
``configure_logging`` once at startup. Until then structlog's defaults apply.
"""
import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from formschema import __version__

SENSITIVE_KEYS = frozenset({"password", "token", "secret", "authorization", "cookie", "api_key"})
REDACTED = "[REDACTED]"

# Event keys naming a field path, and the keys holding that field's value
_PATH_KEYS = ("path", "field")
_VALUE_KEYS = ("received", "value")
_MAX_DEPTH = 5


def _is_sensitive(name: Any) -> bool:
    return isinstance(name, str) and name.lower() in SENSITIVE_KEYS


def _leaf(path: Any) -> str | None:
    """Last named segment of ``items[0].password`` style paths."""
    if not isinstance(path, str) or not path: return None
    return path.rsplit(".", 1)[-1].split("[", 1)[0]


def _mask(obj: Any, depth: int = 0) -> Any:
    if depth > _MAX_DEPTH: return obj
    if isinstance(obj, dict):
        return {k: REDACTED if _is_sensitive(k) else _mask(v, depth + 1) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_mask(item, depth + 1) for item in obj]
    return obj


def redact_sensitive(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Processor masking sensitive keys and values reported for sensitive fields."""
    event_dict = _mask(event_dict)
    if any(_is_sensitive(_leaf(event_dict.get(key))) for key in _PATH_KEYS):
        for key in _VALUE_KEYS:
            if key in event_dict: event_dict[key] = REDACTED
    return event_dict


def add_library_info(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("library", "formschema")
    event_dict.setdefault("version", __version__)
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors used for structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_library_info,
        redact_sensitive,
    ]


def _renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), exception_formatter=structlog.dev.plain_traceback)


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Route structlog through the stdlib root logger with one stdout handler.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to ``Settings.LOG_LEVEL``.
        json_logs: JSON lines when true, console output otherwise. Defaults to ``Settings.LOG_JSON``.
    """
    from formschema.config import get_settings

    settings = get_settings()
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    shared = get_shared_processors()

    structlog.configure(
        processors=[*shared, structlog.processors.format_exc_info,
                    structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings.LOG_JSON if json_logs is None else json_logs),
        ],
    ))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)


def get_logger(name: str = "formschema") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach key-value pairs to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


class LoggerRegistry:
    """One lazily created logger per library domain."""

    _loggers: dict[str, structlog.stdlib.BoundLogger] = {}

    @classmethod
    def get(cls, domain: str) -> structlog.stdlib.BoundLogger:
        if domain not in cls._loggers:
            cls._loggers[domain] = get_logger(f"formschema.{domain}")
        return cls._loggers[domain]


def engine_logger() -> structlog.stdlib.BoundLogger:
    """Synchronous walk: transforms, abort-early, completion."""
    return LoggerRegistry.get("engine")


def async_logger() -> structlog.stdlib.BoundLogger:
    """Async rules: timeouts, raised callbacks, debouncing."""
    return LoggerRegistry.get("async")


def registry_logger() -> structlog.stdlib.BoundLogger:
    """Validator registration and dispatch."""
    return LoggerRegistry.get("registry")


def schema_logger() -> structlog.stdlib.BoundLogger:
    """Schema construction and interchange."""
    return LoggerRegistry.get("schema")
