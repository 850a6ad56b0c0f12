"""
Logging — Compile-scoped structured logging.

Records emitted while a template compiles are stamped with the module name
of that compilation (the compile ID) and the generated class name. Compiler
events add structured fields (scratch folder, error and warning counts)
through ``extra=compile_fields(...)``; both formatters render them.
"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any


# Module name of the compile in progress
_compile_id: ContextVar[str | None] = ContextVar("compile_id", default=None)

# Attribute under which compile_fields() stores structured data on a record
FIELDS_ATTR = "compile_fields"


def set_compile_id(compile_id: str | None) -> None:
    _compile_id.set(compile_id or None)


def get_compile_id() -> str | None:
    return _compile_id.get()


def compile_fields(**fields: Any) -> dict[str, Any]:
    """
    Build the ``extra`` mapping for a compiler log call.

    Usage:
        logger.info("Compiled", extra=compile_fields(warnings=2))
    """
    return {FIELDS_ATTR: fields}


class CompileIdFilter(logging.Filter):
    """Stamps compile_id and class_name onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        compile_id = get_compile_id()
        record.compile_id = compile_id or "-"
        record.class_name = compile_id.rpartition(".")[2] if compile_id else "-"
        if not hasattr(record, FIELDS_ATTR):
            setattr(record, FIELDS_ATTR, {})
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; compile fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "compile_id": getattr(record, "compile_id", None),
            "class_name": getattr(record, "class_name", None),
            **getattr(record, FIELDS_ATTR, {}),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ReadableFormatter(logging.Formatter):
    """
    Single-line formatter for development.

    ``INFO    [Template_ab12] kiln.compiler: Compiled (warnings=1)``
    """

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{record.levelname:<7} [{getattr(record, 'class_name', '-')}] "
            f"{record.name}: {record.getMessage()}"
        )
        fields = getattr(record, FIELDS_ATTR, {})
        if fields:
            line += " (" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
) -> logging.Handler:
    """
    Route the ``kiln`` logger tree to one stream handler.

    Args:
        level: Logging level
        json_format: JSON lines instead of readable output
        stream: Output stream (default: stderr)

    Returns the installed handler.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(CompileIdFilter())
    handler.setFormatter(JSONFormatter() if json_format else ReadableFormatter())

    root = logging.getLogger("kiln")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False
    return handler


def get_logger(name: str) -> logging.Logger:
    """Logger for a kiln component, e.g. ``kiln.compiler``."""
    return logging.getLogger(f"kiln.{name}")


class LogContext:
    """
    Scopes the compile ID to a block.

    Usage:
        with LogContext(module_name):
            logger.info("Compiling...")
    """

    def __init__(self, compile_id: str | None):
        self.compile_id = compile_id
        self._token = None

    def __enter__(self):
        self._token = _compile_id.set(self.compile_id or None)
        return self

    def __exit__(self, *args):
        if self._token is not None:
            _compile_id.reset(self._token)
