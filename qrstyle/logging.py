"""qrstyle structured logging: audit events, stage tracing, console + JSON output."""

import functools
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone

# AUDIT sits between WARNING=30 and ERROR=40 so audit trails survive -q runs
AUDIT = 35
logging.addLevelName(AUDIT, "AUDIT")

_ROOT = "qrstyle"


def _truncate(value: object, max_len: int = 80) -> str:
    s = str(value)
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s


def _timestamp(record: logging.LogRecord, fmt: str) -> str:
    return datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(fmt)[:-3]


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shipping and test assertions."""

    def format(self, record):
        entry = {
            "ts": _timestamp(record, "%Y-%m-%dT%H:%M:%S.%f") + "Z",
            "level": record.levelname,
            "src": record.name,
        }
        event = getattr(record, "event", None)
        if event:
            entry["event"] = event
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = round(record.duration_ms, 2)
        if getattr(record, "ctx", None):
            entry["ctx"] = record.ctx
        if not event and record.getMessage():
            entry["msg"] = record.getMessage()
        if record.exc_info and record.exc_info[1]:
            entry["traceback"] = traceback.format_exception(*record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "AUDIT": "\033[35m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        parts = [
            _timestamp(record, "%H:%M:%S.%f"),
            f"{color}{record.levelname:5s}{self.RESET}",
            f"[{record.name}]",
        ]
        event = getattr(record, "event", None)
        if event:
            parts.append(event)
        if hasattr(record, "duration_ms"):
            parts.append(f"({record.duration_ms:.1f}ms)")

        ctx = getattr(record, "ctx", None)
        if ctx:
            parts.append(" ".join(f"{k}={_truncate(v)}" for k, v in ctx.items()))
        elif not event and record.getMessage():
            parts.append(record.getMessage())

        if record.exc_info and record.exc_info[1]:
            parts.append(f"\n{''.join(traceback.format_exception(*record.exc_info))}")
        return " ".join(parts)


def setup_logging(level: str = "INFO", log_file: str | None = None, json_format: bool = False):
    """Configure the ``qrstyle`` logger tree.

    Args:
        level: DEBUG, INFO, AUDIT, WARNING or ERROR.
        log_file: Optional path; the file always receives JSON lines.
        json_format: Emit JSON on the console as well.
    """
    root = logging.getLogger(_ROOT)
    level_no = logging.getLevelName(level.upper())
    root.setLevel(level_no if isinstance(level_no, int) else logging.INFO)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())
    root.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setFormatter(JsonFormatter())
        root.addHandler(fh)


def get_logger(module_name: str) -> logging.Logger:
    return logging.getLogger(f"{_ROOT}.{module_name}")


def _emit(log: logging.Logger, level: int, event: str, ctx: dict,
          duration_ms: float | None = None, exc_info=None):
    if not log.isEnabledFor(level):
        return
    record = log.makeRecord(
        name=log.name, level=level, fn="", lno=0,
        msg="", args=(), exc_info=exc_info,
    )
    record.event = event
    record.ctx = ctx
    if duration_ms is not None:
        record.duration_ms = duration_ms
    log.handle(record)


def audit(event: str, logger: logging.Logger | None = None, **context):
    """Emit an AUDIT-level structured event, e.g. ``audit("ecc.selected", level="Q")``."""
    _emit(logger or logging.getLogger(_ROOT), AUDIT, event, context)


def _summarize(value) -> str:
    if isinstance(value, (str, int, float, bool)):
        return _truncate(repr(value), 80)
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}[{len(value)}]"
    if hasattr(value, "size") and hasattr(value, "mode"):
        return f"Image[{value.size[0]}x{value.size[1]} {value.mode}]"
    return type(value).__name__


def trace(func=None, *, logger_name: str | None = None):
    """Log entry (DEBUG), exit with timing (INFO) and failures (ERROR) of a stage function."""
    def decorator(fn):
        log = get_logger(logger_name or fn.__module__.replace(f"{_ROOT}.", ""))

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            name = fn.__name__
            if log.isEnabledFor(logging.DEBUG):
                _emit(log, logging.DEBUG, f"{name}.enter", {
                    "args": [_summarize(a) for a in args],
                    "kwargs": {k: _summarize(v) for k, v in kwargs.items()},
                })

            start = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception:
                _emit(log, logging.ERROR, f"{name}.error", {"function": name},
                      duration_ms=(time.perf_counter() - start) * 1000,
                      exc_info=sys.exc_info())
                raise
            _emit(log, logging.INFO, f"{name}.done", {"result": _summarize(result)},
                  duration_ms=(time.perf_counter() - start) * 1000)
            return result

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
