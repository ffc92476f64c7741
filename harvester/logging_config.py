"""Log file configuration.

Every module logs through ``logging.getLogger(__name__)``.  ``configure_logging``
routes those records through structlog's ``ProcessorFormatter`` so each line in
the log file reads ``<ISO timestamp> - <message>``.  The file is rotated at
midnight and can be read or truncated on demand by the ``/logs`` routes.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

import structlog
from structlog.types import EventDict, WrappedLogger

_HANDLER_NAME = "harvester-file"
_CONSOLE_HANDLER_NAME = "harvester-console"


def _render_line(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> str:
    """Render an event dict as ``<timestamp> - <message>``.

    Exception text added by ``format_exc_info`` is appended on the next lines.
    """
    line = f"{event_dict.get('timestamp', '')} - {event_dict.get('event', '')}"
    exc = event_dict.get("exception")
    if exc:
        line = f"{line}\n{exc}"
    return line


def _formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _render_line,
        ],
    )


def configure_logging(log_file: Path, log_level: str = "INFO") -> None:
    """Attach the rotating file handler and a console handler to the root logger.

    Idempotent: handlers installed by a previous call are replaced, so tests
    can point the log at a temporary file.

    Args:
        log_file: Path of the append-only log file.  Its parent is created.
        log_level: Logging verbosity, case-insensitive.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.touch(exist_ok=True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() in (_HANDLER_NAME, _CONSOLE_HANDLER_NAME):
            root.removeHandler(handler)
            handler.close()

    formatter = _formatter()

    file_handler = logging.handlers.TimedRotatingFileHandler(
        log_file, when="midnight", backupCount=1, encoding="utf-8"
    )
    file_handler.set_name(_HANDLER_NAME)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(_CONSOLE_HANDLER_NAME)
    console_handler.setFormatter(formatter)

    root.addHandler(file_handler)
    root.addHandler(console_handler)
    root.setLevel(numeric_level)

    # httpx logs every request at INFO; keep the event log about harvesting.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def read_log_file(log_file: Path) -> str:
    """Return the whole log file, or an empty string if it does not exist yet."""
    if not log_file.exists():
        return ""
    return log_file.read_text(encoding="utf-8")


def clear_log_file(log_file: Path) -> None:
    """Truncate the log file in place.

    The file handler keeps its stream open in append mode, so later records
    are written at the new end of the file.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.write_text("", encoding="utf-8")
