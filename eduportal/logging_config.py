"""
============================================================================
FILE: logging_config.py
LOCATION: eduportal/logging_config.py
============================================================================

PURPOSE:
    One place that decides how portal log lines look. LOG_JSON picks
    between one JSON object per line (for a log collector) and a short
    console line for local work.

ROLE IN PROJECT:
    Services log through get_logger("<component>"), which hangs every
    logger under "eduportal". Authorization denials, hierarchy writes and
    unhandled errors therefore come out in one format, and the who/what
    of a denial can be attached with extra={"actor": ..., "role": ...}.

KEY COMPONENTS:
    - StructuredFormatter: JSON lines, lifting CONTEXT_FIELDS out of extra
    - DevelopmentFormatter: "HH:MM:SS [LEVEL] component: message"
    - setup_logging(level, production, logger_name): Install one handler
    - get_logger(name): Component logger below "eduportal"

USAGE:
    from eduportal.logging_config import get_logger

    logger = get_logger("chapters")
    logger.info("Chapter %s deleted", chapter_id, extra={"actor": actor.id})
============================================================================
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional


ROOT_LOGGER_NAME = "eduportal"

# Attributes callers may attach through extra= that belong in the JSON line
CONTEXT_FIELDS = ("actor", "role", "resource", "resource_id")


def _component(record: logging.LogRecord) -> str:
    prefix = ROOT_LOGGER_NAME + "."
    return record.name[len(prefix):] if record.name.startswith(prefix) else record.name


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, timestamped from the record itself."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "component": _component(record),
            "message": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Short console line; the actor, when known, is appended in brackets."""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(component)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.component = _component(record)
        line = super().format(record)
        actor = getattr(record, "actor", None)
        return f"{line} [actor={actor}]" if actor else line


def setup_logging(
    level: str = "INFO",
    production: bool = False,
    logger_name: str = ROOT_LOGGER_NAME,
) -> logging.Logger:
    """
    Install a single stdout handler on the portal logger.

    Args:
        level: Level name; unknown names fall back to INFO
        production: JSON lines when True, console lines otherwise
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if production else DevelopmentFormatter())
    logger.addHandler(handler)

    # JSON output goes to the collector only; in development records also
    # reach the root logger, which is where pytest's caplog listens
    logger.propagate = not production
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    return root.getChild(name) if name else root
