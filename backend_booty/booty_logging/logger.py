"""
Structured logging for the monitor and the ingestion service.

Every log line carries event_type (the event name), component (the event
name's prefix, e.g. "poller" for poller_cycle_done), level, timestamp and the
emitting module. Pipeline code binds the transaction signature once per
transaction with bind_signature().

LOG_LEVEL sets the threshold; LOG_FORMAT=json (default) renders JSON lines and
any other value renders the console format. No backend_booty imports here.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

COMPONENTS = frozenset(
    {"poller", "classifier", "payload", "dispatch", "webhook", "store", "repo", "monitor", "api", "main"}
)


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _add_component(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Derive component from the event name prefix (webhook_envelope_invalid -> webhook)."""
    if "component" in event_dict:
        return event_dict
    prefix = str(event_dict.get("event_type", "")).split("_", 1)[0]
    if prefix in COMPONENTS:
        event_dict["component"] = prefix
    return event_dict


def configure_structlog() -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
        _add_component,
    ]
    if LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger. Event names are snake_case with a component prefix:

        logger = get_logger(__name__)
        logger.info("repo_saved", collection="hidden-treasures", signature=sig, created=True)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_signature(signature: str, name: str = "backend_booty") -> structlog.BoundLogger:
    """Logger for one transaction: signature is attached to every line it emits."""
    return get_logger(name).bind(signature=signature)
