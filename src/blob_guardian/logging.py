"""JSON-lines logging for Blob Guardian.

Every record carries ``ts``, ``level``, ``component`` and ``msg``. Fields
that could hold key material, plaintext or credentials are masked before
rendering, whatever module logged them.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping

import structlog

EventDict = MutableMapping[str, Any]

MASK = "***"
SENSITIVE_FIELDS = frozenset({"key", "plaintext", "material", "api_key"})


def configure_logging(level: str | None = None) -> None:
    """Route structlog through the stdlib root logger on stdout.

    ``level`` is a level name in any case; unknown names fall back to INFO.
    """
    threshold = _resolve_level(level)
    logging.basicConfig(
        level=threshold,
        handlers=[logging.StreamHandler(sys.stdout)],
        format="%(message)s",
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            _add_component,
            _mask_sensitive,
            structlog.processors.EventRenamer("msg"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        cache_logger_on_first_use=True,
    )


def _add_component(logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    # stdlib logger names are the dotted module path of the caller
    event_dict.setdefault("component", getattr(logger, "name", None) or "blob_guardian")
    return event_dict


def _mask_sensitive(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    for name in SENSITIVE_FIELDS.intersection(event_dict):
        event_dict[name] = MASK
    return event_dict


def _resolve_level(level: str | None) -> int:
    resolved = logging.getLevelName((level or "INFO").upper())
    return resolved if isinstance(resolved, int) else logging.INFO


__all__ = ["configure_logging"]
