"""
structlog setup for pagesync.

Events are snake_case names with key-value fields, for example
``page_failed page_id=... error_type=...`` or ``sync_completed
processed=3 skipped=1 failed=0``. Context bound with
``structlog.contextvars`` is merged into every event: ``datasource``
during a sync run and ``request_id`` during an API request. Inside a span
``trace_id``/``span_id`` are added too.

Production (``ENVIRONMENT=production``) renders one JSON object per line;
every other environment uses the coloured console renderer.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from pagesync.config.settings import get_settings
from pagesync.observability.tracing import add_trace_context

# Transport chatter that drowns out sync events at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging() -> None:
    """Configure structlog and route stdlib logging through stdout."""
    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_trace_context,
    ]
    if settings.is_production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
