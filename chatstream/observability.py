import logging
import sys
from typing import Optional

import structlog
from prometheus_client import Counter, Histogram

from chatstream.core.config import settings

logger = structlog.get_logger()

REQ_COUNTER = Counter("chatstream_requests_total", "Chat completion requests", ["outcome"])
EVENT_COUNTER = Counter("chatstream_stream_events_total", "Decoded stream events")
DROPPED_COUNTER = Counter("chatstream_stream_events_dropped_total", "Malformed stream events skipped")
STREAM_LATENCY = Histogram("chatstream_stream_seconds", "Time from first read to end of stream", ["outcome"])


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """
    Route structlog through the stdlib root logger with a console or JSON renderer.
    Unset arguments fall back to LOG_LEVEL / LOG_JSON from settings.
    """
    level = level or settings.LOG_LEVEL
    json = settings.LOG_JSON if json is None else json
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
    # Reduce noise from the transport
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logger.debug("logging_configured", level=level, json=json)
