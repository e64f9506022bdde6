"""structlog configuration shared by all three services.

Learn: Log entries are key/value events ("token.expired", "stats.fetch_failed")
rather than formatted sentences. merge_contextvars pulls in whatever the
request middleware bound (request_id, service), so every line emitted while
handling a request is correlated without passing a logger around.
"""

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog once per process.

    Repeated calls (app factories run several times in tests) are no-ops.
    """
    global _configured
    if _configured:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )
    _configured = True
