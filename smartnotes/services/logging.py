"""
Structured logging: JSON lines through structlog, with a per-request id
carried in context variables so chunk-level events can be tied back to the
HTTP request that started them.
"""
import asyncio
import functools
import logging
import os
import sys
import time
import uuid

import structlog

# Chatty third-party loggers; the OpenAI SDK logs every request at INFO through httpx
QUIET_LOGGERS = ("sqlalchemy", "httpx", "httpcore", "openai")


def configure_logging():
    """LOG_LEVEL sets the threshold, LOG_FORMAT=console swaps JSON for a readable renderer"""
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    if os.getenv("LOG_FORMAT", "json").lower() == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = None):
    """Get a structured logger"""
    return structlog.get_logger(name)


def log_performance(func_name: str):
    """Log duration and outcome of a plain or coroutine function.

    Exceptions are logged and re-raised; cancellation is not logged as a
    failure.
    """
    def decorator(func):
        logger = get_logger("performance")

        def _finish(started, error=None):
            duration_ms = round((time.perf_counter() - started) * 1000, 1)
            if error is None:
                logger.info("function_completed", function=func_name, duration_ms=duration_ms)
            else:
                logger.error("function_failed", function=func_name, duration_ms=duration_ms,
                             error_type=type(error).__name__, error=str(error))

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _finish(started, e)
                    raise
                _finish(started)
                return result
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _finish(started, e)
                raise
            _finish(started)
            return result
        return wrapper
    return decorator


def bind_request_context(request) -> str:
    """Start a fresh log context for one HTTP request and return its id"""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
    return request_id


def log_api_request(request, response=None, error=None, duration=None):
    """Log API requests and responses. Query strings are left out, they may carry keys."""
    logger = get_logger("api")
    log_data = {
        "method": request.method,
        "client_ip": request.client.host if request.client else "unknown",
    }

    if response is not None:
        logger.info("api_request_completed", status_code=response.status_code,
                    duration_ms=round(duration * 1000, 1) if duration is not None else None, **log_data)
    elif error is not None:
        logger.error("api_request_failed", error=str(error),
                     status_code=getattr(error, "status_code", 500), **log_data)
    else:
        logger.info("api_request_started", user_agent=request.headers.get("user-agent", "unknown"), **log_data)
