"""
Rate limits for the upload and generation endpoints (slowapi, keyed by client IP)
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger()

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() not in ("0", "false", "no")
AI_GENERATION_RATE_LIMIT = os.getenv("AI_GENERATION_RATE_LIMIT", "5/minute")
GENERAL_API_RATE_LIMIT = os.getenv("GENERAL_API_RATE_LIMIT", "60/minute")

# Create limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000/hour", "100/minute"],
    enabled=RATE_LIMIT_ENABLED,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit exceeded handler"""
    client = request.client.host if request.client else "unknown"
    logger.warning("rate_limit_exceeded", client_ip=client, limit=str(exc.detail))
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}. Please try again later."},
    )


def ai_generation_limit():
    """Each call fans out into one completion per chunk, so this stays tight"""
    return limiter.limit(AI_GENERATION_RATE_LIMIT)


def general_api_limit():
    """Rate limit for general API endpoints"""
    return limiter.limit(GENERAL_API_RATE_LIMIT)
