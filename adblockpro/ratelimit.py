"""Per-IP request limit shared by every route (slowapi).

Routes that must never be throttled, such as health checks and the Stripe
webhook, are marked with ``@limiter.exempt``.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from adblockpro.config import RATE_LIMIT_ENABLED, RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_MINUTES
from adblockpro.logging_config import get_logger

logger = get_logger("adblockpro.ratelimit")

DEFAULT_LIMIT = f"{RATE_LIMIT_MAX_REQUESTS} per {RATE_LIMIT_WINDOW_MINUTES} minutes"
RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def build_limiter(limit: str = DEFAULT_LIMIT, enabled: bool = RATE_LIMIT_ENABLED) -> Limiter:
    return Limiter(key_func=get_remote_address, default_limits=[limit], enabled=enabled)


limiter = build_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(
        "Rate limit exceeded",
        extra={"path": request.url.path, "method": request.method, "status": 429},
    )
    return JSONResponse(status_code=429, content={"success": False, "message": RATE_LIMIT_MESSAGE})


def install_rate_limiting(app: FastAPI, app_limiter: Limiter = limiter):
    app.state.limiter = app_limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    if app_limiter.enabled:
        logger.info(f"Rate limiting enabled: {DEFAULT_LIMIT}")
    else:
        logger.info("Rate limiting disabled")
