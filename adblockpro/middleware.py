import uuid
import time
import os
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from adblockpro.logging_config import get_logger
from adblockpro.metrics import observe_request

logger = get_logger("adblockpro")


def error_response(status_code: int, message, errors=None, headers=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class TimingAccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.time()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        finally:
            elapsed = time.time() - start
            route = request.scope.get("route")
            # label by route template so /api/admin/users/{user_id} stays one series
            path_template = getattr(route, "path", None) or "unmatched"
            observe_request(request.method, path_template, status, elapsed)
            logger.info(
                "",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "path": request.url.path,
                    "method": request.method,
                    "status": status,
                    "latency_ms": int(elapsed * 1000),
                    "user_id": getattr(request.state, "user_id", None),
                }
            )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if os.getenv("ENABLE_HSTS", "true").lower() == "true":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        csp = os.getenv("CSP", "default-src 'self'; img-src 'self' data:; script-src 'self'; style-src 'self' 'unsafe-inline'")
        response.headers["Content-Security-Policy"] = csp
        return response


class ErrorEnvelopeMiddleware(BaseHTTPMiddleware):
    """Last line of defence: anything a route did not handle becomes a 500 envelope."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            return error_response(500, "Internal server error")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {message}",
            extra={"request_id": getattr(request.state, "request_id", None), "path": request.url.path},
        )
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        msg = err.get("msg", "Invalid value")
        # pydantic prefixes messages raised from validators
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.append({"field": field, "message": msg})
    message = errors[0]["message"] if errors else "Validation failed"
    return error_response(400, message, errors=errors)


def install_error_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
