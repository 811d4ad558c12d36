import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .application.ports.rate_limiter import RateLimiter
from .exceptions import APIException, error_response

logger = logging.getLogger(__name__)

REQUEST_TOO_LARGE = "Request entity too large"


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Coarse per-IP fixed-window limit applied to every route."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter, max_requests: int, window_seconds: int):
        super().__init__(app)
        self.limiter = limiter
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next):
        ip = client_ip(request)
        if not await self.limiter.allow(f"ip:{ip}", self.max_requests, self.window_seconds):
            logger.warning(f"Rate limit exceeded for IP: {ip}")
            return error_response(429, "Too many requests, please try again later.")
        return await call_next(request)


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Add security headers
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "0"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cross-Origin-Resource-Policy"] = "same-origin"

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        logger.info(f"Request: {request.method} {request.url.path} from {client_ip(request)}")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(f"Response: {response.status_code} in {duration:.3f}s")

        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error: {str(e)}", exc_info=True)
            if self.debug:
                return error_response(500, f"Internal error: {str(e)}")
            return error_response(500, "Internal error")


class RequestSizeLimitMiddleware:
    """Caps request bodies at ``max_body_size`` bytes.

    A declared Content-Length is checked up front; chunked bodies are counted
    as they are received and rejected once the cap is crossed.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                await error_response(400, "Invalid Content-Length header")(scope, receive, send)
                return
            if size > self.max_body_size:
                await error_response(413, REQUEST_TOO_LARGE)(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise APIException(status_code=413, detail=REQUEST_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)
