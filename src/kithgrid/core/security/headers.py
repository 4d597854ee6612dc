"""Response hardening headers."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

# Relaxed enough for the Swagger UI bundle served from jsDelivr
SWAGGER_CSP = "; ".join(
    [
        "default-src 'self'",
        "script-src 'self' 'unsafe-inline' cdn.jsdelivr.net",
        "style-src 'self' 'unsafe-inline' cdn.jsdelivr.net",
        "img-src 'self' data: cdn.jsdelivr.net",
        "frame-ancestors 'none'",
    ]
)

# Session tokens and invitation lookups live under the API prefix
NO_STORE_PREFIX = "/api/"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, content_security_policy: str | None = None):
        super().__init__(app)
        self.static_headers = {
            "Content-Security-Policy": content_security_policy or SWAGGER_CSP,
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(self.static_headers)
        if request.url.path.startswith(NO_STORE_PREFIX):
            response.headers["Cache-Control"] = "no-store"
        return response
