"""Response hardening for an API that serves user-uploaded files.

Learn: Two kinds of response leave this app. JSON from the API, and raw
image bytes a user uploaded. Both get the baseline headers below. The
private prefixes (tokens, per-user images) are also marked no-store so
no shared cache keeps a copy. Uploaded files are the risky part: an
"image/svg+xml" upload is a document that can run script, so anything
that isn't JSON on those prefixes gets a Content-Security-Policy that
sandboxes it and forbids loading anything at all.

HSTS is only sent over HTTPS; sending it on plain HTTP is ignored by
browsers and confuses local development.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

BASELINE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

PRIVATE_CACHE_CONTROL = "private, no-store"
UPLOAD_CSP = "default-src 'none'; sandbox"
HSTS = "max-age=31536000; includeSubDomains"

DEFAULT_PRIVATE_PREFIXES = ("/api/auth", "/api/dogs")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline headers everywhere, plus cache and CSP rules on private paths."""

    def __init__(
        self,
        app: ASGIApp,
        private_prefixes: tuple[str, ...] = DEFAULT_PRIVATE_PREFIXES,
    ):
        super().__init__(app)
        self.private_prefixes = private_prefixes

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(BASELINE_HEADERS)

        if request.url.path.startswith(self.private_prefixes):
            response.headers.setdefault("Cache-Control", PRIVATE_CACHE_CONTROL)
            content_type = response.headers.get("content-type", "")
            if not content_type.startswith("application/json"):
                response.headers["Content-Security-Policy"] = UPLOAD_CSP

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS
        return response
