"""
CORS middleware for the dashboard and the public tracking page.

A single configured origin (ALLOWED_ORIGIN, default "*") is echoed on every
response. Preflight OPTIONS requests are answered with 200 before routing and
authentication.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from webtracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_METHODS = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
DEFAULT_HEADERS = ["Content-Type", "Authorization"]


class CORSMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        allowed_origin: str = "*",
        allow_methods: list[str] | None = None,
        allow_headers: list[str] | None = None,
    ):
        super().__init__(app)
        self.allowed_origin = allowed_origin or "*"
        self.allow_methods = allow_methods or DEFAULT_METHODS
        self.allow_headers = allow_headers or DEFAULT_HEADERS

        logger.info("CORS middleware initialized", allowed_origin=self.allowed_origin)

    def _cors_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allowed_origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
        }

    async def dispatch(self, request, call_next):
        if request.method == "OPTIONS":
            logger.debug("CORS preflight request handled", path=request.url.path)
            return Response(status_code=200, headers=self._cors_headers())

        response = await call_next(request)
        response.headers.update(self._cors_headers())
        return response
