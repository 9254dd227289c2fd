"""Admin-token middleware for the settings API."""

import logging
import secrets
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container

logger = logging.getLogger(__name__)

# Only the settings API is protected; subscription links carry the user id
PROTECTED_PREFIXES = (
    "/api/",
)


class AuthMiddleware(BaseHTTPMiddleware):
    """Require ``ADMIN_TOKEN`` (bearer header or cookie) on protected routes."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not self._is_protected_path(path):
            return await call_next(request)

        settings = container.settings()

        # Token unset: settings API is open (local deployments)
        if not settings.admin_token:
            return await call_next(request)

        token = self._extract_token(request, settings.admin_cookie_name)
        if not token:
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated"}
            )

        if not secrets.compare_digest(token, settings.admin_token):
            logger.warning("Rejected settings API request with invalid token: %s", path)
            return JSONResponse(
                status_code=401,
                content={"detail": "Unauthorized or expired session!"}
            )

        return await call_next(request)

    def _is_protected_path(self, path: str) -> bool:
        return path.startswith(PROTECTED_PREFIXES)

    def _extract_token(self, request: Request, cookie_name: str) -> Optional[str]:
        header = request.headers.get("authorization", "")
        if header.lower().startswith("bearer "):
            return header[7:].strip()
        return request.cookies.get(cookie_name)
