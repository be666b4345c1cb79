# portal/errors.py
"""
Error taxonomy for the portal.

Authentication and profile errors fail closed: the caller ends up
unauthenticated. Per-action errors leave prior state unchanged.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PortalError(Exception):
    status_code = 500
    default_detail = "Portal error"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationFailed(PortalError):
    status_code = 401
    default_detail = "Invalid email or password."


class ProfileResolutionFailed(PortalError):
    status_code = 401
    default_detail = "Could not resolve your profile. Please login again."


class AuthorizationDenied(PortalError):
    status_code = 403
    default_detail = "You don't have permission to access this resource."


class UpstreamRequestFailed(PortalError):
    status_code = 502
    default_detail = "Upstream request failed."


class IdentityNotReady(PortalError):
    status_code = 503
    default_detail = "Session is still being resolved."


async def _portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    headers = {"Retry-After": "1"} if isinstance(exc, IdentityNotReady) else None
    return JSONResponse(
        {"error": type(exc).__name__, "detail": exc.detail},
        status_code=exc.status_code,
        headers=headers,
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(PortalError, _portal_error_handler)
