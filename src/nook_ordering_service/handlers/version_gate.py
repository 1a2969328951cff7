"""Middleware rejecting API calls from app versions older than the minimum supported one."""

import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from nook_ordering_service.errors import ReturnCode
from nook_ordering_service.services.versioning import is_version_valid

logger = logging.getLogger(__name__)

APP_VERSION_HEADER = "app-version"

# Reachable without the header: probes and the version check itself
EXEMPT_PATHS = frozenset({"/", "/api/health", "/api/version-check"})

# Email links open in a browser, and the reset form posts back from that page;
# both methods are gated by the emailed token instead
EXEMPT_BROWSER_PATHS = frozenset({"/api/auth/verify-email", "/api/auth/reset-password"})


def is_exempt(path: str) -> bool:
    return path in EXEMPT_PATHS or path in EXEMPT_BROWSER_PATHS or not path.startswith("/api")


def create_version_gate(
    required_version: str,
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    """Create an HTTP middleware enforcing the ``app-version`` header.

    Args:
        required_version: Minimum supported app version

    Returns:
        Middleware function for ``app.middleware("http")``
    """

    async def version_gate(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if is_exempt(request.url.path):
            return await call_next(request)

        current_version = request.headers.get(APP_VERSION_HEADER)
        if not current_version:
            return JSONResponse(
                status_code=400,
                content={
                    "return_code": ReturnCode.MISSING_APP_VERSION.value,
                    "message": "App version header is required",
                },
            )

        if not is_version_valid(current_version, required_version):
            logger.info(f"Rejected app version {current_version} (required {required_version})")
            return JSONResponse(
                status_code=426,
                content={
                    "return_code": ReturnCode.APP_UPDATE_REQUIRED.value,
                    "message": "Please update your app to continue using this service",
                    "required_version": required_version,
                    "current_version": current_version,
                },
            )

        return await call_next(request)

    return version_gate
