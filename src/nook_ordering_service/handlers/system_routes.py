"""Service endpoints: banner, health, app version check and store information."""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from nook_ordering_service.errors import ReturnCode
from nook_ordering_service.handlers.responses import success
from nook_ordering_service.models.api_models import VersionCheckRequest
from nook_ordering_service.services.versioning import is_version_valid

logger = logging.getLogger(__name__)

SERVICE_NAME = "nook-api"
API_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    database: str
    timestamp: datetime


def _now() -> datetime:
    return datetime.now(UTC)


def register_system_routes(app: FastAPI) -> None:
    """Register the service endpoints on the application."""

    @app.get("/", tags=["Health"])
    async def root() -> dict:
        return {
            "message": f"{app.state.business_name} API Server",
            "status": "Running",
            "version": API_VERSION,
            "timestamp": _now().isoformat(),
        }

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> JSONResponse:
        """Health check endpoint including a database round trip.

        Returns:
            200 when the database answers, 500 otherwise
        """
        connected = app.state.database.ping()
        response = HealthResponse(
            status="healthy" if connected else "unhealthy",
            service=SERVICE_NAME,
            database="connected" if connected else "disconnected",
            timestamp=_now(),
        )
        return JSONResponse(
            status_code=200 if connected else 500, content=response.model_dump(mode="json")
        )

    @app.post("/api/version-check", tags=["Health"])
    async def version_check(body: VersionCheckRequest) -> JSONResponse:
        """Tell the app whether it must be updated before use."""
        required_version = app.state.required_app_version
        if not body.app_version:
            return JSONResponse(
                status_code=400,
                content={
                    "return_code": ReturnCode.MISSING_APP_VERSION.value,
                    "message": "App version is required",
                },
            )

        if not is_version_valid(body.app_version, required_version):
            return JSONResponse(
                status_code=200,
                content={
                    "return_code": ReturnCode.APP_UPDATE_REQUIRED.value,
                    "message": "Please update your app to continue using this service",
                    "required_version": required_version,
                    "current_version": body.app_version,
                },
            )

        return success(
            "App version is up to date",
            current_version=body.app_version,
            required_version=required_version,
        )

    @app.get("/api/store-info", tags=["Store"])
    async def get_store_info() -> JSONResponse:
        store_info = await app.state.store_info_service.get_all()
        return success("Store information retrieved successfully", store_info=store_info)

    @app.get("/api/store-info/{key}", tags=["Store"])
    async def get_store_info_entry(key: str) -> JSONResponse:
        entry = await app.state.store_info_service.get(key)
        return success(
            "Store information retrieved successfully",
            key=entry.key,
            value=entry.value,
            description=entry.description,
        )
