"""
Health check endpoints.

- /health: liveness (is the process running?)
- /health/ready: readiness (is configuration complete, did the startup
  CORS reconciliation succeed?)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ..dependencies import CorsStatusDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok", "error" or "skipped"
    error: Optional[str] = None


class ReadinessResponse(BaseModel):
    status: str  # "ready" or "not_ready"
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness check. Doesn't touch the object store."""
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(
    settings: SettingsDep,
    cors_status: CorsStatusDep,
    response: Response,
) -> ReadinessResponse:
    checks: list[ReadinessCheck] = []

    missing = settings.validate_required_fields()
    if missing:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing)}",
        ))
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    if cors_status.state == "failed":
        checks.append(ReadinessCheck(name="bucket_cors", status="error", error=cors_status.detail))
    else:
        checks.append(ReadinessCheck(name="bucket_cors", status=cors_status.state))

    all_ok = all(check.status != "error" for check in checks)
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={"checks": [c.model_dump() for c in checks]},
        )

    return ReadinessResponse(status="ready" if all_ok else "not_ready", checks=checks)
