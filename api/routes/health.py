"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from connectors.erp_base import ERPClient, ERPConnectionStatus, create_client
from connectors.mkg import MkgApiError, MkgConfig, MkgConfigError
from core.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str
    services: Dict[str, str]


class ERPHealthResponse(BaseModel):
    """Result of an ERP connection self-test."""
    success: bool
    status: str
    message: str
    latency_ms: Optional[float] = None


def get_erp_client() -> ERPClient:
    """ERP client built from environment configuration."""
    try:
        return create_client(MkgConfig.from_env())
    except MkgConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION,
        services={
            "api": "up",
            "erp": "see /health/erp",
        }
    )


@router.get("/health/erp", response_model=ERPHealthResponse)
async def erp_health_check(
    response: Response,
    client: ERPClient = Depends(get_erp_client),
) -> ERPHealthResponse:
    """Log in to MKG and run a cheap query."""
    start = datetime.now(timezone.utc)
    try:
        async with client:
            status = await client.test_connection()
    except MkgApiError as e:
        logger.warning(f"ERP health check failed: {e}")
        status = ERPConnectionStatus.FAILED
    latency_ms = (datetime.now(timezone.utc) - start).total_seconds() * 1000

    success = status == ERPConnectionStatus.CONNECTED
    if not success:
        response.status_code = 503
    return ERPHealthResponse(
        success=success,
        status=status.value,
        message="Connection successful" if success else "MKG connection test failed",
        latency_ms=latency_ms,
    )


@router.get("/ready")
async def readiness_check() -> Dict[str, str]:
    """Readiness probe for Kubernetes."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check(response: Response) -> Dict[str, str]:
    """Liveness probe for Kubernetes."""
    return {"status": "alive"}
