"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from dealdesk.config import Settings, get_settings
from dealdesk.deps import get_gateway
from dealdesk.middleware.exceptions import GatewayError
from dealdesk.services.gateway import DealApiGateway

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)):
    """Lightweight health check for load balancer (no upstream check).

    Returns 200 OK if the service is running.
    """
    return {
        "status": "ok",
        "service": "dealdesk",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(gateway: DealApiGateway = Depends(get_gateway)):
    """Readiness check: the deal API must answer GET /deals.

    Returns 503 with the upstream message when it does not.
    """
    checks = {
        "service": "ok",
        "deal_api": "unknown",
    }
    overall_healthy = True

    try:
        await gateway.list_deals()
        checks["deal_api"] = "ok"
    except GatewayError as e:
        checks["deal_api"] = f"error: {e.message[:100]}"
        overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "dealdesk",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
