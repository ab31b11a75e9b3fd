"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from pricecrawler.schemas import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Return service liveness. Touches no sources and no cache."""
    return HealthCheckResponse(status="OK", timestamp=datetime.now(timezone.utc))
