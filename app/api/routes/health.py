from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.services.health_service import HealthService

router = APIRouter()

health_service = HealthService()


@router.get("/health")
async def health_check():
    """
    Database and Fathom API reachability.

    503 when the database is down; a Fathom outage only marks the service
    degraded since stored transcripts stay readable.
    """
    health = await health_service.full_health()
    status_code = 200 if health["database"]["reachable"] else 503
    return JSONResponse(status_code=status_code, content=health)
