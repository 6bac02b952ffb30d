from fastapi import APIRouter

from app.core.config import settings
from app.utils.time_utils import Datetime

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
        "environment": settings.ENVIRONMENT,
        "timestamp": Datetime.to_iso_string(Datetime.now()),
    }
