import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hitstats.core.exceptions import ServiceUnavailableError
from hitstats.db.session import get_db
from hitstats.models import Hit, Stat
from hitstats.schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()

# Tables the recorder writes to on every tracked request.
REQUIRED_MODELS = (Hit, Stat)


@router.get("/", response_model=MessageResponse)
async def liveness():
    return {"message": "healthy"}


@router.get("/ready", response_model=MessageResponse)
async def readiness(db: AsyncSession = Depends(get_db)):
    """Ready once the hit log and the rollups can both be queried."""
    for model in REQUIRED_MODELS:
        try:
            await db.execute(select(model.id).limit(1))
        except Exception:
            # The driver message may hold hosts or credentials: log the table only.
            logger.error("Readiness check failed: table %s unavailable", model.__tablename__)
            raise ServiceUnavailableError(detail="Service not ready") from None
    return {"message": "ready"}
