from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hitstats.core.config import Settings, get_settings
from hitstats.core.privacy import client_ip
from hitstats.core.urls import normalize_url
from hitstats.db.session import get_db
from hitstats.schemas.common import BySubject
from hitstats.services.hit_service import HitService
from hitstats.services.ranking_service import RankingService


def request_context_facts(request: Request) -> dict:
    """Collect the client facts of the current request for a hit."""
    headers = request.headers
    peer = request.client.host if request.client else None
    return {
        "referrer": headers.get("referer", ""),
        "user_agent": headers.get("user-agent", ""),
        "accept_language": headers.get("accept-language", ""),
        "ip": client_ip(headers, peer),
    }


def is_admin_url(url: str, settings: Settings) -> bool:
    """Check if a tracked url belongs to the back-office."""
    path = normalize_url(url, settings.BASE_PATH)
    prefix = settings.ADMIN_PATH_PREFIX.rstrip("/")
    return bool(prefix) and (path == prefix or path.startswith(prefix + "/"))


def subject_or_none(subject_kind: str | None, subject_id: int | None) -> BySubject | None:
    if subject_kind and subject_id:
        return BySubject(kind=subject_kind, id=subject_id)
    return None


async def get_hit_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> HitService:
    return HitService(db, settings)


async def get_ranking_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RankingService:
    return RankingService(db, base_path=settings.BASE_PATH)
