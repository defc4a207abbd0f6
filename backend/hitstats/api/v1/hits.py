import logging
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Request

from hitstats.api.deps import get_hit_service, is_admin_url, request_context_facts
from hitstats.core.config import Settings, get_settings, settings
from hitstats.core.limiter import limiter
from hitstats.schemas.hit import HitIn, HitRecordedResponse, RequestContext
from hitstats.services.hit_service import HitService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=HitRecordedResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
async def record_hit(
    request: Request,
    data: HitIn,
    service: HitService = Depends(get_hit_service),
    config: Settings = Depends(get_settings),
):
    """Tracking beacon: record a view of the page at ``url``.

    Referrer, user agent, languages and client address come from the
    request headers. Skipped requests (robots, admin pages, foreign urls)
    are not errors.
    """
    context = RequestContext(
        url=data.url,
        query=urlsplit(data.url).query,
        user_id=data.user_id,
        is_admin=is_admin_url(data.url, config),
        subject=data.subject(),
        **request_context_facts(request),
    )
    hit_id = await service.record_hit(context)
    if hit_id is None:
        logger.debug("Beacon for %s not recorded", data.url)
    return HitRecordedResponse(recorded=hit_id is not None, hit_id=hit_id)
