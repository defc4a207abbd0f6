from typing import Literal

from fastapi import APIRouter, Depends, Query, Request

from hitstats.api.deps import get_hit_service, request_context_facts
from hitstats.core.urls import download_url
from hitstats.schemas.hit import HitRecordedResponse, RequestContext
from hitstats.services.hit_service import HitService

router = APIRouter()


@router.post("/{storage_kind}/{filename:path}", response_model=HitRecordedResponse)
async def record_download(
    request: Request,
    storage_kind: Literal["original", "large"],
    filename: str,
    media_id: int | None = Query(None, gt=0),
    user_id: int = Query(0, ge=0),
    service: HitService = Depends(get_hit_service),
):
    """Record a direct download, called by the file delivery before streaming."""
    context = RequestContext(
        url=download_url(storage_kind, filename),
        user_id=user_id,
        **request_context_facts(request),
    )
    hit_id = await service.record_download(storage_kind, filename, media_id, context)
    return HitRecordedResponse(recorded=hit_id is not None, hit_id=hit_id)
