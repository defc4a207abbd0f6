from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query

from hitstats.api.deps import get_hit_service, get_ranking_service, subject_or_none
from hitstats.core.config import Settings, get_settings
from hitstats.core.exceptions import BadRequestError, NotFoundError
from hitstats.core.periods import summary_periods
from hitstats.models.base import utcnow
from hitstats.models.stat import StatKind
from hitstats.schemas.common import BySubject, ByUrl, Identity, UserStatus
from hitstats.schemas.stats import (
    CountResponse,
    FrequencyResponse,
    HitCounts,
    StatResponse,
    StatsListResponse,
    SummaryResponse,
)
from hitstats.services.hit_service import HitService
from hitstats.services.ranking_service import FREQUENCY_FIELDS, RankingService

router = APIRouter()

FrequencyField = Literal["referrer", "query", "user_agent", "accept_language"]


def _user_status(value: str | None, settings: Settings) -> UserStatus:
    """Parse the requested user status, falling back on the configured default."""
    if value is None:
        return settings.DEFAULT_USER_STATUS
    return UserStatus.parse(value)


def _identity(url: str | None, subject_kind: str | None, subject_id: int | None) -> Identity:
    subject = subject_or_none(subject_kind, subject_id)
    if subject is not None:
        return subject
    if url:
        return ByUrl(url=url)
    raise BadRequestError("Either url or subject_kind and subject_id are required")


@router.get("/total", response_model=CountResponse)
async def get_total(
    url: str | None = Query(None),
    subject_kind: str | None = Query(None, max_length=190),
    subject_id: int | None = Query(None, gt=0),
    user_status: str | None = Query(None),
    service: RankingService = Depends(get_ranking_service),
    settings: Settings = Depends(get_settings),
):
    """Total hits of a page, a download or a resource (0 if never viewed)."""
    status = _user_status(user_status, settings)
    identity = _identity(url, subject_kind, subject_id)
    return CountResponse(value=await service.total(identity, status), user_status=status)


@router.get("/rollup", response_model=StatResponse)
async def get_rollup(
    url: str | None = Query(None),
    subject_kind: str | None = Query(None, max_length=190),
    subject_id: int | None = Query(None, gt=0),
    service: RankingService = Depends(get_ranking_service),
):
    """Full rollup (all three counters) of a page, a download or a resource."""
    stat = await service.get(_identity(url, subject_kind, subject_id))
    if stat is None:
        raise NotFoundError("Never viewed")
    return stat


@router.get("/position", response_model=CountResponse)
async def get_position(
    url: str | None = Query(None),
    subject_kind: str | None = Query(None, max_length=190),
    subject_id: int | None = Query(None, gt=0),
    user_status: str | None = Query(None),
    within_subject_kind: bool = Query(False),
    service: RankingService = Depends(get_ranking_service),
    settings: Settings = Depends(get_settings),
):
    """Position in the most viewed ranking (0 if never viewed).

    A resource is ranked among all resources, or only among resources of
    its own subject kind with ``within_subject_kind``.
    """
    status = _user_status(user_status, settings)
    identity = _identity(url, subject_kind, subject_id)
    scope = identity.kind if within_subject_kind and isinstance(identity, BySubject) else None
    value = await service.position(identity, status, subject_kind=scope)
    return CountResponse(value=value, user_status=status)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    user_status: str | None = Query(None),
    service: RankingService = Depends(get_ranking_service),
    hit_service: HitService = Depends(get_hit_service),
    settings: Settings = Depends(get_settings),
):
    """Hit counts by visitor status, kind and period, with the top values of each field."""
    status = _user_status(user_status, settings)
    periods: dict[str, dict[str, HitCounts]] = {}
    for group, ranges in summary_periods(utcnow()).items():
        periods[group] = {}
        for name, (since, until) in ranges.items():
            periods[group][name] = await hit_service.counts_by_status(since, until)
    by_kind = {kind: await service.kind_counts(kind) for kind in StatKind}
    most_frequent = {
        field: await service.most_frequent(field, status, limit=10) for field in FREQUENCY_FIELDS
    }
    return SummaryResponse(
        hits=await hit_service.counts_by_status(),
        periods=periods,
        by_kind=by_kind,
        most_frequent=most_frequent,
        user_status=status,
    )


@router.get("/fields/{field}", response_model=FrequencyResponse)
async def get_field_frequencies(
    field: FrequencyField,
    user_status: str | None = Query(None),
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    service: RankingService = Depends(get_ranking_service),
    hit_service: HitService = Depends(get_hit_service),
    settings: Settings = Depends(get_settings),
):
    """Most frequent values of a hit field: "N distinct values out of M hits"."""
    status = _user_status(user_status, settings)
    data = await service.most_frequent(
        field, status, limit=limit or settings.PER_PAGE, offset=offset, since=since, until=until
    )
    return FrequencyResponse(
        field=field,
        data=data,
        distinct=await service.count_distinct(field, status, since=since, until=until),
        total_hits=await hit_service.count(status, since=since, until=until),
        user_status=status,
    )


@router.get("/{kind}/most-viewed", response_model=StatsListResponse)
async def get_most_viewed(
    kind: StatKind,
    user_status: str | None = Query(None),
    subject_kind: str | None = Query(None, max_length=190),
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    service: RankingService = Depends(get_ranking_service),
    settings: Settings = Depends(get_settings),
):
    """Most viewed pages, resources or downloads, optionally last hit within a period."""
    status = _user_status(user_status, settings)
    stats = await service.top_n(
        kind,
        status,
        limit=limit or settings.PER_PAGE,
        offset=offset,
        subject_kind=subject_kind,
        since=since,
        until=until,
    )
    return StatsListResponse(
        data=[StatResponse.model_validate(stat) for stat in stats], user_status=status
    )


@router.get("/{kind}/last-viewed", response_model=StatsListResponse)
async def get_last_viewed(
    kind: StatKind,
    user_status: str | None = Query(None),
    subject_kind: str | None = Query(None, max_length=190),
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    service: RankingService = Depends(get_ranking_service),
    settings: Settings = Depends(get_settings),
):
    """Most recently viewed pages, resources or downloads."""
    status = _user_status(user_status, settings)
    stats = await service.last_viewed(
        kind,
        status,
        limit=limit or settings.PER_PAGE,
        offset=offset,
        subject_kind=subject_kind,
        since=since,
        until=until,
    )
    return StatsListResponse(
        data=[StatResponse.model_validate(stat) for stat in stats], user_status=status
    )
