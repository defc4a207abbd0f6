from datetime import datetime

from pydantic import BaseModel, ConfigDict

from hitstats.models.stat import StatKind
from hitstats.schemas.common import UserStatus


class StatResponse(BaseModel):
    """A rollup row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: StatKind
    url: str | None
    subject_kind: str | None
    subject_id: int | None
    hits: int
    hits_anonymous: int
    hits_identified: int
    created_at: datetime
    modified_at: datetime


class StatsListResponse(BaseModel):
    """Most or last viewed rows of one kind."""

    data: list[StatResponse]
    user_status: UserStatus


class CountResponse(BaseModel):
    """Total hits or ranking position of one identity (0 = none / unranked)."""

    value: int
    user_status: UserStatus


class FrequencyBucket(BaseModel):
    """A value of a free-text hit field and the number of hits carrying it."""

    value: str
    hits: int


class FrequencyResponse(BaseModel):
    """Most frequent values of a field: "N distinct values out of M hits"."""

    field: str
    data: list[FrequencyBucket]
    distinct: int
    total_hits: int
    user_status: UserStatus


class HitCounts(BaseModel):
    total: int
    anonymous: int
    identified: int


class SummaryResponse(BaseModel):
    """Overview of the collected statistics."""

    hits: HitCounts
    # current / history / rolling -> period name -> counts
    periods: dict[str, dict[str, HitCounts]]
    by_kind: dict[StatKind, HitCounts]
    most_frequent: dict[str, list[FrequencyBucket]]
    user_status: UserStatus
