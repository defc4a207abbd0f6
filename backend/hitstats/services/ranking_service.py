import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import ColumnElement, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hitstats.core.urls import normalize_url
from hitstats.models.hit import Hit
from hitstats.models.stat import Stat, StatKind
from hitstats.schemas.common import BySubject, ByUrl, Identity, UserStatus
from hitstats.schemas.stats import FrequencyBucket, HitCounts
from hitstats.services.hit_service import period_clauses, user_status_clause
from hitstats.services.rollup_service import RollupService

logger = logging.getLogger(__name__)

# Free-text hit fields that can be grouped for frequency tables.
FREQUENCY_FIELDS = ("referrer", "query", "user_agent", "accept_language")


class RankingService:
    """Read-only queries over the rollups and the hit log.

    Every query takes a user status selecting the counter in use: all
    visitors, anonymous ones or identified ones.
    """

    def __init__(self, db: AsyncSession, base_path: str = ""):
        self.db = db
        self.base_path = base_path

    def _resolve(self, identity: Identity) -> tuple[StatKind, ColumnElement[bool]] | None:
        """Get the kind and the where clause matching one rollup, if valid."""
        if isinstance(identity, BySubject):
            return StatKind.RESOURCE, (
                (Stat.subject_kind == identity.kind) & (Stat.subject_id == identity.id)
            )
        if isinstance(identity, ByUrl):
            url = normalize_url(identity.url, self.base_path)
            if not url:
                return None
            return RollupService.kind_for_url(url), Stat.url == url
        raise TypeError(f"Unsupported identity: {identity!r}")

    async def get(self, identity: Identity) -> Stat | None:
        """Get the rollup of a page, a download or a resource."""
        resolved = self._resolve(identity)
        if resolved is None:
            return None
        kind, clause = resolved
        # Counters are incremented outside the ORM, so refresh loaded rows.
        result = await self.db.execute(
            select(Stat)
            .where(Stat.kind == kind, clause)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def total(self, identity: Identity, user_status: UserStatus = UserStatus.ALL) -> int:
        """Hits of one identity; 0 when it has never been hit."""
        resolved = self._resolve(identity)
        if resolved is None:
            return 0
        kind, clause = resolved
        column = getattr(Stat, user_status.column)
        result = await self.db.execute(select(column).where(Stat.kind == kind, clause).limit(1))
        return result.scalar_one_or_none() or 0

    async def position(
        self,
        identity: Identity,
        user_status: UserStatus = UserStatus.ALL,
        subject_kind: str | None = None,
    ) -> int:
        """Rank of one identity among the rollups of its kind, 1 being the most viewed.

        Rows with the same count share the same position: only the rows
        with strictly more hits are ahead. A resource ranks among all
        resources, or only among those of ``subject_kind`` when given.
        Returns 0 for unranked (never hit).
        """
        resolved = self._resolve(identity)
        if resolved is None:
            return 0
        kind, _ = resolved

        hits = await self.total(identity, user_status)
        if not hits:
            return 0

        column = getattr(Stat, user_status.column)
        stmt = select(func.count()).select_from(Stat).where(Stat.kind == kind, column > hits)
        if subject_kind and kind is StatKind.RESOURCE:
            stmt = stmt.where(Stat.subject_kind == subject_kind)
        result = await self.db.execute(stmt)
        return result.scalar_one() + 1

    def _viewed_query(
        self,
        kind: StatKind,
        user_status: UserStatus,
        subject_kind: str | None,
        filters: Sequence[ColumnElement[bool]],
        since: datetime | None,
        until: datetime | None,
    ):
        column = getattr(Stat, user_status.column)
        # Zero viewed rows are never listed. Periods apply to the last hit.
        stmt = (
            select(Stat)
            .where(
                Stat.kind == kind,
                column > 0,
                *filters,
                *period_clauses(Stat.modified_at, since, until),
            )
            .execution_options(populate_existing=True)
        )
        if subject_kind:
            stmt = stmt.where(Stat.subject_kind == subject_kind)
        return stmt, column

    async def top_n(
        self,
        kind: StatKind,
        user_status: UserStatus = UserStatus.ALL,
        limit: int = 10,
        offset: int = 0,
        subject_kind: str | None = None,
        filters: Sequence[ColumnElement[bool]] = (),
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[Stat]:
        """Most viewed rollups of a kind.

        Ex-aequo rows are ordered by last modification, oldest first: the
        row that reached the count first keeps the better rank.
        """
        stmt, column = self._viewed_query(
            kind, user_status, subject_kind, filters, since, until
        )
        stmt = stmt.order_by(column.desc(), Stat.modified_at.asc(), Stat.id.asc())
        result = await self.db.execute(stmt.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def last_viewed(
        self,
        kind: StatKind,
        user_status: UserStatus = UserStatus.ALL,
        limit: int = 10,
        offset: int = 0,
        subject_kind: str | None = None,
        filters: Sequence[ColumnElement[bool]] = (),
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[Stat]:
        """Rollups of a kind, most recently hit first."""
        stmt, _ = self._viewed_query(
            kind, user_status, subject_kind, filters, since, until
        )
        stmt = stmt.order_by(Stat.modified_at.desc(), Stat.id.desc())
        result = await self.db.execute(stmt.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def total_kind(
        self,
        kind: StatKind,
        user_status: UserStatus = UserStatus.ALL,
        subject_kind: str | None = None,
    ) -> int:
        """Sum of the hits of all rollups of a kind (all items, all downloads...)."""
        column = getattr(Stat, user_status.column)
        stmt = select(func.coalesce(func.sum(column), 0)).where(Stat.kind == kind)
        if subject_kind:
            stmt = stmt.where(Stat.subject_kind == subject_kind)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def kind_counts(self, kind: StatKind) -> HitCounts:
        """Sums of the three counters for a kind."""
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(Stat.hits), 0),
                func.coalesce(func.sum(Stat.hits_anonymous), 0),
                func.coalesce(func.sum(Stat.hits_identified), 0),
            ).where(Stat.kind == kind)
        )
        total, anonymous, identified = result.one()
        return HitCounts(total=total, anonymous=anonymous, identified=identified)

    @staticmethod
    def _field_column(field: str):
        if field not in FREQUENCY_FIELDS:
            raise ValueError(f"Unsupported field for frequencies: {field}")
        return getattr(Hit, field)

    async def most_frequent(
        self,
        field: str,
        user_status: UserStatus = UserStatus.ALL,
        limit: int = 10,
        offset: int = 0,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[FrequencyBucket]:
        """Most frequent non-empty values of a hit field.

        Ex-aequo values are ordered by their first occurrence.
        """
        column = self._field_column(field)
        hits = func.count().label("hits")
        stmt = (
            select(column, hits)
            .where(column != "", *period_clauses(Hit.created_at, since, until))
            .group_by(column)
        )
        clause = user_status_clause(user_status)
        if clause is not None:
            stmt = stmt.where(clause)
        stmt = stmt.order_by(
            hits.desc(), func.min(Hit.created_at).asc(), func.min(Hit.id).asc()
        )

        result = await self.db.execute(stmt.limit(limit).offset(offset))
        return [FrequencyBucket(value=row[0], hits=row[1]) for row in result.all()]

    async def count_distinct(
        self,
        field: str,
        user_status: UserStatus = UserStatus.ALL,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        """Number of distinct non-empty values of a hit field."""
        column = self._field_column(field)
        stmt = select(func.count(distinct(column))).where(
            column != "", *period_clauses(Hit.created_at, since, until)
        )
        clause = user_status_clause(user_status)
        if clause is not None:
            stmt = stmt.where(clause)
        result = await self.db.execute(stmt)
        return result.scalar_one()
