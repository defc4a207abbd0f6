import logging
from typing import Any

from sqlalchemy import ColumnElement, and_, insert, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hitstats.core.exceptions import RollupConflictError
from hitstats.core.urls import is_download
from hitstats.models.base import utcnow
from hitstats.models.hit import Hit
from hitstats.models.stat import Stat, StatKind

logger = logging.getLogger(__name__)

# Dialects offering INSERT ... ON CONFLICT DO UPDATE.
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class RollupService:
    """Keeps the Stat rows in step with the recorded hits.

    Each hit increments the rollup of its url (kind "page" or "download")
    and, when the page is dedicated to a resource, the rollup of that
    resource too. Creation and increment are a single statement per
    identity, so concurrent hits neither lose an increment nor create a
    duplicate row.
    """

    def __init__(self, db: AsyncSession, use_upsert: bool | None = None):
        self.db = db
        self._use_upsert = use_upsert

    @staticmethod
    def kind_for_url(url: str) -> StatKind:
        return StatKind.DOWNLOAD if is_download(url) else StatKind.PAGE

    async def apply_hit(self, hit: Hit) -> None:
        """Create or increment the rollups concerned by a just-recorded hit."""
        identified = hit.is_identified
        kind = self.kind_for_url(hit.url)
        await self._increment(
            {"kind": kind, "url": hit.url},
            conflict_columns=("kind", "url"),
            identified=identified,
        )

        if hit.has_subject:
            await self._increment(
                {
                    "kind": StatKind.RESOURCE,
                    "subject_kind": hit.subject_kind,
                    "subject_id": hit.subject_id,
                },
                conflict_columns=("kind", "subject_kind", "subject_id"),
                identified=identified,
            )

    def _upsert_insert(self):
        dialect = self.db.get_bind().dialect.name
        if self._use_upsert is False:
            return None
        return _UPSERT_INSERTS.get(dialect)

    async def _increment(
        self,
        identity: dict[str, Any],
        conflict_columns: tuple[str, ...],
        identified: bool,
    ) -> None:
        status_column = "hits_identified" if identified else "hits_anonymous"
        dialect_insert = self._upsert_insert()
        if dialect_insert is not None:
            await self._upsert(dialect_insert, identity, conflict_columns, status_column)
        else:
            await self._update_or_insert(identity, status_column)

    async def _upsert(
        self,
        dialect_insert,
        identity: dict[str, Any],
        conflict_columns: tuple[str, ...],
        status_column: str,
    ) -> None:
        now = utcnow()
        stmt = dialect_insert(Stat).values(
            **identity,
            **_initial_counters(status_column),
            created_at=now,
            modified_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_=_increments(status_column, now),
        )
        await self.db.execute(stmt)

    async def _update_or_insert(self, identity: dict[str, Any], status_column: str) -> None:
        """Portable path: increment, else create, else increment the race winner."""
        if await self._update_existing(identity, status_column):
            return

        now = utcnow()
        try:
            async with self.db.begin_nested():
                await self.db.execute(
                    insert(Stat).values(
                        **identity,
                        **_initial_counters(status_column),
                        created_at=now,
                        modified_at=now,
                    )
                )
            return
        except IntegrityError:
            # Another request created the row in between.
            logger.debug("Rollup %s created concurrently, incrementing instead", identity)

        if not await self._update_existing(identity, status_column):
            raise RollupConflictError(f"Unable to create or increment rollup {identity}")

    async def _update_existing(self, identity: dict[str, Any], status_column: str) -> bool:
        result = await self.db.execute(
            update(Stat)
            .where(_identity_clause(identity))
            .values(**_increments(status_column, utcnow()))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0


def _identity_clause(identity: dict[str, Any]) -> ColumnElement[bool]:
    return and_(*(getattr(Stat, name) == value for name, value in identity.items()))


def _initial_counters(status_column: str) -> dict[str, int]:
    counters = {"hits": 1, "hits_anonymous": 0, "hits_identified": 0}
    counters[status_column] = 1
    return counters


def _increments(status_column: str, now) -> dict[str, Any]:
    return {
        "hits": Stat.hits + 1,
        status_column: getattr(Stat, status_column) + 1,
        "modified_at": now,
    }
