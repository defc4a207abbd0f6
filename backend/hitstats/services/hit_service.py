import logging
from datetime import datetime

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hitstats.core.bots import is_bot
from hitstats.core.config import Settings
from hitstats.core.periods import as_utc
from hitstats.core.privacy import ANONYMOUS_IP, apply_privacy
from hitstats.core.urls import download_url, normalize_url
from hitstats.models.hit import IP_MAX_LENGTH, URL_MAX_LENGTH, Hit
from hitstats.schemas.common import BySubject, UserStatus
from hitstats.schemas.hit import RequestContext
from hitstats.schemas.stats import HitCounts
from hitstats.services.rollup_service import RollupService

logger = logging.getLogger(__name__)

# Subject kind of the file targeted by a direct download.
DOWNLOAD_SUBJECT_KIND = "media"


def user_status_clause(user_status: UserStatus):
    """Filter hits on the visitor status; None means no filter."""
    if user_status is UserStatus.ANONYMOUS:
        return Hit.user_id == 0
    if user_status is UserStatus.IDENTIFIED:
        return Hit.user_id > 0
    return None


def period_clauses(column, since: datetime | None = None, until: datetime | None = None) -> list:
    """Filter a date column on the half-open range [since, until)."""
    clauses = []
    if since is not None:
        clauses.append(column >= as_utc(since))
    if until is not None:
        clauses.append(column < as_utc(until))
    return clauses


class HitService:
    """Records hits and feeds the rollups."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def record_hit(self, context: RequestContext) -> int | None:
        """Store a hit for the current request and update its rollups.

        Returns the id of the new hit, or None when the request is not
        counted (admin page, excluded robot, url outside the site). The hit
        and its rollups are written in the caller's transaction.
        """
        if context.is_admin:
            logger.debug("Skipping admin request %s", context.url)
            return None

        if not self.settings.INCLUDE_BOTS and is_bot(context.user_agent):
            logger.debug("Skipping robot %r", context.user_agent)
            return None

        url = normalize_url(context.url, self.settings.BASE_PATH)
        if not url or len(url) > URL_MAX_LENGTH:
            logger.debug("Skipping invalid url %r", context.url[:100])
            return None

        ip = apply_privacy(context.ip, self.settings.PRIVACY)
        if len(ip) > IP_MAX_LENGTH:
            logger.debug("Discarding malformed address %r", ip[:100])
            ip = ANONYMOUS_IP

        subject = context.subject
        hit = Hit(
            url=url,
            subject_kind=subject.kind if subject else None,
            subject_id=subject.id if subject else None,
            user_id=context.user_id,
            ip=ip,
            referrer=context.referrer,
            query=context.query,
            user_agent=context.user_agent,
            accept_language=context.accept_language,
        )
        self.db.add(hit)
        await self.db.flush()

        await RollupService(self.db).apply_hit(hit)
        return hit.id

    async def record_download(
        self,
        storage_kind: str,
        filename: str,
        subject_id: int | None = None,
        context: RequestContext | None = None,
    ) -> int | None:
        """Record a direct download of a stored file.

        The other request facts (user, client, headers) are taken from
        ``context`` when given.
        """
        url = download_url(storage_kind, filename)
        subject = BySubject(kind=DOWNLOAD_SUBJECT_KIND, id=subject_id) if subject_id else None
        if context is None:
            context = RequestContext(url=url, subject=subject)
        else:
            context = context.model_copy(update={"url": url, "subject": subject})
        return await self.record_hit(context)

    async def count(
        self,
        user_status: UserStatus = UserStatus.ALL,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        """Count raw hits, optionally only anonymous or identified ones."""
        stmt = select(func.count()).select_from(Hit).where(
            *period_clauses(Hit.created_at, since, until)
        )
        clause = user_status_clause(user_status)
        if clause is not None:
            stmt = stmt.where(clause)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def counts_by_status(
        self, since: datetime | None = None, until: datetime | None = None
    ) -> HitCounts:
        """Anonymous and identified hits of a period, in one query."""
        identified = func.coalesce(func.sum(case((Hit.user_id > 0, 1), else_=0)), 0)
        result = await self.db.execute(
            select(func.count(), identified)
            .select_from(Hit)
            .where(*period_clauses(Hit.created_at, since, until))
        )
        total, identified_count = result.one()
        return HitCounts(
            total=total, anonymous=total - identified_count, identified=identified_count
        )

    async def total_for_user(self, user_id: int) -> int:
        """Count the hits of one user (0 for anonymous visitors)."""
        result = await self.db.execute(
            select(func.count()).select_from(Hit).where(Hit.user_id == user_id)
        )
        return result.scalar_one()

    async def total_for_ip(self, ip: str) -> int:
        """Count the hits of one stored address; meaningful only without anonymization."""
        result = await self.db.execute(select(func.count()).select_from(Hit).where(Hit.ip == ip))
        return result.scalar_one()
