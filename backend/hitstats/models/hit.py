from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hitstats.db.base import Base
from hitstats.models.base import utcnow

# Column widths; longer values are never stored.
URL_MAX_LENGTH = 1024
IP_MAX_LENGTH = 45


class Hit(Base):
    """One page view or download. Append-only, never updated."""

    __tablename__ = "hits"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    # Site-relative path, see hitstats.core.urls.normalize_url().
    url: Mapped[str] = mapped_column(String(URL_MAX_LENGTH), nullable=False, index=True)
    # The single resource the page is dedicated to, if any ("items", 42).
    subject_kind: Mapped[str | None] = mapped_column(String(190), nullable=True)
    subject_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # 0 for anonymous visitors.
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    ip: Mapped[str] = mapped_column(String(IP_MAX_LENGTH), nullable=False, default="")
    referrer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    query: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="")
    accept_language: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True, default=utcnow
    )

    __table_args__ = (Index("ix_hits_subject", "subject_kind", "subject_id"),)

    @property
    def has_subject(self) -> bool:
        return bool(self.subject_kind) and bool(self.subject_id)

    @property
    def is_identified(self) -> bool:
        return bool(self.user_id)
