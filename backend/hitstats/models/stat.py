import enum

from sqlalchemy import Enum, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hitstats.db.base import Base
from hitstats.models.base import TimestampMixin
from hitstats.models.hit import URL_MAX_LENGTH


class StatKind(str, enum.Enum):
    PAGE = "page"
    RESOURCE = "resource"
    DOWNLOAD = "download"


class Stat(Base, TimestampMixin):
    """Rollup of the hits of one page, one resource or one downloaded file.

    Page and download rows are identified by their url, resource rows by
    their subject. The unused identity columns stay NULL, so each unique
    constraint only applies to the kinds it identifies.
    """

    __tablename__ = "stats"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    kind: Mapped[StatKind] = mapped_column(
        Enum(StatKind, name="stat_kind", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    url: Mapped[str | None] = mapped_column(String(URL_MAX_LENGTH), nullable=True, index=True)
    subject_kind: Mapped[str | None] = mapped_column(String(190), nullable=True)
    subject_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hits: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    hits_anonymous: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    hits_identified: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    __table_args__ = (
        UniqueConstraint("kind", "url", name="uq_stats_kind_url"),
        UniqueConstraint("kind", "subject_kind", "subject_id", name="uq_stats_kind_subject"),
        Index("ix_stats_subject", "subject_kind", "subject_id"),
    )

    def __repr__(self) -> str:
        identity = self.url if self.kind != StatKind.RESOURCE else f"{self.subject_kind}/{self.subject_id}"
        return f"<Stat {self.kind.value} {identity} hits={self.hits}>"
