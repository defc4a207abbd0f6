from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


class UserStatus(str, Enum):
    """Which visitors are counted: everybody, anonymous ones or identified ones."""

    ALL = "all"
    ANONYMOUS = "anonymous"
    IDENTIFIED = "identified"

    @classmethod
    def parse(cls, value: object) -> "UserStatus":
        """Map the legacy synonyms (hits, total, hits_anonymous...); default is all."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        if normalized in ("anonymous", "hits_anonymous"):
            return cls.ANONYMOUS
        if normalized in ("identified", "hits_identified"):
            return cls.IDENTIFIED
        return cls.ALL

    @property
    def column(self) -> str:
        """Name of the Stat counter column read for this status."""
        return {
            UserStatus.ALL: "hits",
            UserStatus.ANONYMOUS: "hits_anonymous",
            UserStatus.IDENTIFIED: "hits_identified",
        }[self]


class ByUrl(BaseModel):
    """A page or a download, identified by its url."""

    model_config = ConfigDict(frozen=True)

    type: Literal["url"] = "url"
    url: str


class BySubject(BaseModel):
    """A resource, identified by its kind and id (``items``/42)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["subject"] = "subject"
    kind: str = Field(..., min_length=1, max_length=190)
    id: int = Field(..., gt=0)


Identity = ByUrl | BySubject
