from pydantic import BaseModel, Field

from hitstats.models.hit import URL_MAX_LENGTH
from hitstats.schemas.common import BySubject


class RequestContext(BaseModel):
    """Facts about the current request, as supplied by the host site."""

    url: str
    referrer: str = ""
    query: str = ""
    user_agent: str = ""
    accept_language: str = ""
    user_id: int = Field(0, ge=0)
    ip: str = ""
    is_admin: bool = False
    subject: BySubject | None = None


class HitIn(BaseModel):
    """Payload of the tracking beacon."""

    url: str = Field(..., min_length=1, max_length=URL_MAX_LENGTH)
    subject_kind: str | None = Field(None, max_length=190)
    subject_id: int | None = Field(None, gt=0)
    user_id: int = Field(0, ge=0)

    def subject(self) -> BySubject | None:
        if self.subject_kind and self.subject_id:
            return BySubject(kind=self.subject_kind, id=self.subject_id)
        return None


class HitRecordedResponse(BaseModel):
    """Whether the beacon produced a hit."""

    recorded: bool
    hit_id: int | None = None
