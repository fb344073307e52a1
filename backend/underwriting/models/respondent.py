from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Response(BaseModel):
    """One recorded answer. question_text is copied from the bank at answer time."""
    model_config = ConfigDict(frozen=True)

    question_id: str
    question_text: str
    answer: str
    attempt: int = 1  # which pass through the assessment this answer belongs to
    timestamp: datetime = Field(default_factory=utc_now)


class RespondentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    proposer_id: str
    assessment_type: str
    assessment_id: str
    responses: List[Response] = Field(default_factory=list)
    version: Optional[int] = None  # None until first saved

    @property
    def last_attempt(self) -> int:
        return max((r.attempt for r in self.responses), default=0)

    def appended(self, response: Response) -> "RespondentRecord":
        # never mutate: hand back a new record one response longer
        return self.model_copy(update={"responses": [*self.responses, response]})

    def attempt_responses(self, attempt: int) -> List[Response]:
        return [r for r in self.responses if r.attempt == attempt]
