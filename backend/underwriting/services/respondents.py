from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from underwriting.core.errors import PersistenceFailure
from underwriting.db.models import Respondent, RespondentResponse
from underwriting.models.respondent import RespondentRecord, Response, utc_now

logger = logging.getLogger(__name__)

# All respondent writes go through this store
# Stored responses are only ever inserted, never updated or deleted
# save() is one transaction: either every new response lands or none does
# Retakes live in the same record; each response carries its attempt number


class RespondentStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _row(self, proposer_id: str, assessment_type: str) -> Optional[Respondent]:
        return (
            self.db.query(Respondent)
            .filter(Respondent.proposer_id == proposer_id, Respondent.assessment_type == assessment_type)
            .one_or_none()
        )

    def load(self, proposer_id: str, assessment_type: str) -> Optional[RespondentRecord]:
        row = self._row(proposer_id, assessment_type)
        return _to_record(row) if row is not None else None

    def latest(self) -> Optional[RespondentRecord]:
        row = self.db.query(Respondent).order_by(Respondent.updated_at.desc()).first()
        return _to_record(row) if row is not None else None

    def save(self, record: RespondentRecord) -> RespondentRecord:
        """
        Upsert the full record. Responses already stored must be an unchanged
        prefix of ``record.responses``; only the tail is inserted.

        The returned record is built after the flush and before the commit,
        so once the commit succeeds nothing else can fail the save.
        """
        try:
            row = self._row(record.proposer_id, record.assessment_type)

            if row is None:
                if record.version is not None:
                    raise PersistenceFailure(
                        f"Record for '{record.proposer_id}'/'{record.assessment_type}' disappeared before save."
                    )
                row = Respondent(
                    proposer_id=record.proposer_id,
                    assessment_type=record.assessment_type,
                    assessment_id=record.assessment_id,
                    response_count=0,
                )
                self.db.add(row)
            elif row.version != record.version:
                raise PersistenceFailure(
                    f"Record for '{record.proposer_id}'/'{record.assessment_type}' was changed by another submission."
                )

            _check_prefix(row.responses, record.responses)
            stored_count = len(row.responses)

            for seq, response in enumerate(record.responses[stored_count:], start=stored_count):
                row.responses.append(
                    RespondentResponse(
                        seq=seq,
                        attempt=response.attempt,
                        question_id=response.question_id,
                        question_text=response.question_text,
                        answer=response.answer,
                        timestamp=response.timestamp,
                    )
                )

            # touching the parent row bumps its version even when only children changed
            row.response_count = len(record.responses)
            row.updated_at = utc_now()

            # flush assigns the new version; read it back before commit expires the row
            self.db.flush()
            saved = _to_record(row)

            self.db.commit()
        except PersistenceFailure:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:  # includes StaleDataError from the version check
            self.db.rollback()
            logger.error("Failed to save respondent record %s/%s", record.proposer_id, record.assessment_type, exc_info=True)
            raise PersistenceFailure(f"Could not save your answer: {e.__class__.__name__}") from e

        return saved


def _check_prefix(stored, responses) -> None:
    if len(stored) > len(responses):
        raise PersistenceFailure("Refusing to drop recorded responses; the respondent record is append-only.")

    for existing, incoming in zip(stored, responses):
        if (existing.attempt, existing.question_id, existing.answer) != (incoming.attempt, incoming.question_id, incoming.answer):
            raise PersistenceFailure("Refusing to alter a recorded response; the respondent record is append-only.")


def _to_record(row: Respondent) -> RespondentRecord:
    return RespondentRecord(
        proposer_id=row.proposer_id,
        assessment_type=row.assessment_type,
        assessment_id=row.assessment_id,
        version=row.version,
        responses=[
            Response(
                question_id=r.question_id,
                question_text=r.question_text,
                answer=r.answer,
                attempt=r.attempt,
                timestamp=r.timestamp,
            )
            for r in row.responses
        ],
    )
