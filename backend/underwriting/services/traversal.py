"""
Assessment traversal engine.

Walks an applicant through one assessment's question graph: validate the
submitted answer against the current question, append it to the
respondent record, then either hand back the next question or resolve the
outcome when the chosen branch ends.

The engine holds no per-applicant state. The current position comes in as
an argument and the new one goes out in the result; the caller decides
where positions live.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, Union

from underwriting.core.errors import (
    EmptyAssessmentError,
    InvalidAnswerError,
    InvalidStateError,
    MissingIdentityError,
    NotFoundError,
)
from underwriting.models.bank import Assessment, Outcome
from underwriting.models.respondent import RespondentRecord, Response
from underwriting.services.outcomes import resolve
from underwriting.services.storage import Position

logger = logging.getLogger(__name__)


class AssessmentSource(Protocol):
    def get(self, assessment_type: str) -> Assessment: ...


class RecordStore(Protocol):
    def load(self, proposer_id: str, assessment_type: str) -> Optional[RespondentRecord]: ...

    def save(self, record: RespondentRecord) -> RespondentRecord: ...


@dataclass(frozen=True)
class NextQuestion:
    position: Position
    question: dict          # outbound payload, no next-question references
    record: RespondentRecord


@dataclass(frozen=True)
class Completed:
    outcome: Optional[Outcome]
    record: RespondentRecord
    attempt: int = 1


NextStep = Union[NextQuestion, Completed]


class TraversalEngine:
    def __init__(self, bank: AssessmentSource, respondents: RecordStore) -> None:
        self.bank = bank
        self.respondents = respondents

    def start(self, assessment_type: str) -> Tuple[Position, dict]:
        assessment = self.bank.get(assessment_type)
        entry = assessment.entry_question
        if entry is None:
            raise EmptyAssessmentError(f"Assessment '{assessment_type}' has no questions.")

        position = Position(assessment_type=assessment_type, question_id=entry.question_id)
        return position, entry.payload()

    def resume(self, position: Position) -> dict:
        assessment = self.bank.get(position["assessment_type"])
        question = assessment.question(position.get("question_id"))
        if question is None:
            raise InvalidStateError(f"Position points to unknown question '{position.get('question_id')}'.")
        return question.payload()

    def question(self, assessment_type: str, question_id: str) -> dict:
        assessment = self.bank.get(assessment_type)
        question = assessment.question(question_id)
        if question is None:
            raise NotFoundError(f"Question '{question_id}' not found in '{assessment_type}'.")
        return question.payload()

    def advance(
        self,
        assessment_type: str,
        current_question_id: str,
        submitted_answer: Optional[str],
        proposer_id: str,
        attempt: Optional[int] = None,
    ) -> NextStep:
        """
        Record one answer and move on. ``attempt`` comes from the session's
        position; without one, answering the entry question opens a new attempt
        and any other question continues the latest attempt.
        """
        if proposer_id is None or not proposer_id.strip():
            raise MissingIdentityError("A proposer id is required to record answers.")

        assessment = self.bank.get(assessment_type)

        current = assessment.question(current_question_id)
        if current is None:
            raise InvalidStateError(
                f"Question '{current_question_id}' is not part of '{assessment_type}'; the position is stale."
            )

        # 1) validate, and work out where the answer leads, before writing anything
        if current.is_choice_driven:
            choice = current.choice_for(submitted_answer) if submitted_answer is not None else None
            if choice is None:
                raise InvalidAnswerError(f"Answer '{submitted_answer}' is not one of the choices for {current.question_id}.")
            next_id = choice.next_question_id
        else:
            if not current.accepts_free_text(submitted_answer):
                raise InvalidAnswerError(f"Answer for {current.question_id} is missing or badly formatted.")
            next_id = None  # free-text questions are leaves

        next_question = None
        if next_id is not None:
            next_question = assessment.question(next_id)
            if next_question is None:
                raise InvalidStateError(f"'{current.question_id}' points to unknown next question '{next_id}'.")

        # 2) one append, one write-through save
        record = self.respondents.load(proposer_id, assessment_type)
        if record is None:
            record = RespondentRecord(
                proposer_id=proposer_id,
                assessment_type=assessment_type,
                assessment_id=assessment.assessment_id,
            )
        if attempt is None:
            attempt = _attempt_for(record, assessment, current.question_id)

        record = record.appended(
            Response(
                question_id=current.question_id,
                question_text=current.question_text,
                answer=submitted_answer,
                attempt=attempt,
            )
        )
        record = self.respondents.save(record)

        # 3) finish or advance
        if next_question is None:
            # only this attempt's answers count toward the outcome
            outcome = resolve(assessment.outcomes, record.attempt_responses(attempt))
            logger.info(
                "Assessment '%s' attempt %d complete for proposer %s: %s",
                assessment_type, attempt, proposer_id,
                outcome.outcome_id if outcome else "no matching outcome",
            )
            return Completed(outcome=outcome, record=record, attempt=attempt)

        logger.info("Proposer %s answered %s, next %s", proposer_id, current.question_id, next_question.question_id)
        return NextQuestion(
            position=Position(assessment_type=assessment_type, question_id=next_question.question_id, attempt=attempt),
            question=next_question.payload(),
            record=record,
        )


def _attempt_for(record: RespondentRecord, assessment: Assessment, question_id: str) -> int:
    last = record.last_attempt
    if last == 0:
        return 1
    entry = assessment.entry_question
    # the entry question is only reached from start, so answering it begins a retake
    if entry is not None and entry.question_id == question_id:
        return last + 1
    return last
