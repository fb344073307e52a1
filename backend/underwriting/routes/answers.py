# Stateful answer endpoints: the traversal engine + the session position store

from typing import Optional
from uuid import uuid4
import base64
import logging

from fastapi import APIRouter, Depends, Header, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

# shared helpers from the question endpoints (REUSE, do not re-implement the error envelope here)
from underwriting.api.questions import (
    build_meta,                   # meta block with bank version + timestamp
    get_engine,                   # TraversalEngine bound to the request's db session
    http_error,                   # AssessmentError -> HTTPException with {error, meta}
)
from underwriting.core.config import POSITION_TTL_SECONDS
from underwriting.core.errors import (
    AssessmentError,
    InvalidStateError,
    MissingSessionError,
    NotFoundError,
)
from underwriting.db.session import get_db
from underwriting.services.respondents import RespondentStore
# process-wide, thread-safe position store and per-proposer locks
from underwriting.services.storage import InMemoryPositionStore, KeyedLocks, Position
from underwriting.services.traversal import Completed, NextStep, TraversalEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/0.0/proposer/{proposer_id}/assessments/{assessment_type}", tags=["answers"])

SESSION_HEADER = "X-Session-Id"

# One store instance per process; idle sessions expire after POSITION_TTL_SECONDS
POSITIONS = InMemoryPositionStore(ttl_seconds=POSITION_TTL_SECONDS)
# Serializes submissions per (proposer_id, assessment_type); a key's lock is dropped once released
LOCKS = KeyedLocks()


def get_positions() -> InMemoryPositionStore:
    return POSITIONS


# ---------- helpers ----------

def _new_session_id() -> str:
    """URL-safe short id from 16 random bytes (~22 chars)."""
    return base64.urlsafe_b64encode(uuid4().bytes).rstrip(b"=").decode("ascii")


def _require_session(session_id: Optional[str]) -> str:
    # blank counts as missing
    if session_id is None or not session_id.strip():
        raise MissingSessionError(f"Missing {SESSION_HEADER} header; start an assessment first.")
    return session_id


def _require_position(positions: InMemoryPositionStore, session_id: str, assessment_type: str) -> Position:
    position = positions.get(session_id)
    # never started, finished, cancelled or expired
    if position is None:
        raise MissingSessionError("No assessment in progress for this session.")
    # one session walks one assessment at a time
    if position["assessment_type"] != assessment_type:
        raise InvalidStateError(
            f"This session is answering '{position['assessment_type']}', not '{assessment_type}'."
        )
    return position


def _step_payload(proposer_id: str, assessment_type: str, step: NextStep) -> dict:
    if isinstance(step, Completed):
        return {
            "proposer_id": proposer_id,
            "assessment_type": assessment_type,
            "attempt": step.attempt,
            "done": True,
            "next": None,
            "outcome": step.outcome.payload() if step.outcome else None,
            "meta": build_meta(),
        }

    return {
        "proposer_id": proposer_id,
        "assessment_type": assessment_type,
        "attempt": step.position.get("attempt"),
        "done": False,
        "next": step.question,
        "outcome": None,
        "meta": build_meta(),
    }


# ---------- request models ----------

class AnswerRequest(BaseModel):
    # For single_choice: the literal choice text.
    # For free_text: the text value.
    answer: Optional[str] = None


# ---------- endpoints ----------

@router.post("/start")
def start_assessment(
    proposer_id: str,
    assessment_type: str,
    response: Response,
    x_session_id: Optional[str] = Header(default=None),
    engine: TraversalEngine = Depends(get_engine),
    positions: InMemoryPositionStore = Depends(get_positions),
):
    """
    Point the session at the first question of the assessment and return it.
    A session id is minted when the caller does not send one.
    """
    # reuse the caller's session id, or mint one
    session_id = x_session_id if x_session_id and x_session_id.strip() else _new_session_id()

    try:
        position, question = engine.start(assessment_type)
    except AssessmentError as exc:
        raise http_error(exc) from exc

    # starting again over an unfinished session simply restarts it; the next answer opens a new attempt
    positions.set(session_id, position)
    response.headers[SESSION_HEADER] = session_id
    logger.info("Session %s started '%s' for proposer %s", session_id, assessment_type, proposer_id)

    return {
        "session_id": session_id,
        "proposer_id": proposer_id,
        "assessment_type": assessment_type,
        "done": False,
        "next": question,
        "meta": build_meta(),
    }


@router.post("/answer")
def answer_current_question(
    proposer_id: str,
    assessment_type: str,
    req: AnswerRequest,
    x_session_id: Optional[str] = Header(default=None),
    engine: TraversalEngine = Depends(get_engine),
    positions: InMemoryPositionStore = Depends(get_positions),
):
    """
    Submit an answer for the question the session is on and advance.
    The position only moves once the answer is durably recorded.
    """
    try:
        session_id = _require_session(x_session_id)

        with LOCKS.hold((proposer_id, assessment_type)):
            position = _require_position(positions, session_id, assessment_type)
            # the attempt rides along in the position once the first answer is recorded
            step = engine.advance(
                assessment_type, position["question_id"], req.answer, proposer_id, attempt=position.get("attempt")
            )

            # only now, with the answer saved, does the position move
            if isinstance(step, Completed):
                positions.clear(session_id)
            else:
                positions.set(session_id, step.position)
    except AssessmentError as exc:
        logger.info("Answer rejected for proposer %s on '%s': %s", proposer_id, assessment_type, exc.code)
        raise http_error(exc) from exc

    return _step_payload(proposer_id, assessment_type, step)


@router.post("/questions/{question_id}/answer")
def answer_question(
    proposer_id: str,
    assessment_type: str,
    question_id: str,
    req: AnswerRequest,
    engine: TraversalEngine = Depends(get_engine),
):
    """Stateless variant: the caller names the question being answered."""
    try:
        with LOCKS.hold((proposer_id, assessment_type)):
            step = engine.advance(assessment_type, question_id, req.answer, proposer_id)
    except AssessmentError as exc:
        logger.info("Answer rejected for proposer %s on '%s': %s", proposer_id, assessment_type, exc.code)
        raise http_error(exc) from exc

    return _step_payload(proposer_id, assessment_type, step)


@router.get("/current")
def resume_assessment(
    proposer_id: str,
    assessment_type: str,
    x_session_id: Optional[str] = Header(default=None),
    engine: TraversalEngine = Depends(get_engine),
    positions: InMemoryPositionStore = Depends(get_positions),
):
    """Reattach to the session and return the question it is waiting on."""
    try:
        session_id = _require_session(x_session_id)
        position = _require_position(positions, session_id, assessment_type)
        question = engine.resume(position)
    except AssessmentError as exc:
        raise http_error(exc) from exc

    return {
        "proposer_id": proposer_id,
        "assessment_type": assessment_type,
        "done": False,
        "next": question,
        "meta": build_meta(),
    }


@router.post("/cancel")
def cancel_assessment(
    proposer_id: str,
    assessment_type: str,
    x_session_id: Optional[str] = Header(default=None),
    positions: InMemoryPositionStore = Depends(get_positions),
):
    """Drop the session's position. Recorded responses are kept."""
    try:
        session_id = _require_session(x_session_id)
        _require_position(positions, session_id, assessment_type)
    except AssessmentError as exc:
        raise http_error(exc) from exc

    positions.clear(session_id)
    return {
        "proposer_id": proposer_id,
        "assessment_type": assessment_type,
        "done": True,
        "cancelled": True,
        "meta": build_meta(),
    }


@router.get("/responses")
def show_responses(proposer_id: str, assessment_type: str, attempt: Optional[int] = None, db: Session = Depends(get_db)):
    """Audit trail: every recorded answer, oldest first. `?attempt=N` narrows it to one attempt."""
    record = RespondentStore(db).load(proposer_id, assessment_type)
    if record is None:
        raise http_error(NotFoundError(f"No responses recorded for '{proposer_id}' on '{assessment_type}'."))

    # earlier attempts stay in the record; filter instead of deleting
    responses = record.responses if attempt is None else record.attempt_responses(attempt)

    return {
        "proposer_id": record.proposer_id,
        "assessment_type": record.assessment_type,
        "assessment_id": record.assessment_id,
        "attempts": record.last_attempt,
        "responses": [r.model_dump(mode="json") for r in responses],
        "meta": build_meta(),
    }
