# HTTP routes for read-only question bank access, plus the response helpers
# shared with the stateful answer routes.
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from underwriting.core import config
from underwriting.core.errors import AssessmentError
from underwriting.db.session import get_db
from underwriting.services.question_bank import QuestionBank
from underwriting.services.respondents import RespondentStore
from underwriting.services.traversal import TraversalEngine

router = APIRouter(tags=["questions"])


def build_meta() -> dict: # server-authored metadata with an ISO-8601 UTC timestamp
    now_utc = datetime.now(timezone.utc)
    ts = now_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    return {
        "version": config.BANK_VERSION,
        "timestamp": ts,
    }


def http_error(exc: AssessmentError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={
            "error": {"code": exc.code, "message": exc.message},
            "meta": build_meta(),
        },
    )


def get_engine(db: Session = Depends(get_db)) -> TraversalEngine:
    return TraversalEngine(QuestionBank(db), RespondentStore(db))


@router.get("/cdfmasters")
def list_assessments(db: Session = Depends(get_db)):
    """Active assessments a proposer can be taken through."""
    return [a.catalog_entry() for a in QuestionBank(db).list_active()]


@router.get("/0.0/assessments/{assessment_type}/questions/{question_id}")
def get_question(assessment_type: str, question_id: str, engine: TraversalEngine = Depends(get_engine)):
    try:
        question = engine.question(assessment_type, question_id)
    except AssessmentError as exc:
        raise http_error(exc) from exc

    return {"question": question, "meta": build_meta()}
