from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from underwriting.db.session import get_db
from underwriting.services.respondents import RespondentStore

router = APIRouter(prefix="/debug", tags=["debug"])

@router.get("/latest")
def latest(db: Session = Depends(get_db)):
    record = RespondentStore(db).latest()
    if not record:
        return {"respondent": None, "responses": []}

    return {
        "respondent": {
            "proposer_id": record.proposer_id,
            "assessment_type": record.assessment_type,
            "assessment_id": record.assessment_id,
            "version": record.version,
        },
        "responses": [
            {
                "question_id": r.question_id,
                "question_text": r.question_text,
                "answer": r.answer,
                "attempt": r.attempt,
                "timestamp": r.timestamp,
            }
            for r in record.responses
        ],
    }
