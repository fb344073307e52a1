# Read access to the question bank, plus the authoring-time seeding step.
# The traversal engine only ever calls get(); nothing in a request path writes here.

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Union

from sqlalchemy.orm import Session

from underwriting.core.errors import NotFoundError
from underwriting.db.models import AssessmentDocument
from underwriting.models.bank import Assessment
from underwriting.services.bank import validate_assessment

logger = logging.getLogger(__name__)


class QuestionBank:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, assessment_type: str) -> Assessment:
        row = self.db.get(AssessmentDocument, assessment_type)
        if row is None:
            raise NotFoundError(f"Assessment '{assessment_type}' not found.")
        return _to_assessment(row)

    def list_active(self) -> List[Assessment]:
        rows = (
            self.db.query(AssessmentDocument)
            .filter(AssessmentDocument.inactive.is_(False))
            .order_by(AssessmentDocument.assessment_type.asc())
            .all()
        )
        return [_to_assessment(row) for row in rows]


def _to_assessment(row: AssessmentDocument) -> Assessment:
    document = dict(row.definition or {})
    # catalog columns are authoritative over whatever the stored document says
    document.update(
        assessmentType=row.assessment_type,
        assessmentId=row.assessment_id,
        name=row.name,
        description=row.description,
        inactive=bool(row.inactive),
    )
    return Assessment.model_validate(document)


def load_bank_file(path: Union[str, Path]) -> List[Assessment]:
    """Read a JSON file holding one assessment document or a list of them."""
    with open(path, "r", encoding="utf-8") as f:
        raw: Any = json.load(f)

    documents = raw if isinstance(raw, list) else [raw]
    return [Assessment.model_validate(doc) for doc in documents]


def seed_bank(db: Session, assessments: Iterable[Assessment]) -> List[str]:
    """Validate then upsert each assessment by type. Returns the seeded types."""
    assessments = list(assessments)
    for assessment in assessments:
        validate_assessment(assessment)  # all or nothing: fail before writing any row

    seeded = []
    for assessment in assessments:
        definition = assessment.model_dump(by_alias=True, mode="json")
        row = db.get(AssessmentDocument, assessment.assessment_type)
        if row is None:
            row = AssessmentDocument(assessment_type=assessment.assessment_type)
            db.add(row)
        row.assessment_id = assessment.assessment_id
        row.name = assessment.name
        row.description = assessment.description
        row.inactive = assessment.inactive
        row.definition = definition
        seeded.append(assessment.assessment_type)

    db.commit()
    logger.info("Seeded question bank with %d assessment(s): %s", len(seeded), ", ".join(seeded))
    return seeded
