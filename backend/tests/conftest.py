import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from underwriting.core.errors import NotFoundError
from underwriting.db.session import init_db
from underwriting.models.bank import Assessment
from underwriting.services.question_bank import QuestionBank, seed_bank
from underwriting.services.respondents import RespondentStore
from underwriting.services.traversal import TraversalEngine

# Two-question diabetes assessment:
#   Q1 Yes -> Q2, No -> end
#   Q2 Yes/No -> end
DIABETES = {
    "assessmentType": "diabetes",
    "assessmentId": "ped-diabetes-test",
    "name": "Diabetes",
    "questions": [
        {
            "questionId": "Q1",
            "questionText": "Do you have diabetes?",
            "answerType": "single_choice",
            "choices": [
                {"choiceText": "Yes", "nextQuestionId": "Q2"},
                {"choiceText": "No", "nextQuestionId": None},
            ],
        },
        {
            "questionId": "Q2",
            "questionText": "On insulin?",
            "answerType": "single_choice",
            "choices": [
                {"choiceText": "Yes", "nextQuestionId": None},
                {"choiceText": "No", "nextQuestionId": None},
            ],
        },
    ],
    "outcomes": [
        {
            "outcomeId": "O1",
            "description": "Diabetes on insulin",
            "criteria": [
                {"questionId": "Q1", "expectedAnswer": "Yes"},
                {"questionId": "Q2", "expectedAnswer": "Yes"},
            ],
            "icd10_code": "E11.9",
        },
        {
            "outcomeId": "O2",
            "description": "Diabetes without insulin",
            "criteria": [
                {"questionId": "Q1", "expectedAnswer": "Yes"},
                {"questionId": "Q2", "expectedAnswer": "No"},
            ],
            "icd10_code": "E11.8",
        },
    ],
}


class StaticBank:
    """Serves assessments straight from memory, skipping authoring checks."""

    def __init__(self, *assessments: Assessment) -> None:
        self._by_type = {a.assessment_type: a for a in assessments}

    def get(self, assessment_type: str) -> Assessment:
        if assessment_type not in self._by_type:
            raise NotFoundError(f"Assessment '{assessment_type}' not found.")
        return self._by_type[assessment_type]


@pytest.fixture
def diabetes() -> Assessment:
    return Assessment.model_validate(DIABETES)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_db(db, diabetes):
    seed_bank(db, [diabetes])
    return db


@pytest.fixture
def traversal(seeded_db) -> TraversalEngine:
    return TraversalEngine(QuestionBank(seeded_db), RespondentStore(seeded_db))
