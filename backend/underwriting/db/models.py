import uuid

from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Boolean,
    Text,
    Uuid,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from underwriting.db.base import Base


class AssessmentDocument(Base): # the question bank, one row per assessment type
    __tablename__ = "assessments"

    assessment_type = Column(String, primary_key=True)
    assessment_id = Column(String, nullable=False, unique=True)

    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    inactive = Column(Boolean, nullable=False, default=False)

    # full document (questions, choices, outcomes) as authored
    definition = Column(JSON, nullable=False, default=dict)

    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class Respondent(Base): # one applicant's answer log for one assessment, every attempt included
    __tablename__ = "respondents"
    __table_args__ = (UniqueConstraint("proposer_id", "assessment_type", name="uq_respondent_proposer_type"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    proposer_id = Column(String, nullable=False, index=True)
    assessment_type = Column(String, nullable=False)
    assessment_id = Column(String, nullable=False)

    response_count = Column(Integer, nullable=False, default=0)
    # optimistic lock: UPDATE ... WHERE version = <loaded>
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    responses = relationship(
        "RespondentResponse",
        back_populates="respondent",
        order_by="RespondentResponse.seq.asc()",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}


class RespondentResponse(Base): # append-only; rows are inserted, never updated
    __tablename__ = "respondent_responses"
    __table_args__ = (UniqueConstraint("respondent_id", "seq", name="uq_response_seq"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    respondent_id = Column(Uuid, ForeignKey("respondents.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)  # position in the log, 0-based
    attempt = Column(Integer, nullable=False, default=1)  # 1 for the first pass, 2 for the first retake, ...

    question_id = Column(String, nullable=False)
    question_text = Column(Text, nullable=False)  # copied from the bank at answer time
    answer = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    respondent = relationship("Respondent", back_populates="responses")
