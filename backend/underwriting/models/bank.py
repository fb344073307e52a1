from __future__ import annotations

from typing import List, Optional, Literal
import re

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AnswerType = Literal["single_choice", "free_text"]

CHOICE_DRIVEN = ("single_choice",)

# Named patterns a free_text question may refer to instead of a raw regex
NAMED_PATTERNS = {
    "ISO_YYYY_MM_DD": r"\d{4}-\d{2}-\d{2}",
}


class BankModel(BaseModel):
    # Bank documents are authored with camelCase keys; snake_case is accepted too.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Criterion(BankModel):
    question_id: str
    expected_answer: str


class Choice(BankModel):
    choice_text: str
    next_question_id: Optional[str] = None   # None ends the branch


class Question(BankModel):
    question_id: str
    question_text: str
    answer_type: AnswerType = "single_choice"
    choices: List[Choice] = Field(default_factory=list)
    pattern: Optional[str] = None           # free_text only

    @property
    def is_choice_driven(self) -> bool:
        return self.answer_type in CHOICE_DRIVEN

    def choice_for(self, answer: str) -> Optional[Choice]:
        # exact text match; choice texts are unique within a question
        for choice in self.choices:
            if choice.choice_text == answer:
                return choice
        return None

    def accepts_free_text(self, answer: Optional[str]) -> bool:
        if answer is None or not answer.strip():
            return False
        if self.pattern is None:
            return True
        regex = NAMED_PATTERNS.get(self.pattern, self.pattern)
        return re.fullmatch(regex, answer.strip()) is not None

    def payload(self) -> dict:
        """Outbound question payload. Next-question references stay internal."""
        payload = {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "answer_type": self.answer_type,
            "choices": [c.choice_text for c in self.choices],
        }
        if self.pattern is not None:
            payload["pattern"] = self.pattern
        return payload


class Outcome(BankModel):
    outcome_id: str
    description: str
    icd10_code: Optional[str] = Field(default=None, alias="icd10_code")
    criteria: List[Criterion] = Field(default_factory=list)

    def payload(self) -> dict:
        return {
            "outcome_id": self.outcome_id,
            "description": self.description,
            "icd10_code": self.icd10_code,
        }


class Assessment(BankModel):
    assessment_type: str
    assessment_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    inactive: bool = False
    questions: List[Question] = Field(default_factory=list)
    outcomes: List[Outcome] = Field(default_factory=list)  # document order is the match order

    @property
    def entry_question(self) -> Optional[Question]:
        return self.questions[0] if self.questions else None

    def question(self, question_id: Optional[str]) -> Optional[Question]:
        for q in self.questions:
            if q.question_id == question_id:
                return q
        return None

    def catalog_entry(self) -> dict:
        return {
            "assessment_type": self.assessment_type,
            "assessment_id": self.assessment_id,
            "name": self.name or self.assessment_type.replace("_", " ").title(),
            "description": self.description,
        }
