"""
Authoring checks for question bank documents.

The traversal engine trusts nothing here at runtime (it still guards
against dangling references), but running these before a document is
seeded catches broken branches and outcome hazards early.
"""
import logging
from dataclasses import dataclass
from typing import List, Literal

from underwriting.core.errors import BankValidationError
from underwriting.models.bank import Assessment

logger = logging.getLogger(__name__)

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class BankIssue:
    severity: Severity
    code: str
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


def check_assessment(assessment: Assessment) -> List[BankIssue]:
    issues: List[BankIssue] = []

    def error(code: str, message: str) -> None:
        issues.append(BankIssue("error", code, message))

    def warning(code: str, message: str) -> None:
        issues.append(BankIssue("warning", code, message))

    if not assessment.questions:
        warning("NO_QUESTIONS", "assessment has no questions and cannot be started")

    question_ids = set()
    for question in assessment.questions:
        if question.question_id in question_ids:
            error("DUPLICATE_QUESTION", f"question id '{question.question_id}' is defined more than once")
        question_ids.add(question.question_id)

    for question in assessment.questions:
        qid = question.question_id

        if question.is_choice_driven and not question.choices:
            error("NO_CHOICES", f"'{qid}' is {question.answer_type} but offers no choices")
        if not question.is_choice_driven and question.choices:
            error("FREE_TEXT_CHOICES", f"'{qid}' is {question.answer_type} but lists choices")

        seen_texts = set()
        for choice in question.choices:
            if choice.choice_text in seen_texts:
                error("DUPLICATE_CHOICE", f"'{qid}' offers '{choice.choice_text}' more than once")
            seen_texts.add(choice.choice_text)

            nxt = choice.next_question_id
            if nxt is not None and nxt not in question_ids:
                error("DANGLING_REFERENCE", f"'{qid}' choice '{choice.choice_text}' points to unknown question '{nxt}'")

    outcome_ids = set()
    last_index = len(assessment.outcomes) - 1
    for index, outcome in enumerate(assessment.outcomes):
        if outcome.outcome_id in outcome_ids:
            error("DUPLICATE_OUTCOME", f"outcome id '{outcome.outcome_id}' is defined more than once")
        outcome_ids.add(outcome.outcome_id)

        if not outcome.criteria:
            warning("EMPTY_CRITERIA", f"outcome '{outcome.outcome_id}' has no criteria and matches every trail")
            if index != last_index:
                warning("CATCH_ALL_NOT_LAST", f"outcome '{outcome.outcome_id}' matches everything but is not last; later outcomes are unreachable")

        for criterion in outcome.criteria:
            if criterion.question_id not in question_ids:
                error("UNKNOWN_CRITERION_QUESTION", f"outcome '{outcome.outcome_id}' refers to unknown question '{criterion.question_id}'")

    return issues


def validate_assessment(assessment: Assessment) -> List[BankIssue]:
    """Raise BankValidationError on errors; log and return warnings."""
    issues = check_assessment(assessment)
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        raise BankValidationError(assessment.assessment_type, errors)

    warnings = [i for i in issues if i.severity == "warning"]
    for issue in warnings:
        logger.warning("Question bank '%s': %s", assessment.assessment_type, issue)
    return warnings
