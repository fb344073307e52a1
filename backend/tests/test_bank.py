import copy
import json
import logging

import pytest

from conftest import DIABETES
from underwriting.core.config import BACKEND_DIR
from underwriting.core.errors import BankValidationError, NotFoundError
from underwriting.models.bank import Assessment
from underwriting.services.bank import check_assessment, validate_assessment
from underwriting.services.question_bank import QuestionBank, load_bank_file, seed_bank


def _codes(issues):
    return {issue.code for issue in issues}


def _document(**changes):
    document = copy.deepcopy(DIABETES)
    document.update(changes)
    return document


def test_clean_assessment_has_no_issues(diabetes):
    assert check_assessment(diabetes) == []


def test_dangling_next_question_is_an_error():
    document = _document()
    document["questions"][0]["choices"][0]["nextQuestionId"] = "Q404"

    issues = check_assessment(Assessment.model_validate(document))
    assert "DANGLING_REFERENCE" in _codes(issues)
    assert all(i.severity == "error" for i in issues if i.code == "DANGLING_REFERENCE")


def test_duplicate_choice_text_is_an_error():
    document = _document()
    document["questions"][1]["choices"][1]["choiceText"] = "Yes"

    assert "DUPLICATE_CHOICE" in _codes(check_assessment(Assessment.model_validate(document)))


def test_duplicate_question_id_is_an_error():
    document = _document()
    document["questions"][1]["questionId"] = "Q1"

    assert "DUPLICATE_QUESTION" in _codes(check_assessment(Assessment.model_validate(document)))


def test_criterion_on_unknown_question_is_an_error():
    document = _document()
    document["outcomes"][0]["criteria"].append({"questionId": "Q7", "expectedAnswer": "Yes"})

    assert "UNKNOWN_CRITERION_QUESTION" in _codes(check_assessment(Assessment.model_validate(document)))


def test_choice_question_without_choices_is_an_error():
    document = _document()
    document["questions"][1]["choices"] = []

    assert "NO_CHOICES" in _codes(check_assessment(Assessment.model_validate(document)))


def test_empty_criteria_is_flagged_as_warning():
    document = _document()
    document["outcomes"].append({"outcomeId": "ANY", "description": "Anything", "criteria": []})

    issues = check_assessment(Assessment.model_validate(document))
    assert _codes(issues) == {"EMPTY_CRITERIA"}
    assert issues[0].severity == "warning"


def test_catch_all_before_other_outcomes_is_flagged():
    document = _document()
    document["outcomes"].insert(0, {"outcomeId": "ANY", "description": "Anything", "criteria": []})

    assert {"EMPTY_CRITERIA", "CATCH_ALL_NOT_LAST"} <= _codes(check_assessment(Assessment.model_validate(document)))


def test_validate_raises_on_errors_and_logs_warnings(caplog):
    broken = _document()
    broken["questions"][0]["choices"][0]["nextQuestionId"] = "Q404"
    with pytest.raises(BankValidationError) as excinfo:
        validate_assessment(Assessment.model_validate(broken))
    assert "Q404" in str(excinfo.value)

    hazardous = _document()
    hazardous["outcomes"].append({"outcomeId": "ANY", "description": "Anything", "criteria": []})
    with caplog.at_level(logging.WARNING):
        warnings = validate_assessment(Assessment.model_validate(hazardous))
    assert _codes(warnings) == {"EMPTY_CRITERIA"}
    assert "EMPTY_CRITERIA" in caplog.text


def test_camel_and_snake_case_documents_are_equivalent(diabetes):
    snake = Assessment.model_validate(diabetes.model_dump())
    assert snake == diabetes
    assert diabetes.outcomes[0].icd10_code == "E11.9"


def test_payload_hides_next_question_references(diabetes):
    payload = diabetes.question("Q1").payload()
    assert payload["choices"] == ["Yes", "No"]
    assert "nextQuestionId" not in json.dumps(payload)
    assert "next_question_id" not in json.dumps(payload)


# ---------- question bank store ----------

def test_seed_and_get_roundtrip(seeded_db, diabetes):
    assert QuestionBank(seeded_db).get("diabetes") == diabetes


def test_get_unknown_type(seeded_db):
    with pytest.raises(NotFoundError):
        QuestionBank(seeded_db).get("cancer")


def test_seed_rejects_invalid_documents_without_writing(db, diabetes):
    broken = _document(assessmentType="cancer", assessmentId="ped-cancer")
    broken["questions"][0]["choices"][0]["nextQuestionId"] = "Q404"

    with pytest.raises(BankValidationError):
        seed_bank(db, [diabetes, Assessment.model_validate(broken)])

    with pytest.raises(NotFoundError):
        QuestionBank(db).get("diabetes")


def test_seed_upserts_by_type(seeded_db):
    renamed = _document(name="Diabetes mellitus")
    seed_bank(seeded_db, [Assessment.model_validate(renamed)])

    assert QuestionBank(seeded_db).get("diabetes").name == "Diabetes mellitus"


def test_list_active_skips_inactive(seeded_db):
    retired = _document(assessmentType="legacy", assessmentId="ped-legacy", inactive=True)
    seed_bank(seeded_db, [Assessment.model_validate(retired)])

    assert [a.assessment_type for a in QuestionBank(seeded_db).list_active()] == ["diabetes"]


def test_shipped_question_bank_is_valid(db):
    assessments = load_bank_file(BACKEND_DIR / "data" / "question_bank.json")

    assert {a.assessment_type for a in assessments} == {"diabetes", "hypertension"}
    for assessment in assessments:
        assert [i for i in check_assessment(assessment) if i.severity == "error"] == []

    seed_bank(db, assessments)
    assert len(QuestionBank(db).list_active()) == 2
