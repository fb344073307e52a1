# Failure kinds raised by the assessment core.
# Each one carries a stable code and the HTTP status the transport maps it to;
# only the routers turn these into HTTP responses.


class AssessmentError(Exception):
    code = "ASSESSMENT_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AssessmentError):  # assessment or question absent
    code = "NOT_FOUND"
    status_code = 404


class InvalidAnswerError(AssessmentError):  # submitted text is not one of the offered choices
    code = "INVALID_ANSWER"
    status_code = 400


class InvalidStateError(AssessmentError):  # stale position or dangling next-question reference
    code = "INVALID_STATE"
    status_code = 409


class EmptyAssessmentError(AssessmentError):
    code = "EMPTY_ASSESSMENT"
    status_code = 422


class PersistenceFailure(AssessmentError):  # the respondent record could not be saved
    code = "PERSISTENCE_FAILURE"
    status_code = 503


class MissingSessionError(AssessmentError):
    code = "MISSING_SESSION"
    status_code = 401


class MissingIdentityError(AssessmentError):
    code = "MISSING_IDENTITY"
    status_code = 401


class BankValidationError(ValueError):
    """Raised when a question bank document fails authoring checks."""

    def __init__(self, assessment_type: str, issues: list):
        self.assessment_type = assessment_type
        self.issues = issues
        lines = "; ".join(str(issue) for issue in issues)
        super().__init__(f"Assessment '{assessment_type}' is invalid: {lines}")
