from typing import Iterable, Optional, Sequence

from underwriting.models.bank import Criterion, Outcome
from underwriting.models.respondent import Response


def criterion_matches(criterion: Criterion, trail: Sequence[Response]) -> bool:
    # exact text comparison against any recorded answer to that question
    return any(
        r.question_id == criterion.question_id and r.answer == criterion.expected_answer
        for r in trail
    )


def resolve(outcomes: Iterable[Outcome], trail: Sequence[Response]) -> Optional[Outcome]:
    """
    Return the first outcome, in document order, whose criteria all hold for
    the answer trail, or None when nothing matches.

    Outcomes are not mutually exclusive by construction, so order is the
    tie-break. An outcome with no criteria matches any trail.
    """
    for outcome in outcomes:
        if all(criterion_matches(c, trail) for c in outcome.criteria):
            return outcome
    return None
