"""
Quiz Validator

Pure checks run before a quiz changes status:
- structural readiness for publishing
- legality of a status transition
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Union

from app.schemas.quiz import QuizDetailResponse


@dataclass(frozen=True)
class QuizValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


# from-status -> statuses it may move to
STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "draft": frozenset({"public", "archived"}),
    "public": frozenset({"draft", "private", "archived"}),
    "private": frozenset({"draft", "public", "archived"}),
    "archived": frozenset({"draft"}),
}

PUBLISH_TRANSITIONS = frozenset({("draft", "public")})
UNPUBLISH_TRANSITIONS = frozenset({("public", "draft"), ("private", "draft")})
VISIBILITY_TRANSITIONS = frozenset({("public", "private"), ("private", "public")})


def _blank(value) -> bool:
    return not value or not str(value).strip()


def validate_for_publishing(quiz: QuizDetailResponse) -> QuizValidationResult:
    """
    Check that a quiz is ready to be published.

    Every violation is collected; messages are positional (1-based) so the
    editor can point at the offending question or option.
    """
    errors: List[str] = []

    if _blank(quiz.title):
        errors.append("Quiz must have a title")

    if not quiz.questions:
        errors.append("Quiz must have at least one question")
        return QuizValidationResult(valid=False, errors=errors)

    for number, question in enumerate(quiz.questions, start=1):
        if _blank(question.content):
            errors.append(f"Question {number} must have content")

        if not question.options:
            errors.append(f"Question {number} must have at least one option")
            continue

        if len(question.options) < 2:
            errors.append(f"Question {number} must have at least 2 options")

        if not any(option.is_correct for option in question.options):
            errors.append(f"Question {number} must have at least one correct answer")

        for option_number, option in enumerate(question.options, start=1):
            if _blank(option.content):
                errors.append(f"Question {number}, option {option_number} must have content")

    return QuizValidationResult(valid=not errors, errors=errors)


def _status_value(status: Union[str, Enum]) -> str:
    # Enum members compare by value; anything else must already be a string
    if isinstance(status, Enum):
        return status.value
    return status


def is_valid_status_transition(current_status: Union[str, Enum], new_status: Union[str, Enum]) -> bool:
    """
    True when moving from current_status to new_status is allowed.

    Comparison is exact: no case folding, no trimming. Unknown statuses and
    self-transitions are rejected.
    """
    current = _status_value(current_status)
    new = _status_value(new_status)
    if not isinstance(current, str) or not isinstance(new, str):
        return False
    return new in STATUS_TRANSITIONS.get(current, frozenset())


def _allowed(pairs: FrozenSet, current_status, new_status) -> bool:
    current = _status_value(current_status)
    new = _status_value(new_status)
    return (current, new) in pairs and is_valid_status_transition(current, new)


def can_publish(current_status: Union[str, Enum]) -> bool:
    return _allowed(PUBLISH_TRANSITIONS, current_status, "public")


def can_unpublish(current_status: Union[str, Enum]) -> bool:
    return _allowed(UNPUBLISH_TRANSITIONS, current_status, "draft")


def can_change_visibility(current_status: Union[str, Enum], new_status: Union[str, Enum]) -> bool:
    return _allowed(VISIBILITY_TRANSITIONS, current_status, new_status)
