import itertools

import pytest

from app.schemas.quiz import QuizStatus
from app.services.quiz_validator import (
    can_change_visibility,
    can_publish,
    can_unpublish,
    is_valid_status_transition,
    validate_for_publishing,
)
from tests.factories import quiz_detail


STATUSES = ["draft", "public", "private", "archived"]

ALLOWED = {
    ("draft", "public"),
    ("draft", "archived"),
    ("public", "draft"),
    ("public", "private"),
    ("public", "archived"),
    ("private", "draft"),
    ("private", "public"),
    ("private", "archived"),
    ("archived", "draft"),
}


@pytest.mark.parametrize("current,new", list(itertools.product(STATUSES, STATUSES)))
def test_transition_table(current, new):
    assert is_valid_status_transition(current, new) is ((current, new) in ALLOWED)


@pytest.mark.parametrize(
    "current,new",
    [
        ("published", "draft"),
        ("draft", "published"),
        ("Draft", "public"),
        ("draft ", "public"),
        ("", "draft"),
    ],
)
def test_unknown_or_unnormalised_statuses_are_rejected(current, new):
    assert is_valid_status_transition(current, new) is False


def test_transition_accepts_enum_members():
    assert is_valid_status_transition(QuizStatus.DRAFT, QuizStatus.PUBLIC)
    assert not is_valid_status_transition(QuizStatus.ARCHIVED, QuizStatus.PUBLIC)


def test_publish_only_from_draft():
    assert can_publish("draft")
    # private -> public is a visibility toggle, not a publish
    assert not can_publish("private")
    assert not can_publish("public")
    assert not can_publish("archived")


def test_unpublish_from_published_states():
    assert can_unpublish("public")
    assert can_unpublish(QuizStatus.PRIVATE)
    assert not can_unpublish("draft")
    assert not can_unpublish("archived")


def test_visibility_toggle():
    assert can_change_visibility("public", "private")
    assert can_change_visibility("private", "public")
    assert not can_change_visibility("draft", "public")
    assert not can_change_visibility("public", "public")
    assert not can_change_visibility("private", "draft")


class TestValidateForPublishing:
    def test_valid_quiz(self):
        quiz = quiz_detail([[("4", True), ("5", False)]])
        result = validate_for_publishing(quiz)
        assert result.valid
        assert result.errors == []

    def test_no_questions(self):
        quiz = quiz_detail([])
        result = validate_for_publishing(quiz)
        assert not result.valid
        assert result.errors == ["Quiz must have at least one question"]

    def test_blank_title_is_reported_with_other_errors(self):
        quiz = quiz_detail([], title="   ")
        result = validate_for_publishing(quiz)
        assert result.errors == [
            "Quiz must have a title",
            "Quiz must have at least one question",
        ]

    def test_question_errors_are_collected(self):
        quiz = quiz_detail([
            [("only option", False)],
            [],
            [("a", True), ("", False)],
        ])
        result = validate_for_publishing(quiz)
        assert not result.valid
        assert result.errors == [
            "Question 1 must have at least 2 options",
            "Question 1 must have at least one correct answer",
            "Question 2 must have at least one option",
            "Question 3, option 2 must have content",
        ]

    def test_multiple_correct_options_are_allowed(self):
        quiz = quiz_detail([[("a", True), ("b", True), ("c", False)]])
        assert validate_for_publishing(quiz).valid
