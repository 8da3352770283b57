"""
Demo Quizzes

Built-in quizzes that can be taken without an account. They never touch
the database: attempts on them are scored locally and not persisted.
Question and option ids are derived deterministically from the demo slug
so answer maps stay stable across processes.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.schemas.quiz import (
    QuizDetailResponse,
    QuestionResponse,
    OptionResponse,
    QuizStatus,
    QuizSource,
)

DEMO_PREFIX = "demo-"

_DEMO_OWNER = uuid.UUID(int=0)
_DEMO_CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)

# (question, [(option, is_correct), ...])
DEMO_CATALOGUE: Dict[str, dict] = {
    "demo-python": {
        "title": "Python Fundamentals",
        "description": "Core Python: built-in types, comprehensions, scoping and exceptions.",
        "questions": [
            (
                "What does `type([])` return?",
                [("<class 'list'>", True), ("<class 'tuple'>", False), ("<class 'dict'>", False), ("<class 'set'>", False)],
            ),
            (
                "Which expression builds a list of squares of 0..4?",
                [("[x * x for x in range(5)]", True), ("(x * x for x in range(5))", False), ("{x * x for x in range(5)}", False), ("map(x * x, range(5))", False)],
            ),
            (
                "Which statement makes a name inside a nested function refer to the enclosing function's variable?",
                [("global", False), ("nonlocal", True), ("static", False), ("extern", False)],
            ),
            (
                "Which exception does `{}['missing']` raise?",
                [("IndexError", False), ("ValueError", False), ("KeyError", True), ("LookupError is never raised", False)],
            ),
        ],
    },
    "demo-sql": {
        "title": "SQL Essentials",
        "description": "Joins, aggregation and constraints in relational databases.",
        "questions": [
            (
                "Which join returns only rows with a match in both tables?",
                [("LEFT JOIN", False), ("INNER JOIN", True), ("FULL OUTER JOIN", False), ("CROSS JOIN", False)],
            ),
            (
                "Which clause filters groups after aggregation?",
                [("WHERE", False), ("HAVING", True), ("ORDER BY", False), ("LIMIT", False)],
            ),
            (
                "What does ON DELETE CASCADE do on a foreign key?",
                [("Deletes child rows when the parent row is deleted", True), ("Blocks deleting the parent row", False), ("Sets the child column to NULL", False), ("Nothing until COMMIT", False)],
            ),
        ],
    },
    "demo-http": {
        "title": "HTTP Basics",
        "description": "Status codes and methods every API developer should know.",
        "questions": [
            (
                "Which status code means the request lacks valid authentication?",
                [("401", True), ("403", False), ("404", False), ("409", False)],
            ),
            (
                "Which method is idempotent and replaces a resource?",
                [("POST", False), ("PUT", True), ("PATCH", False), ("CONNECT", False)],
            ),
            (
                "Which status code fits a successful delete with no body?",
                [("200", False), ("201", False), ("204", True), ("202", False)],
            ),
        ],
    },
}


def is_demo_quiz_id(quiz_id) -> bool:
    return isinstance(quiz_id, str) and quiz_id.startswith(DEMO_PREFIX)


def demo_uuid(*parts) -> uuid.UUID:
    return uuid.uuid5(uuid.NAMESPACE_URL, "/".join(str(p) for p in parts))


def _build_demo_quiz(slug: str, data: dict) -> QuizDetailResponse:
    quiz_uuid = demo_uuid(slug)
    questions: List[QuestionResponse] = []

    for q_index, (content, options) in enumerate(data["questions"], start=1):
        question_id = demo_uuid(slug, q_index)
        questions.append(
            QuestionResponse(
                id=question_id,
                quiz_id=quiz_uuid,
                content=content,
                position=q_index,
                options=[
                    OptionResponse(
                        id=demo_uuid(slug, q_index, o_index),
                        question_id=question_id,
                        content=option_content,
                        is_correct=is_correct,
                        position=o_index,
                    )
                    for o_index, (option_content, is_correct) in enumerate(options, start=1)
                ],
            )
        )

    return QuizDetailResponse(
        id=quiz_uuid,
        user_id=_DEMO_OWNER,
        title=data["title"],
        description=data["description"],
        status=QuizStatus.PUBLIC,
        source=QuizSource.MANUAL,
        created_at=_DEMO_CREATED_AT,
        updated_at=_DEMO_CREATED_AT,
        questions=questions,
    )


def get_demo_quiz(quiz_id: str) -> Optional[QuizDetailResponse]:
    data = DEMO_CATALOGUE.get(quiz_id)
    if data is None:
        return None
    return _build_demo_quiz(quiz_id, data)


def get_all_demo_quizzes() -> List[QuizDetailResponse]:
    return [_build_demo_quiz(slug, data) for slug, data in DEMO_CATALOGUE.items()]
