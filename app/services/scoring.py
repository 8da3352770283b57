"""
Scoring

All-or-nothing scoring of a quiz attempt plus small answer-map helpers.
Answer maps are keyed by question id (as a string) and hold the selected
option ids.
"""

from typing import Dict, List, Mapping, Sequence

from app.schemas.quiz import QuizDetailResponse

UserAnswers = Mapping[str, Sequence[str]]


def _selected(user_answers: UserAnswers, question_id) -> set:
    return {str(option_id) for option_id in user_answers.get(str(question_id), ())}


def question_results(quiz: QuizDetailResponse, user_answers: UserAnswers) -> Dict[str, bool]:
    """Correctness of every question, keyed by question id."""
    results = {}
    for question in quiz.questions or []:
        correct = {str(option.id) for option in question.options if option.is_correct}
        # Exact set equality: no partial credit
        results[str(question.id)] = _selected(user_answers, question.id) == correct
    return results


def calculate_score(quiz: QuizDetailResponse, user_answers: UserAnswers) -> int:
    """Number of questions whose selected set equals the correct set."""
    return sum(1 for is_correct in question_results(quiz, user_answers).values() if is_correct)


def is_answer_complete(user_answers: UserAnswers, question_id) -> bool:
    return len(user_answers.get(str(question_id), ())) > 0


def get_answered_count(user_answers: UserAnswers) -> int:
    return sum(1 for question_id in user_answers if is_answer_complete(user_answers, question_id))


def are_all_questions_answered(quiz: QuizDetailResponse, user_answers: UserAnswers) -> bool:
    if not quiz.questions:
        return False
    return all(is_answer_complete(user_answers, q.id) for q in quiz.questions)


def to_percentage(score: int, total_questions: int) -> int:
    """Rounded percentage; presentation only, never stored."""
    if total_questions <= 0:
        return 0
    return round(score / total_questions * 100)


def normalize_answers(user_answers: Mapping) -> Dict[str, List[str]]:
    """Copy an answer map with string keys and values."""
    return {
        str(question_id): [str(option_id) for option_id in option_ids]
        for question_id, option_ids in user_answers.items()
    }
