# inquizzes/scoring.py
import math
from dataclasses import dataclass
from typing import Dict, List

from inquizzes.schemas import IncorrectAnswer, Quiz, SubmittedAnswer, UserAnswer


@dataclass(frozen=True)
class ScoreResult:
    score: int
    correct_count: int
    total_questions: int
    answers: List[UserAnswer]
    incorrect_answers: List[IncorrectAnswer]


def _percentage(correct: int, total: int) -> int:
    if total == 0:
        return 0
    # round half up, not banker's rounding
    return int(math.floor(100 * correct / total + 0.5))


def score_answers(quiz: Quiz, answers: List[SubmittedAnswer]) -> ScoreResult:
    """
    Grade submitted answers against the quiz key.

    Answers for ids the quiz doesn't contain are ignored, as are repeat answers
    to the same question (the first one counts). Unanswered questions still
    count toward the total.
    """
    graded: Dict[str, UserAnswer] = {}
    for answer in answers:
        question = quiz.find_question(answer.question_id)
        if question is None or answer.question_id in graded:
            continue
        graded[answer.question_id] = UserAnswer(
            question_id=answer.question_id,
            selected_answer=answer.selected_answer,
            is_correct=answer.selected_answer == question.correct_answer,
        )

    correct_count = sum(1 for a in graded.values() if a.is_correct)
    incorrect = [
        IncorrectAnswer(
            question=q,
            user_answer=graded[q.id].selected_answer,
            correct_answer=q.correct_answer,
        )
        for q in quiz.questions
        if q.id in graded and not graded[q.id].is_correct
    ]
    return ScoreResult(
        score=_percentage(correct_count, len(quiz.questions)),
        correct_count=correct_count,
        total_questions=len(quiz.questions),
        answers=list(graded.values()),
        incorrect_answers=incorrect,
    )
