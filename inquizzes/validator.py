# inquizzes/validator.py
import logging
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from inquizzes.schemas import Question

logger = logging.getLogger(__name__)

OPTION_COUNT = 4


def _answer_index(answer: Any) -> Optional[int]:
    # bool is an int subclass; true/false from the model is not an index
    if isinstance(answer, bool):
        return None
    if isinstance(answer, float) and answer.is_integer():
        answer = int(answer)
    if not isinstance(answer, int) or not 0 <= answer < OPTION_COUNT:
        return None
    return answer


def _is_valid_candidate(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    question = item.get("question")
    if not isinstance(question, str) or not question.strip():
        return False
    options = item.get("options")
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        return False
    if not all(isinstance(o, str) for o in options):
        return False
    if _answer_index(item.get("correctAnswer")) is None:
        return False
    return isinstance(item.get("explanation"), str)


def validate_questions(candidates: Iterable[Any], max_count: Optional[int] = None) -> List[Question]:
    """
    Keep the candidates that have the exact question shape, in their original order.

    Ids from the model are kept only as placeholders; the generator assigns
    final ids. Never raises: nothing valid means an empty list.
    """
    valid: List[Question] = []
    dropped = 0
    for index, item in enumerate(candidates or []):
        if max_count is not None and len(valid) >= max_count:
            break
        if not _is_valid_candidate(item):
            dropped += 1
            continue
        try:
            question = Question(
                id=str(item.get("id") or f"q{index + 1}"),
                question=item["question"],
                options=list(item["options"]),
                correct_answer=_answer_index(item["correctAnswer"]),
                explanation=item["explanation"],
            )
        except ValidationError as e:
            # e.g. lone surrogates from a "\ud83d" escape pass isinstance(str) but not pydantic
            logger.debug("Question candidate rejected by schema: %s", e)
            dropped += 1
            continue
        valid.append(question)
    if dropped:
        logger.info("Dropped %d malformed question candidate(s)", dropped)
    return valid
