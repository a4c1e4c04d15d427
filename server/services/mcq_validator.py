from typing import Dict, Any, List, Optional, Sequence, Tuple
import logging
import re

from server.models import Question, CHOICES_PER_QUESTION

logger = logging.getLogger("mcq_validator")

TEXT_KEYS = ("question", "prompt", "title")
CHOICE_KEYS = ("choices", "options", "answers")
INDEX_KEYS = ("correctIndex", "correct_index")
ANSWER_KEYS = ("correct", "answer", "correctAnswer")
EXPLANATION_KEYS = ("explanation", "rationale", "why")

_LETTERS = "ABCD"


class MCQValidationError(Exception):
    pass


def _first_present(raw: Dict[str, Any], keys: Sequence[str]) -> Tuple[Optional[str], Any]:
    for key in keys:
        if raw.get(key) is not None:
            return key, raw[key]
    return None, None


def _safe_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and re.fullmatch(r"[+-]?\d{1,9}", value.strip()):
        return int(value.strip())
    return None


def _direct_index(value: Any) -> int:
    n = _as_int(value)
    if n is not None and 0 <= n < CHOICES_PER_QUESTION:
        return n
    return -1


def _letter_index(value: Any) -> int:
    if not isinstance(value, str):
        return -1
    letters = re.sub(r"[^A-Za-z]", "", value).upper()
    if len(letters) == 1 and letters in _LETTERS:
        return _LETTERS.index(letters)
    return -1


def _one_based_index(value: Any) -> int:
    n = _as_int(value)
    if n is not None and 1 <= n <= CHOICES_PER_QUESTION:
        return n - 1
    return -1


def resolve_correct_index(value: Any, one_based_first: bool = False) -> int:
    """Map a raw answer value to a 0-based choice index, or -1.

    Index-named fields try the value as a 0-based index, then as a letter
    A-D, then as a 1-based number. Answer-style fields (``one_based_first``)
    carry human labels, so letter and 1-based readings go first.
    """
    if one_based_first:
        rules = (_letter_index, _one_based_index, _direct_index)
    else:
        rules = (_direct_index, _letter_index, _one_based_index)
    for rule in rules:
        idx = rule(value)
        if idx != -1:
            return idx
    return -1


def _resolve_choices(raw: Dict[str, Any]) -> List[str]:
    _, value = _first_present(raw, CHOICE_KEYS)
    if not isinstance(value, list):
        return []
    choices = [_safe_text(c) for c in value]
    return [c for c in choices if c][:CHOICES_PER_QUESTION]


def _resolve_index(raw: Dict[str, Any]) -> int:
    key, value = _first_present(raw, INDEX_KEYS + ANSWER_KEYS)
    if key is None:
        return -1
    return resolve_correct_index(value, one_based_first=key in ANSWER_KEYS)


def normalize_mcq(raw: Dict[str, Any]) -> Question:
    """Normalize and validate one candidate MCQ dict from the LLM.

    Accepts the field aliases models tend to use (``prompt``/``title`` for the
    question, ``options``/``answers`` for choices, ``correct``/``answer``
    letters or 1-based numbers for the index, ``rationale``/``why`` for the
    explanation). Nothing is padded or guessed: a candidate without text,
    exactly four non-blank choices and a resolvable index raises
    MCQValidationError.
    """
    if not isinstance(raw, dict):
        raise MCQValidationError("MCQ is not a JSON object")

    _, q = _first_present(raw, TEXT_KEYS)
    text = _safe_text(q)
    if not text:
        raise MCQValidationError("Missing or invalid 'question' field")

    choices = _resolve_choices(raw)
    if len(choices) != CHOICES_PER_QUESTION:
        raise MCQValidationError(f"Expected {CHOICES_PER_QUESTION} choices, got {len(choices)}")

    correct_index = _resolve_index(raw)
    if not (0 <= correct_index < CHOICES_PER_QUESTION):
        raise MCQValidationError("Missing or invalid correct index")

    _, explanation = _first_present(raw, EXPLANATION_KEYS)

    return Question(
        text=text,
        choices=choices,
        correct_index=correct_index,
        explanation=_safe_text(explanation),
    )


def try_normalize(raw: Dict[str, Any]) -> Optional[Question]:
    try:
        return normalize_mcq(raw)
    except MCQValidationError:
        return None


def normalize_questions(value: Any, question_count: int) -> List[Question]:
    """Normalize every candidate in `value`, dropping invalid ones.

    `value` is a list of candidate dicts or an object holding them under
    ``questions``; anything else yields no questions.
    """
    if isinstance(value, dict):
        value = value.get("questions")
    if not isinstance(value, list):
        return []

    out: List[Question] = []
    dropped = 0
    for raw in value:
        if len(out) >= question_count:
            break
        q = try_normalize(raw)
        if q is None:
            dropped += 1
            continue
        out.append(q)
    if dropped:
        logger.debug("dropped %d invalid candidate(s)", dropped)
    return out
