"""Last-resort MCQ extraction from plain text.

Used when the model ignored the JSON instructions entirely and wrote
something like::

    1. What is X?
    A) one
    B) two
    C) three
    D) four
    Correct: B
    Explanation: ...
"""

from typing import List, Optional
import re

from server.models import Question, CHOICES_PER_QUESTION
from server.services.mcq_validator import resolve_correct_index

_QUESTION_START_RE = re.compile(
    r"^\s*(?:#+\s*)?(?:\*\*)?\s*(?P<label>(?:question|q)\s*)?(?P<num>\d+)\s*(?:\*\*)?\s*[.):]\s*(?:\*\*)?\s*(?P<rest>.*)$",
    re.IGNORECASE,
)
_LETTER_OPTION_RE = re.compile(r"^\s*\(?(?P<letter>[A-Da-d])\s*[).:]\s*(?P<text>.+)$")
_BULLET_OPTION_RE = re.compile(r"^\s*[-*•]\s+(?P<text>.+)$")
_NUMBER_OPTION_RE = re.compile(r"^\s*\(?(?P<num>\d+)\s*[).:]\s*(?P<text>.+)$")
_ANSWER_RE = re.compile(
    r"^\s*(?:\*\*)?\s*(?:correct(?:\s+(?:answer|option|choice))?|answer)\s*(?:\*\*)?\s*[:=\-]\s*(?:\*\*)?\s*(?P<value>.*)$",
    re.IGNORECASE,
)
_EXPLANATION_RE = re.compile(
    r"^\s*(?:\*\*)?\s*(?:explanation|because|rationale)\s*(?:\*\*)?\s*[:\-]\s*(?:\*\*)?\s*(?P<value>.*)$",
    re.IGNORECASE,
)
_ANSWER_TOKEN_RE = re.compile(r"^\(?([A-Za-z]|\d+)\b")
_ANSWER_ANYWHERE_RE = re.compile(r"\b([A-Da-d]|[1-4])\b")


def _clean_line(s: str) -> str:
    return s.strip().strip("*").strip()


def _answer_index(value: str) -> int:
    value = _clean_line(value)
    m = _ANSWER_TOKEN_RE.match(value)
    if m:
        idx = resolve_correct_index(m.group(1), one_based_first=True)
        if idx != -1:
            return idx
    m = _ANSWER_ANYWHERE_RE.search(value)
    if m:
        idx = resolve_correct_index(m.group(1), one_based_first=True)
        if idx != -1:
            return idx
    return 0


class _Block:
    def __init__(self, first_line: str):
        self.text = _clean_line(first_line)
        self.choices: List[str] = []
        self.correct_index: Optional[int] = None
        self.explanation = ""

    def collecting_choices(self) -> bool:
        return bool(self.text) and self.correct_index is None and len(self.choices) < CHOICES_PER_QUESTION

    def feed(self, line: str) -> None:
        if not line.strip():
            return
        m = _ANSWER_RE.match(line)
        if m:
            self.correct_index = _answer_index(m.group("value"))
            return
        m = _EXPLANATION_RE.match(line)
        if m:
            self.explanation = _clean_line(m.group("value"))
            return
        option = (
            _LETTER_OPTION_RE.match(line)
            or _BULLET_OPTION_RE.match(line)
            or _NUMBER_OPTION_RE.match(line)
        )
        if option and self.text:
            if len(self.choices) < CHOICES_PER_QUESTION:
                choice = _clean_line(option.group("text"))
                if choice:
                    self.choices.append(choice)
            return
        if not self.text:
            self.text = _clean_line(line)

    def to_question(self) -> Optional[Question]:
        if not self.text or len(self.choices) != CHOICES_PER_QUESTION:
            return None
        return Question(
            text=self.text,
            choices=self.choices,
            correct_index=self.correct_index if self.correct_index is not None else 0,
            explanation=self.explanation,
        )


def _starts_question(line: str, block: Optional[_Block]) -> Optional[re.Match]:
    m = _QUESTION_START_RE.match(line)
    if not m:
        return None
    # "1) foo" right under a question is its first option, not the next question
    if block is not None and not m.group("label") and block.collecting_choices():
        if int(m.group("num")) == len(block.choices) + 1:
            return None
    return m


def split_blocks(text: str) -> List[_Block]:
    blocks: List[_Block] = []
    current: Optional[_Block] = None
    for line in (text or "").splitlines():
        m = _starts_question(line, current)
        if m:
            current = _Block(m.group("rest"))
            blocks.append(current)
        elif current is not None:
            current.feed(line)
    return blocks


def parse_text_questions(text: str, question_count: int) -> List[Question]:
    questions: List[Question] = []
    for block in split_blocks(text):
        if len(questions) >= question_count:
            break
        q = block.to_question()
        if q is not None:
            questions.append(q)
    return questions
