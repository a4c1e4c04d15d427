from typing import List, Dict, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_QUIZ_TITLE = "Document Quiz"
CHOICES_PER_QUESTION = 4


class PipelineStage(str, Enum):
    """States the normalization pipeline passes through for one agent reply."""

    EXTRACTED = "extracted"
    STRICT_OK = "strict_ok"
    BRACE_OK = "brace_ok"
    REPAIR_OK = "repair_ok"
    REPAIR_FAIL = "repair_fail"
    HEURISTIC = "heuristic"
    DONE = "done"
    EXHAUSTED = "exhausted"


class Question(BaseModel):
    """Canonical MCQ. Serialised with the wire names the frontend expects."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(alias="question", min_length=1)
    choices: List[str] = Field(min_length=CHOICES_PER_QUESTION, max_length=CHOICES_PER_QUESTION)
    correct_index: int = Field(alias="correctIndex", ge=0, le=CHOICES_PER_QUESTION - 1)
    explanation: str = ""

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question text is blank")
        return v

    @field_validator("choices")
    @classmethod
    def _choices_not_blank(cls, v: List[str]) -> List[str]:
        if any(not c.strip() for c in v):
            raise ValueError("choices must be non-empty")
        return v

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class QuizResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = DEFAULT_QUIZ_TITLE
    questions: List[Question] = Field(min_length=1)
    # stage whose output produced the questions; not part of the wire format
    stage: PipelineStage = Field(default=PipelineStage.DONE, exclude=True)

    def to_wire(self) -> Dict[str, Any]:
        return {"title": self.title, "questions": [q.to_wire() for q in self.questions]}
