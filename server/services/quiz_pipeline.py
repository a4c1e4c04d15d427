"""Turn an agent reply into a validated quiz.

Stages run from strict to permissive and stop at the first one that yields
usable data:

    extract text -> strip fences -> json.loads -> brace scan -> repair call
    -> normalize fields -> (if nothing survived) plain-text heuristics

Only total failure is reported to the caller, as a NormalizationError.
"""

from typing import Any, List, Optional, Tuple
import logging

from server.models import DEFAULT_QUIZ_TITLE, PipelineStage, Question, QuizResult
from server.services.agent_client import AgentClient
from server.services.heuristic_parser import parse_text_questions
from server.services.json_block import brace_scan_decode, strict_decode, strip_fences
from server.services.mcq_validator import normalize_questions
from server.services.observability import observability
from server.services.quiz_repair import request_repair
from server.services.text_extract import extract_assistant_text

logger = logging.getLogger("quiz_pipeline")

DIAGNOSTIC_EXCERPT_CHARS = 3000


class NormalizationError(Exception):
    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_excerpt = (raw_text or "")[:DIAGNOSTIC_EXCERPT_CHARS]


class EmptyResponse(NormalizationError):
    def __init__(self, raw_text: str = ""):
        super().__init__("Agent returned an empty response.", raw_text)


class UnparsableContent(NormalizationError):
    def __init__(self, raw_text: str = ""):
        super().__init__("Agent did not return a valid quiz.", raw_text)


def decode_structured(text: str, question_count: int, client: Optional[AgentClient]) -> Tuple[Optional[Any], PipelineStage]:
    value = strict_decode(strip_fences(text))
    if value is not None:
        return value, PipelineStage.STRICT_OK

    value = brace_scan_decode(text)
    if value is not None:
        return value, PipelineStage.BRACE_OK

    if client is None:
        return None, PipelineStage.REPAIR_FAIL
    value = request_repair(client, text, question_count)
    if value is not None:
        return value, PipelineStage.REPAIR_OK
    return None, PipelineStage.REPAIR_FAIL


def _title_from(value: Any) -> str:
    if isinstance(value, dict):
        title = value.get("title")
        if title is not None and str(title).strip():
            return str(title).strip()
    return DEFAULT_QUIZ_TITLE


def _record(outcome: PipelineStage, path: List[PipelineStage], questions: int, requested: int) -> None:
    for stage in path + [outcome]:
        observability.incr(f"quiz_stage_{stage.value}_total")
    observability.add_trace({
        "event": "quiz_normalize",
        "outcome": outcome.value,
        "path": [s.value for s in path],
        "questions": questions,
        "requested": requested,
    })


def normalize(envelope: Any, question_count: int, client: Optional[AgentClient] = None) -> QuizResult:
    """Normalize an agent response envelope into a QuizResult.

    `client` is used for the single repair call; pass None to run the
    local stages only. Raises EmptyResponse when the envelope holds no
    text and UnparsableContent when every stage came up empty.
    """
    if question_count < 1:
        raise ValueError("question_count must be >= 1")

    text = extract_assistant_text(envelope)
    if not text:
        _record(PipelineStage.EXHAUSTED, [], 0, question_count)
        raise EmptyResponse()

    value, decode_stage = decode_structured(text, question_count, client)
    logger.debug("decode finished in stage %s", decode_stage.value)

    path = [PipelineStage.EXTRACTED, decode_stage]
    questions: List[Question] = normalize_questions(value, question_count)
    if not questions:
        questions = parse_text_questions(text, question_count)
        path.append(PipelineStage.HEURISTIC)

    if not questions:
        logger.info("quiz normalization exhausted (decode stage %s)", decode_stage.value)
        _record(PipelineStage.EXHAUSTED, path, 0, question_count)
        raise UnparsableContent(text)

    _record(PipelineStage.DONE, path, len(questions), question_count)
    return QuizResult(
        title=_title_from(value),
        questions=questions[:question_count],
        stage=path[-1],
    )
