from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
import logging

from server.services.agent_client import AgentClient, AgentReply, get_agent_client
from server.services.observability import observability
from server.services.json_block import strict_decode, strip_fences
from server.services.prompts import (
    build_coach_prompt,
    build_decision_review_prompt,
    build_quiz_prompt,
    build_scenario_prompt,
)
from server.services.quiz_pipeline import DIAGNOSTIC_EXCERPT_CHARS, EmptyResponse, NormalizationError, normalize
from server.services.text_extract import extract_assistant_text

logger = logging.getLogger("training_routes")

router = APIRouter(prefix="/api/training", tags=["training"])

SOURCE_TEXT_MAX_CHARS = 30000
MAX_QUESTIONS = 20
MISSING_CONFIG_ERROR = "Server is missing Lumination API env vars."
SIMULATOR_MODES = ("generate", "evaluate")


def agent_client_dependency() -> Optional[AgentClient]:
    return get_agent_client()


def _error(status: int, message: str, **extra: Any) -> JSONResponse:
    payload: Dict[str, Any] = {"error": message}
    payload.update(extra)
    return JSONResponse(status_code=status, content=payload)


def _upstream_error(reply: AgentReply) -> JSONResponse:
    return _error(reply.status, f"Lumination API request failed (status {reply.status}).", details=reply.data)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def clamp_question_count(value: Any) -> int:
    try:
        n = int(float(value or 1))
    except (TypeError, ValueError, OverflowError):
        n = 1
    return min(MAX_QUESTIONS, max(1, n))


# ── Request models ──────────────────────────────────────────────

class QuizRequestIn(BaseModel):
    sourceText: Optional[Any] = None
    questionCount: Optional[Any] = 1
    difficulty: Optional[Any] = None


class ChatMessageIn(BaseModel):
    role: str
    content: str


class CoachRequestIn(BaseModel):
    message: Optional[Any] = None
    contextText: Optional[Any] = None
    history: Optional[List[ChatMessageIn]] = None


class SimulatorRequestIn(BaseModel):
    mode: Optional[Any] = None
    role: Optional[Any] = None
    challenge: Optional[Any] = None
    difficulty: Optional[Any] = None
    scenario: Optional[Any] = None
    options: Optional[List[Any]] = None
    selectedOption: Optional[Any] = None
    rationale: Optional[Any] = None


# ── Response models ─────────────────────────────────────────────

class StatusOut(BaseModel):
    ok: bool
    message: str


class QuestionOut(BaseModel):
    question: str
    choices: List[str]
    correctIndex: int
    explanation: str


class QuizOut(BaseModel):
    title: str
    questions: List[QuestionOut]


class QuizResultOut(BaseModel):
    result: QuizOut


class CoachOut(BaseModel):
    reply: str


class SimulatorOut(BaseModel):
    mode: str
    result: Any


@router.get("/pdf-quiz-generator", response_model=StatusOut, summary="Quiz generator status")
def quiz_status():
    return {"ok": True, "message": "PDF Quiz Generator API is running. Use POST."}


@router.post("/pdf-quiz-generator", response_model=QuizResultOut, summary="Generate a quiz", description="Ask the agent for a multiple-choice quiz over `sourceText` and normalize whatever it returns into exactly-four-choice questions.")
def generate_quiz(data: QuizRequestIn, client: Optional[AgentClient] = Depends(agent_client_dependency)):
    if client is None:
        return _error(500, MISSING_CONFIG_ERROR)

    source_text = _text(data.sourceText)[:SOURCE_TEXT_MAX_CHARS]
    if not source_text:
        return _error(400, "sourceText is required.")
    question_count = clamp_question_count(data.questionCount)
    difficulty = _text(data.difficulty) or "intermediate"

    observability.incr("quiz_generate_attempt_total")
    with observability.timed("quiz_generate_latency_ms"):
        reply = client.send_prompt(build_quiz_prompt(source_text, question_count, difficulty), request_prefix="quiz")
        if not reply.ok:
            observability.incr("quiz_generate_upstream_error_total")
            return _upstream_error(reply)

        try:
            result = normalize(reply.data, question_count, client=client)
        except EmptyResponse as e:
            observability.incr("quiz_generate_empty_total")
            return _error(502, str(e))
        except NormalizationError as e:
            observability.incr("quiz_generate_unparsable_total")
            return _error(502, str(e), raw=e.raw_excerpt)

    observability.incr("quiz_generate_success_total")
    logger.info("Generated %d/%d questions via %s", len(result.questions), question_count, result.stage.value)
    return {"result": result.to_wire()}


@router.get("/ai-coach-chatbot", response_model=StatusOut, summary="Coach chatbot status")
def coach_status():
    return {"ok": True, "message": "AI Coach Chatbot API is running. Use POST."}


@router.post("/ai-coach-chatbot", response_model=CoachOut, summary="Chat with the training coach", description="Send one user message (with optional PDF context and prior turns) to the agent and return its reply.")
def coach_chat(data: CoachRequestIn, client: Optional[AgentClient] = Depends(agent_client_dependency)):
    if client is None:
        return _error(500, MISSING_CONFIG_ERROR)

    message = _text(data.message)
    if not message:
        return _error(400, "message is required.")

    history = [m.model_dump() for m in (data.history or [])]
    with observability.timed("coach_chat_latency_ms"):
        reply = client.send_prompt(build_coach_prompt(message, _text(data.contextText), history), request_prefix="ai-coach")
    if not reply.ok:
        return _upstream_error(reply)

    text = extract_assistant_text(reply.data)
    if not text:
        return _error(502, "Agent returned an empty response.")
    return {"reply": text}


@router.get("/leadership-decision-simulator", response_model=StatusOut, summary="Leadership simulator status")
def simulator_status():
    return {"ok": True, "message": "Leadership Decision Simulator API is running. Use POST."}


@router.post("/leadership-decision-simulator", response_model=SimulatorOut, summary="Generate or evaluate a leadership scenario", description="`generate` asks the agent for a decision scenario with four options; `evaluate` asks it to score the option the manager picked. The agent's JSON is returned as-is under `result`.")
def leadership_simulator(data: SimulatorRequestIn, client: Optional[AgentClient] = Depends(agent_client_dependency)):
    if client is None:
        return _error(500, MISSING_CONFIG_ERROR)

    mode = _text(data.mode)
    if mode not in SIMULATOR_MODES:
        return _error(400, "mode must be either generate or evaluate.")

    role = _text(data.role)
    challenge = _text(data.challenge)
    difficulty = _text(data.difficulty)
    if not role or not challenge or not difficulty:
        return _error(400, "role, challenge and difficulty are required.")

    if mode == "generate":
        prompt = build_scenario_prompt(role, challenge, difficulty)
    else:
        prompt = build_decision_review_prompt(
            role,
            challenge,
            difficulty,
            scenario=_text(data.scenario),
            options=[_text(o) for o in (data.options or [])],
            selected_option=_text(data.selectedOption),
            rationale=_text(data.rationale),
        )

    with observability.timed("leadership_sim_latency_ms"):
        reply = client.send_prompt(prompt, request_prefix="leadership-sim")
    if not reply.ok:
        return _error(reply.status, "Lumination API request failed.", details=reply.data)

    text = extract_assistant_text(reply.data)
    result = strict_decode(strip_fences(text))
    if result is None:
        return _error(502, "Agent did not return valid JSON.", raw=text[:DIAGNOSTIC_EXCERPT_CHARS])
    return {"mode": mode, "result": result}
