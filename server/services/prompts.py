from typing import Any, Dict, List, Optional

QUIZ_JSON_SHAPE = (
    '{"title":"string","questions":[{"question":"string","choices":["a","b","c","d"],'
    '"correctIndex":0,"explanation":"string"}]}'
)

REPAIR_MAX_CHARS = 22000
COACH_CONTEXT_MAX_CHARS = 22000
COACH_HISTORY_TURNS = 12


def _safe_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def build_quiz_prompt(source_text: str, question_count: int, difficulty: str = "intermediate") -> str:
    return "\n".join([
        "You are an assessment designer for corporate learning.",
        "Create a multiple-choice quiz based strictly on the provided source text.",
        "Return strict JSON only, no markdown, no extra keys.",
        f"JSON shape: {QUIZ_JSON_SHAPE}",
        "Rules:",
        f"- Generate exactly {question_count} questions.",
        "- choices must always contain exactly 4 options.",
        "- correctIndex must be integer 0..3 and correspond to the right choice.",
        "- Questions must be clear and practical for professional learning.",
        "- Avoid trick questions and avoid duplicate questions.",
        f"- Difficulty target: {_safe_text(difficulty) or 'intermediate'}.",
        "",
        "Source text:",
        source_text,
    ])


def build_repair_prompt(raw_text: str, question_count: int) -> str:
    return "\n".join([
        "Convert the following quiz content into strict JSON.",
        f"Return exactly this JSON shape and nothing else: {QUIZ_JSON_SHAPE}",
        f"- Keep {question_count} questions when possible.",
        "- Each question must have exactly 4 choices.",
        "- correctIndex must be an integer 0..3 pointing at the right choice.",
        "- No markdown, no code fences, no commentary.",
        "",
        "Content:",
        (raw_text or "")[:REPAIR_MAX_CHARS],
    ])


def build_coach_prompt(message: str, context_text: str = "", history: Optional[List[Dict[str, Any]]] = None) -> str:
    context_text = _safe_text(context_text)[:COACH_CONTEXT_MAX_CHARS]
    turns = (history or [])[-COACH_HISTORY_TURNS:]
    history_block = "\n\n".join(
        f"{_safe_text(t.get('role')).upper()}: {_safe_text(t.get('content'))}"
        for t in turns
        if isinstance(t, dict) and _safe_text(t.get("content"))
    )

    return "\n".join([
        "You are an AI Coach for training and development.",
        "Style: clear, practical, and encouraging without fluff.",
        "When solving homework-style prompts, explain steps and reasoning.",
        "If context is missing, ask one concise clarifying question.",
        "Prefer actionable guidance, checklists, and examples.",
        "",
        f"Context (PDF/OCR text):\n{context_text}" if context_text else "No external context provided.",
        f"Conversation so far:\n{history_block}" if history_block else "No conversation history.",
        "",
        f"User message:\n{_safe_text(message)}",
    ])


def build_scenario_prompt(role: str, challenge: str, difficulty: str) -> str:
    return "\n".join([
        "You are a leadership simulation designer.",
        "Return strict JSON only with keys:",
        "scenario (string), options (array of exactly 4 strings),",
        "best_option (string equal to one options item),",
        "risk_if_wrong (string), and coaching_tip (string).",
        "No markdown, no extra keys.",
        "",
        f"Role: {role}",
        f"Challenge type: {challenge}",
        f"Difficulty: {difficulty}",
        "Create one realistic corporate training scenario for a first-line manager.",
        "The options must be plausible trade-offs, not obvious right/wrong.",
    ])


def build_decision_review_prompt(
    role: str,
    challenge: str,
    difficulty: str,
    scenario: str,
    options: List[str],
    selected_option: str,
    rationale: str,
) -> str:
    return "\n".join([
        "You are a leadership coach evaluating a manager decision.",
        "Return strict JSON only with keys:",
        "score (0-100 integer), verdict (string), blind_spot (string),",
        "what_worked (string), what_to_improve (string), next_action (string).",
        "No markdown, no extra keys.",
        "",
        f"Role: {role}",
        f"Challenge type: {challenge}",
        f"Difficulty: {difficulty}",
        f"Scenario: {scenario}",
        f"Options: {' | '.join(options)}",
        f"Selected option: {selected_option}",
        f"Rationale: {rationale}",
    ])
