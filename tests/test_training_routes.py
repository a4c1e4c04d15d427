import json

import pytest
from fastapi.testclient import TestClient

from server.main import app
from server.routes.training import agent_client_dependency, clamp_question_count
from server.services.agent_client import AgentClient, AgentReply


client = TestClient(app)


class _ScriptedAgent(AgentClient):
    """Replays queued replies and records the prompts it was sent."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def send_prompt(self, prompt, request_prefix="quiz"):
        self.prompts.append((request_prefix, prompt))
        return self.replies.pop(0)


def _ok(envelope):
    return AgentReply(True, 200, envelope)


@pytest.fixture
def use_agent():
    def _install(agent):
        app.dependency_overrides[agent_client_dependency] = lambda: agent
        return agent

    yield _install
    app.dependency_overrides.clear()


def _quiz_envelope():
    quiz = {
        "title": "Safety",
        "questions": [
            {"question": "Q1", "choices": ["a", "b", "c", "d"], "correctIndex": 2, "explanation": "why"},
            {"question": "Q2", "choices": ["a", "b", "c", "d"], "correctIndex": 0, "explanation": ""},
        ],
    }
    return {"response": {"response": "```json\n" + json.dumps(quiz) + "\n```"}}


def test_quiz_status_get():
    res = client.get("/api/training/pdf-quiz-generator")
    assert res.status_code == 200
    assert res.json()["ok"] is True


def test_generate_quiz_success(use_agent):
    agent = use_agent(_ScriptedAgent(_ok(_quiz_envelope())))
    res = client.post(
        "/api/training/pdf-quiz-generator",
        json={"sourceText": "  Wear a helmet.  ", "questionCount": 2, "difficulty": "easy"},
    )
    assert res.status_code == 200
    body = res.json()["result"]
    assert body["title"] == "Safety"
    assert body["questions"][0] == {"question": "Q1", "choices": ["a", "b", "c", "d"], "correctIndex": 2, "explanation": "why"}
    prefix, prompt = agent.prompts[0]
    assert prefix == "quiz"
    assert "Generate exactly 2 questions." in prompt
    assert "Difficulty target: easy." in prompt
    assert prompt.endswith("Wear a helmet.")


def test_generate_quiz_validation_errors(use_agent):
    use_agent(_ScriptedAgent())
    res = client.post("/api/training/pdf-quiz-generator", json={"sourceText": "   "})
    assert res.status_code == 400
    assert res.json() == {"error": "sourceText is required."}

    res = client.post(
        "/api/training/pdf-quiz-generator",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid JSON body."}


def test_generate_quiz_missing_config(use_agent):
    use_agent(None)
    res = client.post("/api/training/pdf-quiz-generator", json={"sourceText": "x"})
    assert res.status_code == 500
    assert "missing Lumination API env vars" in res.json()["error"]


def test_generate_quiz_upstream_failure_passes_status(use_agent):
    use_agent(_ScriptedAgent(AgentReply(False, 429, {"error": "slow down"})))
    res = client.post("/api/training/pdf-quiz-generator", json={"sourceText": "x"})
    assert res.status_code == 429
    assert res.json() == {"error": "Lumination API request failed (status 429).", "details": {"error": "slow down"}}


def test_generate_quiz_empty_and_unparsable(use_agent):
    use_agent(_ScriptedAgent(_ok({"message": ""})))
    res = client.post("/api/training/pdf-quiz-generator", json={"sourceText": "x"})
    assert res.status_code == 502
    assert res.json() == {"error": "Agent returned an empty response."}

    agent = use_agent(_ScriptedAgent(_ok({"message": "no quiz today"}), AgentReply(False, 500, {})))
    res = client.post("/api/training/pdf-quiz-generator", json={"sourceText": "x"})
    assert res.status_code == 502
    assert res.json() == {"error": "Agent did not return a valid quiz.", "raw": "no quiz today"}
    assert [p for p, _ in agent.prompts] == ["quiz", "quiz-repair"]


def test_clamp_question_count():
    assert clamp_question_count(None) == 1
    assert clamp_question_count("7") == 7
    assert clamp_question_count(2.9) == 2
    assert clamp_question_count(500) == 20
    assert clamp_question_count(-3) == 1
    assert clamp_question_count("many") == 1
    assert clamp_question_count(float("inf")) == 1
    assert clamp_question_count("inf") == 1
    assert clamp_question_count(1e400) == 1


def test_coach_chat(use_agent):
    agent = use_agent(_ScriptedAgent(_ok({"choices": [{"message": {"content": " Try a checklist. "}}]})))
    res = client.post(
        "/api/training/ai-coach-chatbot",
        json={
            "message": "How do I plan onboarding?",
            "contextText": "Onboarding guide",
            "history": [{"role": "user", "content": "hello"}, {"role": "assistant", "content": "hi"}],
        },
    )
    assert res.status_code == 200
    assert res.json() == {"reply": "Try a checklist."}
    prefix, prompt = agent.prompts[0]
    assert prefix == "ai-coach"
    assert "USER: hello\n\nASSISTANT: hi" in prompt
    assert "Context (PDF/OCR text):\nOnboarding guide" in prompt


def test_coach_chat_errors(use_agent):
    use_agent(_ScriptedAgent(_ok({})))
    assert client.post("/api/training/ai-coach-chatbot", json={"message": " "}).status_code == 400
    res = client.post("/api/training/ai-coach-chatbot", json={"message": "hi"})
    assert res.status_code == 502
    assert res.json() == {"error": "Agent returned an empty response."}


def test_generate_quiz_overflowing_question_count_falls_back_to_one(use_agent):
    agent = use_agent(_ScriptedAgent(_ok(_quiz_envelope())))
    res = client.post(
        "/api/training/pdf-quiz-generator",
        content=b'{"sourceText": "Safety basics", "questionCount": 1e400}',
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 200
    assert len(res.json()["result"]["questions"]) == 1
    assert "Generate exactly 1 questions." in agent.prompts[0][1]


def test_generate_quiz_coerces_non_string_fields(use_agent):
    agent = use_agent(_ScriptedAgent(_ok(_quiz_envelope())))
    res = client.post(
        "/api/training/pdf-quiz-generator",
        json={"sourceText": 12345, "questionCount": 2, "difficulty": 3},
    )
    assert res.status_code == 200
    _, prompt = agent.prompts[0]
    assert prompt.endswith("Source text:\n12345")
    assert "- Difficulty target: 3." in prompt


def test_coach_chat_coerces_non_string_message(use_agent):
    agent = use_agent(_ScriptedAgent(_ok({"message": "Sure."})))
    res = client.post("/api/training/ai-coach-chatbot", json={"message": 42})
    assert res.status_code == 200
    assert "User message:\n42" in agent.prompts[0][1]


# ── Leadership decision simulator ───────────────────────────────

def _simulator_body(**overrides):
    body = {"mode": "generate", "role": "Team lead", "challenge": "conflict", "difficulty": "hard"}
    body.update(overrides)
    return body


def test_simulator_status_get():
    res = client.get("/api/training/leadership-decision-simulator")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "message": "Leadership Decision Simulator API is running. Use POST."}


def test_simulator_generate(use_agent):
    scenario = {
        "scenario": "Two engineers disagree.",
        "options": ["a", "b", "c", "d"],
        "best_option": "b",
        "risk_if_wrong": "attrition",
        "coaching_tip": "listen first",
    }
    agent = use_agent(_ScriptedAgent(_ok({"message": "```json\n" + json.dumps(scenario) + "\n```"})))
    res = client.post("/api/training/leadership-decision-simulator", json=_simulator_body())
    assert res.status_code == 200
    assert res.json() == {"mode": "generate", "result": scenario}
    prefix, prompt = agent.prompts[0]
    assert prefix == "leadership-sim"
    assert "Role: Team lead" in prompt
    assert "Challenge type: conflict" in prompt
    assert "Difficulty: hard" in prompt


def test_simulator_evaluate(use_agent):
    review = {"score": 80, "verdict": "solid"}
    agent = use_agent(_ScriptedAgent(_ok({"output_text": json.dumps(review)})))
    res = client.post(
        "/api/training/leadership-decision-simulator",
        json=_simulator_body(
            mode="evaluate",
            scenario="Two engineers disagree.",
            options=["a", "b", "c", "d"],
            selectedOption="b",
            rationale="keeps both engaged",
        ),
    )
    assert res.status_code == 200
    assert res.json() == {"mode": "evaluate", "result": review}
    _, prompt = agent.prompts[0]
    assert "Options: a | b | c | d" in prompt
    assert "Selected option: b" in prompt
    assert "Rationale: keeps both engaged" in prompt


def test_simulator_validation_errors(use_agent):
    use_agent(_ScriptedAgent())
    res = client.post("/api/training/leadership-decision-simulator", json=_simulator_body(mode="play"))
    assert res.status_code == 400
    assert res.json() == {"error": "mode must be either generate or evaluate."}
    res = client.post("/api/training/leadership-decision-simulator", json=_simulator_body(role="  "))
    assert res.status_code == 400
    assert res.json() == {"error": "role, challenge and difficulty are required."}


def test_simulator_missing_config(use_agent):
    use_agent(None)
    res = client.post("/api/training/leadership-decision-simulator", json=_simulator_body())
    assert res.status_code == 500
    assert res.json() == {"error": "Server is missing Lumination API env vars."}


def test_simulator_upstream_and_invalid_json(use_agent):
    use_agent(_ScriptedAgent(AgentReply(False, 429, {"error": "slow down"})))
    res = client.post("/api/training/leadership-decision-simulator", json=_simulator_body())
    assert res.status_code == 429
    assert res.json() == {"error": "Lumination API request failed.", "details": {"error": "slow down"}}

    use_agent(_ScriptedAgent(_ok({"message": "I think option B. " + "y" * 5000})))
    res = client.post("/api/training/leadership-decision-simulator", json=_simulator_body())
    assert res.status_code == 502
    body = res.json()
    assert body["error"] == "Agent did not return valid JSON."
    assert body["raw"].startswith("I think option B.")
    assert len(body["raw"]) == 3000
