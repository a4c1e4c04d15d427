"""Client for the upstream Lumination agent-chat API, plus a mock for local runs."""

from typing import Any, Dict, NamedTuple, Optional
import json
import logging
import time
import requests

from server.utils.env import AgentSettings, load_agent_settings

logger = logging.getLogger("agent_client")

CHAT_PATH = "/lumination-ai/api/v1/agent/chat"


class AgentReply(NamedTuple):
    ok: bool
    status: int
    data: Any


class AgentClient:
    """Interface for the agent the quiz pipeline talks to.

    `send_prompt` never raises for transport problems; they come back as
    ``AgentReply(ok=False, ...)`` so callers can fall through to their next
    strategy.
    """

    def send_prompt(self, prompt: str, request_prefix: str = "quiz") -> AgentReply:
        raise NotImplementedError()


class MockAgentClient(AgentClient):
    """Returns a canned chat-completion envelope holding a one-question quiz."""

    def __init__(self, envelope: Optional[Dict[str, Any]] = None):
        self.envelope = envelope
        self.prompts = []

    def _default_envelope(self) -> Dict[str, Any]:
        quiz = {
            "title": "Mock Quiz",
            "questions": [
                {
                    "question": "MOCK: Which option is correct?",
                    "choices": ["first", "second", "third", "fourth"],
                    "correctIndex": 0,
                    "explanation": "This is a mock response.",
                }
            ],
        }
        return {"choices": [{"message": {"content": json.dumps(quiz)}}]}

    def send_prompt(self, prompt: str, request_prefix: str = "quiz") -> AgentReply:
        self.prompts.append(prompt)
        return AgentReply(True, 200, self.envelope if self.envelope is not None else self._default_envelope())


class LuminationAgentClient(AgentClient):
    def __init__(self, base_url: str, api_key: str, timeout: float = 60.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self, request_prefix: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-KEY": self.api_key,
            "X-REQUEST-ID": f"{request_prefix}-{int(time.time() * 1000)}",
        }

    def send_prompt(self, prompt: str, request_prefix: str = "quiz") -> AgentReply:
        url = f"{self.base_url}{CHAT_PATH}"
        payload = {
            "persist": False,
            "stream": False,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            resp = requests.post(url, headers=self._headers(request_prefix), json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Agent request failed: %s", e)
            return AgentReply(False, 502, {"error": str(e)})

        try:
            data = resp.json()
        except ValueError:
            data = {}
        ok = 200 <= resp.status_code < 300
        if not ok:
            logger.warning("Agent returned HTTP %d", resp.status_code)
        return AgentReply(ok, resp.status_code, data)


def get_agent_client(settings: Optional[AgentSettings] = None) -> Optional[AgentClient]:
    """Build the configured client, or None when credentials are missing."""
    settings = settings or load_agent_settings()

    if settings.provider == "mock":
        return MockAgentClient()

    if settings.provider == "lumination":
        if not settings.base_url or not settings.api_key:
            return None
        return LuminationAgentClient(settings.base_url, settings.api_key, timeout=settings.timeout_sec)

    raise RuntimeError(f"Agent provider '{settings.provider}' not implemented")
