import os
import re
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

logger = logging.getLogger("env")

_LOOSE_LINE_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*[:=]\s*(?:\"([^\"]*)\"|'([^']*)'|([^#]*))")


def _load_loose_env_file(path: str) -> None:
    """Pick up `KEY: value` style lines that python-dotenv does not understand."""
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            m = _LOOSE_LINE_RE.match(line)
            if not m:
                continue
            key = m.group(1)
            val = (m.group(2) or m.group(3) or m.group(4) or "").strip()
            if key not in os.environ:
                os.environ[key] = val


def ensure_env_loaded(env_path: Optional[str] = None) -> None:
    path = env_path or os.path.join(os.getcwd(), ".env")
    load_dotenv(path)
    try:
        _load_loose_env_file(path)
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)


@dataclass(frozen=True)
class AgentSettings:
    provider: str
    base_url: str
    api_key: str
    timeout_sec: float

    @property
    def configured(self) -> bool:
        return self.provider == "mock" or bool(self.base_url and self.api_key)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def load_agent_settings() -> AgentSettings:
    return AgentSettings(
        provider=os.getenv("AGENT_PROVIDER", "lumination").strip().lower(),
        base_url=(os.getenv("LUMINATION_API_BASE_URL") or "").strip().rstrip("/"),
        api_key=(os.getenv("LUMINATION_API_KEY") or "").strip(),
        timeout_sec=_env_float("LUMINATION_TIMEOUT_SEC", 60.0),
    )
