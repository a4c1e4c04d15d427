from typing import Any, Optional
import logging

from server.services.agent_client import AgentClient
from server.services.json_block import strip_fences, strict_decode
from server.services.prompts import build_repair_prompt
from server.services.text_extract import extract_assistant_text

logger = logging.getLogger("quiz_repair")


def request_repair(client: AgentClient, raw_text: str, question_count: int) -> Optional[Any]:
    """Ask the agent once to rewrite `raw_text` as quiz JSON.

    Returns the decoded value, or None if the call failed or the reply
    still isn't JSON. There is no retry.
    """
    reply = client.send_prompt(build_repair_prompt(raw_text, question_count), request_prefix="quiz-repair")
    if not reply.ok:
        logger.warning("Repair call failed with status %s", reply.status)
        return None

    text = extract_assistant_text(reply.data)
    if not text:
        logger.info("Repair call returned no text")
        return None
    return strict_decode(strip_fences(text))
