"""Run a saved agent reply through the quiz pipeline without calling the agent.

Usage: python scripts/normalize_reply.py reply.json [question_count]

The file may hold a JSON response envelope or plain model text; plain
text is wrapped as {"message": ...}. Pass --repair to allow the single
repair call against the configured agent.
"""
import json
import sys

from server.services.agent_client import get_agent_client
from server.services.quiz_pipeline import NormalizationError, normalize
from server.utils.env import ensure_env_loaded

args = [a for a in sys.argv[1:] if a != "--repair"]
if not args:
    print(__doc__)
    sys.exit(2)

with open(args[0], "r", encoding="utf-8") as f:
    raw = f.read()
count = int(args[1]) if len(args) > 1 else 5

try:
    envelope = json.loads(raw)
except ValueError:
    envelope = {"message": raw}
if not isinstance(envelope, dict):
    envelope = {"message": raw}

client = None
if "--repair" in sys.argv:
    ensure_env_loaded()
    client = get_agent_client()
    print('Repair client:', type(client).__name__ if client else 'not configured')

try:
    result = normalize(envelope, count, client=client)
except NormalizationError as e:
    print('Normalization failed:', e)
    print('Raw excerpt:', e.raw_excerpt[:500])
    sys.exit(1)

print('Stage:', result.stage.value)
print(json.dumps(result.to_wire(), indent=2))
