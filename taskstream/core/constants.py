# core/constants.py
from __future__ import annotations

GREETING = (
    "Hello! I'm your coding agent. Describe what you'd like me to build and I'll create a plan "
    "and execute it for you\n"
    "> I'm here to help you build amazing projects! Just tell me what you need."
)
STOPPED_MESSAGE = "Execution has been stopped."

# transport paths
SUBSCRIBE_PATH = "/ws/subscribe/{topic}"
PUBLISH_PATH = "/ws/publish/{topic}"

# proxy routes (mounted under /api)
MESSAGE_ROUTE = "/message"
CANCEL_ROUTE = "/cancel"

# ingress handlers
INGRESS_NEW_MESSAGE = "/agent/{agent_id}/newMessage"
INGRESS_CANCEL_TASK = "/agent/{agent_id}/cancelTask"

AGENT_ID_BYTES = 8
FRAME_PREVIEW_CHARS = 120
