# session/identity.py
from __future__ import annotations
import secrets

from pydantic import BaseModel, ConfigDict, Field

from taskstream.core.constants import AGENT_ID_BYTES


def new_agent_id() -> str:
    return secrets.token_hex(AGENT_ID_BYTES)


class AgentSession(BaseModel):
    """Client-assigned identity sent with every submit/cancel; one per client instance."""

    model_config = ConfigDict(frozen=True)

    agent_id: str = Field(default_factory=new_agent_id)
