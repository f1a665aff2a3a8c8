# api/routes_agent.py
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from taskstream.api.ingress import submit_cancel, submit_new_message
from taskstream.core.constants import CANCEL_ROUTE, MESSAGE_ROUTE
from taskstream.core.logging import get_logger

logger = get_logger("taskstream.api.routes")

router = APIRouter()


class MessageIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    agent_id: Optional[str] = Field(None, alias="agentId")


class CancelIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agent_id: Optional[str] = Field(None, alias="agentId")


def _missing_agent() -> JSONResponse:
    return JSONResponse({"error": "Agent ID is required"}, status_code=400)


def _internal_error() -> JSONResponse:
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def _http(request: Request):
    return getattr(request.app.state, "ingress_http", None)


@router.post(MESSAGE_ROUTE)
async def message(inp: MessageIn, request: Request):
    if not inp.agent_id:
        return _missing_agent()
    try:
        return await submit_new_message(inp.agent_id, inp.message, http=_http(request))
    except Exception:
        logger.exception("SUBMIT_FAIL agent_id=%s", inp.agent_id)
        return _internal_error()


@router.post(CANCEL_ROUTE)
async def cancel(inp: CancelIn, request: Request):
    if not inp.agent_id:
        return _missing_agent()
    try:
        return await submit_cancel(inp.agent_id, http=_http(request))
    except Exception:
        logger.exception("CANCEL_FAIL agent_id=%s", inp.agent_id)
        return _internal_error()
