# api/ingress.py
from __future__ import annotations
from typing import Any, Dict, Optional

import httpx

from taskstream.core.config import http_timeout, ingress_token, ingress_url
from taskstream.core.constants import INGRESS_CANCEL_TASK, INGRESS_NEW_MESSAGE
from taskstream.core.logging import get_logger

logger = get_logger("taskstream.api.ingress")


class IngressError(Exception):
    pass


def _headers() -> Dict[str, str]:
    return {"Content-Type": "application/json", "Authorization": f"Bearer {ingress_token()}"}


async def _call(path: str, body: Any, http: Optional[httpx.AsyncClient]) -> Dict[str, Any]:
    url = ingress_url() + path
    try:
        if http is not None:
            r = await http.post(url, json=body, headers=_headers())
        else:
            async with httpx.AsyncClient(timeout=http_timeout()) as c:
                r = await c.post(url, json=body, headers=_headers())
    except httpx.HTTPError as e:
        raise IngressError(f"ingress unreachable: {e}") from e
    if r.is_error:
        raise IngressError(f"ingress returned {r.status_code} for {path}")
    return r.json()


async def submit_new_message(agent_id: str, message: str, http: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    # the ingress handler takes the prompt itself as the JSON body
    return await _call(INGRESS_NEW_MESSAGE.format(agent_id=agent_id), message, http)


async def submit_cancel(agent_id: str, http: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    return await _call(INGRESS_CANCEL_TASK.format(agent_id=agent_id), {}, http)
