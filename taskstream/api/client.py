# api/client.py
from __future__ import annotations
from typing import Any, Dict, Optional

import httpx

from taskstream.core.config import api_base_url, http_timeout
from taskstream.core.constants import CANCEL_ROUTE, MESSAGE_ROUTE
from taskstream.core.logging import get_logger

logger = get_logger("taskstream.api.client")


class ApiError(Exception):
    """The task API answered non-2xx, returned junk, or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AgentApiClient:
    """Async client for the ``/api/message`` and ``/api/cancel`` endpoints."""

    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or api_base_url()).rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=http_timeout())

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _post(self, route: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/api{route}"
        try:
            r = await self._http.post(url, json=body)
        except httpx.HTTPError as e:
            raise ApiError(f"POST {route} failed: {e}") from e
        if r.is_error:
            raise ApiError(f"POST {route} returned {r.status_code}", status_code=r.status_code)
        try:
            data = r.json()
        except ValueError as e:
            raise ApiError(f"POST {route} returned invalid JSON", status_code=r.status_code) from e
        if not isinstance(data, dict):
            raise ApiError(f"POST {route} returned unexpected payload", status_code=r.status_code)
        return data

    async def submit_message(self, message: str, agent_id: str) -> str:
        data = await self._post(MESSAGE_ROUTE, {"message": message, "agentId": agent_id})
        task_id = data.get("currentTaskId")
        if not isinstance(task_id, str) or not task_id:
            raise ApiError("submission response is missing currentTaskId")
        logger.info("TASK_SUBMITTED agent_id=%s task_id=%s", agent_id, task_id)
        return task_id

    async def cancel_task(self, agent_id: str) -> Optional[str]:
        data = await self._post(CANCEL_ROUTE, {"agentId": agent_id})
        logger.info("TASK_CANCEL_SENT agent_id=%s", agent_id)
        return data.get("currentTaskId")
