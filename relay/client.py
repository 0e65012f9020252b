from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import Settings


logger = logging.getLogger(__name__)

BETA_HEADER = ("OpenAI-Beta", "assistants=v2")


class UpstreamError(Exception):
    """Non-success response from the OpenAI API."""

    def __init__(self, message: str, status_code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.data = data


def _parse_body(text: str) -> Any:
    if not text:
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return {"raw": text}


def _error_message(data: Any, status_code: int) -> str:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"OpenAI request failed ({status_code})"


class UpstreamClient:
    """Authenticated JSON calls against the OpenAI REST API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = settings
        self._transport = transport

    def _headers(self, *, beta: bool, json_body: bool) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self._settings.openai_api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        if beta:
            headers[BETA_HEADER[0]] = BETA_HEADER[1]
        return headers

    async def call(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        beta: bool = False,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self._settings.openai_base_url}{path}"
        content = json.dumps(body) if body is not None else None

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.request(
                method,
                url,
                headers=self._headers(beta=beta, json_body=body is not None),
                content=content,
                params=params,
            )

        data = _parse_body(response.text)
        if not response.is_success:
            message = _error_message(data, response.status_code)
            logger.warning("OpenAI %s %s failed (%s): %s", method, path, response.status_code, message)
            raise UpstreamError(message, status_code=response.status_code, data=data)
        return data
