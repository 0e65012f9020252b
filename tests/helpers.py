"""Shared test helpers (a recording stand-in for the OpenAI API)."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from config.settings import Settings
from relay.assistant import AssistantRelay
from relay.client import UpstreamClient


def build_relay(settings: Settings, upstream: "FakeUpstream") -> AssistantRelay:
    """Relay wired to ``upstream`` with no delay between run polls."""
    client = UpstreamClient(settings, transport=httpx.MockTransport(upstream))
    return AssistantRelay(settings, client=client, poll_interval=0)


def assistant_message(value: str, message_id: str = "msg_assistant") -> dict:
    return {
        "id": message_id,
        "role": "assistant",
        "content": [{"type": "text", "text": {"value": value, "annotations": []}}],
    }


def user_message(value: str, message_id: str = "msg_user") -> dict:
    return {
        "id": message_id,
        "role": "user",
        "content": [{"type": "text", "text": {"value": value, "annotations": []}}],
    }


class FakeUpstream:
    """Callable handler for ``httpx.MockTransport`` mimicking the Assistants API.

    ``run_statuses`` is consumed one entry per run fetch; the last entry repeats.
    ``overrides`` maps an operation name to a canned ``(status_code, body)`` response.
    """

    def __init__(
        self,
        run_statuses: Iterable[str] = ("completed",),
        messages: Optional[List[dict]] = None,
        last_error: Optional[dict] = None,
        overrides: Optional[Dict[str, Tuple[int, Any]]] = None,
    ) -> None:
        self.run_statuses = list(run_statuses)
        self.messages = messages if messages is not None else [assistant_message("hello")]
        self.last_error = last_error
        self.overrides = overrides or {}
        self.requests: List[httpx.Request] = []
        self.calls: List[str] = []
        self._threads = 0
        self._polls = 0

    def count(self, operation: str) -> int:
        return self.calls.count(operation)

    def _operation(self, request: httpx.Request) -> str:
        parts = request.url.path.split("/")[2:]
        if parts == ["threads"]:
            return "create_thread"
        if len(parts) == 3 and parts[2] == "messages":
            return "add_message" if request.method == "POST" else "list_messages"
        if len(parts) == 3 and parts[2] == "runs":
            return "create_run"
        if len(parts) == 4 and parts[2] == "runs":
            return "get_run"
        raise AssertionError(f"unexpected upstream call {request.method} {request.url}")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        operation = self._operation(request)
        self.calls.append(operation)

        if operation in self.overrides:
            status_code, body = self.overrides[operation]
            if isinstance(body, str):
                return httpx.Response(status_code, text=body)
            return httpx.Response(status_code, json=body)

        if operation == "create_thread":
            self._threads += 1
            return httpx.Response(200, json={"id": f"thread_{self._threads}", "object": "thread"})
        if operation == "add_message":
            return httpx.Response(200, json={"id": "msg_new", "object": "thread.message"})
        if operation == "create_run":
            return httpx.Response(200, json={"id": "run_1", "object": "thread.run", "status": "queued"})
        if operation == "get_run":
            index = min(self._polls, len(self.run_statuses) - 1)
            self._polls += 1
            run = {"id": "run_1", "object": "thread.run", "status": self.run_statuses[index]}
            if self.last_error is not None:
                run["last_error"] = self.last_error
            return httpx.Response(200, json=run)
        return httpx.Response(200, json={"object": "list", "data": self.messages})

    def body_of(self, operation: str) -> Any:
        for request, name in zip(self.requests, self.calls):
            if name == operation:
                return json.loads(request.content) if request.content else None
        raise AssertionError(f"no {operation} call recorded")
