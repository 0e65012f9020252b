from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from config.settings import Settings
from relay.client import UpstreamClient, UpstreamError
from relay.core.replies import extract_latest_assistant_text


logger = logging.getLogger(__name__)

POLL_ATTEMPTS = 40
POLL_INTERVAL_SECONDS = 0.4
MESSAGE_LIST_LIMIT = 20
RUN_FAILURE_STATUSES = {"failed", "cancelled", "expired"}


class RunFailedError(Exception):
    """Run ended in failed, cancelled or expired."""


class RunTimeoutError(Exception):
    """Run did not reach a terminal status within the polling budget."""


def _require_id(resource: Any, kind: str) -> str:
    resource_id = resource.get("id") if isinstance(resource, dict) else None
    if not resource_id or not isinstance(resource_id, str):
        raise UpstreamError(f"Upstream returned no {kind} id", data=resource)
    return resource_id


class AssistantRelay:
    """Thread/message/run sequencing against the Assistants API.

    Stateless between requests: thread and run state live upstream.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[UpstreamClient] = None,
        poll_attempts: int = POLL_ATTEMPTS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self.settings = settings
        self.client = client or UpstreamClient(settings)
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    async def create_thread(self) -> Dict[str, Any]:
        return await self.client.call("/threads", method="POST", body={}, beta=True)

    async def add_user_message(self, thread_id: str, text: str) -> Dict[str, Any]:
        return await self.client.call(
            f"/threads/{thread_id}/messages",
            method="POST",
            beta=True,
            body={
                "role": "user",
                "content": [{"type": "text", "text": text}],
            },
        )

    async def create_run(self, thread_id: str) -> Dict[str, Any]:
        return await self.client.call(
            f"/threads/{thread_id}/runs",
            method="POST",
            beta=True,
            body={"assistant_id": self.settings.assistant_id},
        )

    async def get_run(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        return await self.client.call(f"/threads/{thread_id}/runs/{run_id}", method="GET", beta=True)

    async def list_messages(self, thread_id: str, limit: int = MESSAGE_LIST_LIMIT) -> Dict[str, Any]:
        return await self.client.call(
            f"/threads/{thread_id}/messages",
            method="GET",
            beta=True,
            params={"limit": limit},
        )

    async def wait_for_run_complete(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        """Poll the run at a fixed interval until it completes.

        Raises ``RunFailedError`` on a failure status and ``RunTimeoutError``
        once ``poll_attempts`` fetches have not produced a terminal status.
        """
        for attempt in range(1, self.poll_attempts + 1):
            run = await self.get_run(thread_id, run_id)
            status = run.get("status")
            if status == "completed":
                logger.info("Run %s completed after %s poll(s)", run_id, attempt)
                return run
            if status in RUN_FAILURE_STATUSES:
                last_error = run.get("last_error") or {}
                message = last_error.get("message") if isinstance(last_error, dict) else None
                logger.warning("Run %s ended with status=%s: %s", run_id, status, message)
                raise RunFailedError(message or f"Run {status}")
            logger.debug("Run %s status=%s attempt=%s/%s", run_id, status, attempt, self.poll_attempts)
            await asyncio.sleep(self.poll_interval)

        logger.warning("Run %s still pending after %s polls", run_id, self.poll_attempts)
        raise RunTimeoutError("Timed out waiting for assistant response")

    async def start(self) -> str:
        thread = await self.create_thread()
        return _require_id(thread, "thread")

    async def send(self, message: str, thread_id: Optional[str] = None) -> Tuple[str, str]:
        """Append ``message`` to a thread, run the assistant and return its reply.

        A new thread is created when ``thread_id`` is not a non-empty string.
        Returns ``(thread_id, reply)``; ``reply`` is ``""`` when the assistant
        produced no text.
        """
        if not thread_id or not isinstance(thread_id, str):
            thread_id = await self.start()
            logger.info("Created thread %s", thread_id)

        await self.add_user_message(thread_id, message)
        run = await self.create_run(thread_id)
        await self.wait_for_run_complete(thread_id, _require_id(run, "run"))

        messages = await self.list_messages(thread_id, MESSAGE_LIST_LIMIT)
        reply = extract_latest_assistant_text(messages)
        return thread_id, reply or ""
