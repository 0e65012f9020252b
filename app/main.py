from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config.settings import Settings, get_settings
from relay.assistant import AssistantRelay
from relay.client import UpstreamError


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("assistant_relay")


class ChatStartResponse(BaseModel):
    threadId: str = Field(..., description="Newly created upstream thread id")


class ChatSendResponse(BaseModel):
    threadId: str = Field(..., description="Thread the message was appended to")
    reply: str = Field("", description="Latest assistant text, empty if none")


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


def _error_response(exc: Exception, status_code: int) -> JSONResponse:
    body = ErrorResponse(error=str(exc), details=getattr(exc, "data", None))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _read_json_object(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def create_app(settings: Optional[Settings] = None, relay: Optional[AssistantRelay] = None) -> FastAPI:
    """Build the relay app.

    There is no module-level ``app``; serve with ``assistant-relay`` or
    ``uvicorn app.main:create_app --factory``.
    """
    settings = settings or get_settings()
    missing = settings.missing_required()
    if missing:
        raise RuntimeError(f"Missing {', '.join(missing)}. Configure it in environment or .env")

    relay = relay or AssistantRelay(settings)
    app = FastAPI(title="Assistant Relay", version="1.0.0")

    # CORS: allow local frontend during development
    if settings.app_env.lower() in {"dev", "development", "local"}:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.post("/chat/start", response_model=ChatStartResponse)
    async def chat_start():
        try:
            thread_id = await relay.start()
            body = ChatStartResponse(threadId=thread_id)
        except Exception as e:
            logger.exception("Thread creation failed: %s", e)
            return _error_response(e, 500)
        logger.info("Started thread %s", thread_id)
        return body

    @app.post("/chat/send", response_model=ChatSendResponse)
    async def chat_send(request: Request):
        payload = await _read_json_object(request)
        thread_id = payload.get("threadId")
        message = payload.get("message")

        if not message or not isinstance(message, str):
            return JSONResponse(
                status_code=400,
                content={"error": "Missing or invalid 'message' string"},
            )

        logger.info(
            "Incoming chat: thread_set=%s message_len=%s",
            isinstance(thread_id, str) and bool(thread_id),
            len(message),
        )
        try:
            tid, reply = await relay.send(message, thread_id if isinstance(thread_id, str) else None)
            body = ChatSendResponse(threadId=tid, reply=reply)
        except Exception as e:
            logger.exception("Chat processing failed: %s", e)
            status_code = e.status_code if isinstance(e, UpstreamError) and e.status_code else 500
            return _error_response(e, status_code)

        logger.info("Assistant responded on thread %s with %s chars", tid, len(reply))
        return body

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def main() -> None:
    settings = get_settings()
    missing = settings.missing_required()
    if missing:
        for name in missing:
            logger.error("Missing %s", name)
        sys.exit(1)

    app = create_app(settings)
    logger.info("Backend running on http://localhost:%s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
