"""WebSocket chat - one conversation session per connection.

Client events (JSON):
    {"type": "send", "content": "..."}
    {"type": "edit", "message_id": 1}
    {"type": "cancel_edit"}
    {"type": "follow_ups", "message_id": 1}
    {"type": "versions", "message_id": 1}
    {"type": "retry", "message_id": 1}
    {"type": "refresh"}

After every event the server sends {"type": "state", ...}; failures are
reported first as {"type": "error", "message": "...", "step": "..."}.
"""

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from branchchat.core.database import get_store
from branchchat.core.errors import ValidationError
from branchchat.services.completion import BaseCompletionClient, get_completion_client
from branchchat.services.orchestrator import ConversationSession
from branchchat.services.store import ConversationStore

router = APIRouter()
logger = logging.getLogger(__name__)


async def _send_error(websocket: WebSocket, message: str, step: str | None = None) -> None:
    await websocket.send_json({"type": "error", "message": message, "step": step})


async def _handle_event(websocket: WebSocket, session: ConversationSession, event: dict) -> None:
    kind = event.get("type")
    message_id = event.get("message_id")

    if kind == "send":
        outcome = await session.submit(event.get("content") or "")
        if outcome is not None and outcome.error is not None:
            await _send_error(websocket, str(outcome.error), outcome.failed_step)
    elif kind == "edit":
        target = session.find_message(message_id) if isinstance(message_id, int) else None
        if target is None:
            await _send_error(websocket, f"Unknown message: {message_id}")
            return
        try:
            session.begin_edit(target)
        except ValidationError as e:
            await _send_error(websocket, str(e))
    elif kind == "cancel_edit":
        session.cancel_edit()
    elif kind == "follow_ups" and isinstance(message_id, int):
        await session.view_follow_ups(message_id)
    elif kind == "versions" and isinstance(message_id, int):
        await session.view_previous_versions(message_id)
    elif kind == "retry" and isinstance(message_id, int):
        outcome = await session.retry_reply(message_id)
        if outcome is not None and outcome.error is not None:
            await _send_error(websocket, str(outcome.error), outcome.failed_step)
    elif kind == "refresh":
        await session.refresh_transcript()
    else:
        await _send_error(websocket, f"Unsupported event: {kind}")


@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    store: ConversationStore = Depends(get_store),
    completion: BaseCompletionClient = Depends(get_completion_client),
):
    await websocket.accept()
    session = ConversationSession(store, completion)
    await session.start()
    await websocket.send_json({"type": "state", **session.snapshot()})

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                event = json.loads(raw)
            except json.JSONDecodeError:
                # Plain text is treated as a send
                event = {"type": "send", "content": raw}
            if not isinstance(event, dict):
                await _send_error(websocket, "Events must be JSON objects")
                continue

            await _handle_event(websocket, session, event)
            await websocket.send_json({"type": "state", **session.snapshot()})

    except WebSocketDisconnect:
        logger.debug("Chat session closed")
