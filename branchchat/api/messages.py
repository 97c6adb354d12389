"""REST API for browsing the stored conversation tree."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from branchchat.core.database import get_store
from branchchat.core.errors import MessageNotFoundError, StoreError
from branchchat.services.history import build_version_history
from branchchat.services.store import ConversationStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
async def list_messages(store: ConversationStore = Depends(get_store)):
    try:
        messages = store.list_all_messages()
    except StoreError as e:
        logger.error(f"Error fetching messages: {e}")
        raise HTTPException(status_code=503, detail="Message store unavailable")
    return [m.to_dict() for m in messages]


@router.get("/{message_id}/follow-ups")
async def list_follow_ups(message_id: int, store: ConversationStore = Depends(get_store)):
    try:
        children = store.list_children_of(message_id)
    except StoreError as e:
        logger.error(f"Error fetching follow-up messages: {e}")
        raise HTTPException(status_code=503, detail="Message store unavailable")
    return [m.to_dict() for m in children]


@router.get("/{message_id}/versions")
async def list_versions(message_id: int, store: ConversationStore = Depends(get_store)):
    """Child versions and prompt history of a message, oldest first."""
    try:
        message = store.get_message(message_id)
        history = build_version_history(
            store.list_versions_of(message_id), store.list_prompts_for(message_id)
        )
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")
    except StoreError as e:
        logger.error(f"Error loading previous versions and prompts: {e}")
        raise HTTPException(status_code=503, detail="Message store unavailable")

    return {
        "message": message.to_dict(),
        "versions": [entry.to_dict() for entry in history],
    }
