"""Completion relay - forwards a single message to the LLM provider."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from branchchat.services.llm import get_llm_provider

router = APIRouter()
logger = logging.getLogger(__name__)


class RelayRequest(BaseModel):
    message: str | None = None


@router.post("/chatgpt")
async def relay_completion(body: RelayRequest):
    logger.info(f"Received message: {body.message}")
    if not body.message or not body.message.strip():
        return JSONResponse({"error": "Message content is required"}, status_code=400)

    try:
        provider = get_llm_provider()
        text = await provider.generate(body.message)
    except Exception as e:
        logger.error(f"Error processing request: {e}")
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)

    return {"response": text}
