from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse
from starlette.concurrency import run_in_threadpool
from typing import Any, AsyncGenerator, Dict, Optional
import logging
import json

from models.schemas import ChatRequest
from routes.dependencies import clerk_auth, get_ai_service, get_user_store
from services.ai_service import AIService
from services.auth_service import AuthContext, UserFound, UserUnauthenticated, resolve_user
from services.user_service import UserStore
from utils.helpers import format_validation_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assistant", tags=["Assistant"])

UI_MESSAGE_STREAM_HEADERS = {"x-vercel-ai-ui-message-stream": "v1"}


async def relay_stream(parts: AsyncGenerator[Dict[str, Any], None]):
    """Forward each stream part as an SSE data frame, then the [DONE] marker"""
    try:
        async for part in parts:
            yield {"data": json.dumps(part, default=str)}
        yield {"data": "[DONE]"}
    finally:
        await parts.aclose()


@router.post("/chat")
async def chat_with_assistant(
    request: Request,
    auth: Optional[AuthContext] = Depends(clerk_auth),
    users: UserStore = Depends(get_user_store),
    ai_service: AIService = Depends(get_ai_service),
):
    """
    Stream an assistant reply about the caller's contacts as Server-Sent Events

    Example request:
    {
        "messages": [
            {"role": "user", "parts": [{"type": "text", "text": "Whose birthday is next?"}]}
        ]
    }
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    messages = body.get("messages") if isinstance(body, dict) else None
    if not isinstance(messages, list):
        return JSONResponse(status_code=400, content={"error": "Messages array is required"})

    try:
        chat_request = ChatRequest.model_validate(body)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"errors": format_validation_errors(e.errors())})

    try:
        lookup = await run_in_threadpool(resolve_user, users, auth)
    except Exception as e:
        logger.error(f"Assistant error while resolving user: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if isinstance(lookup, UserUnauthenticated):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    # An unknown user still gets an answer; the contact tool tells the model they are not recognized
    user_id = str(lookup.user["id"]) if isinstance(lookup, UserFound) else None
    logger.info(f"Assistant chat for user {user_id}: {len(chat_request.messages)} message(s)")

    parts = ai_service.stream_chat(chat_request.messages, user_id)
    return EventSourceResponse(relay_stream(parts), headers=UI_MESSAGE_STREAM_HEADERS)
