import logging

from fastapi import APIRouter, Request

from chat_proxy.core.logging import fingerprint
from chat_proxy.core.rate_limit import enforce_rate_limit, resolve_caller_key
from chat_proxy.core.validation import (
    decode_body,
    parse_chat_request,
    read_body_limited,
    validate_message,
    validate_method,
)
from chat_proxy.schemas.chat import ChatReply, ErrorResponse
from chat_proxy.services.chat_service import get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

# Every method is routed here so the guard, not the framework, answers 405.
_ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


@router.api_route(
    "/chat",
    methods=_ROUTED_METHODS,
    response_model=ChatReply,
    responses={
        400: {"model": ErrorResponse, "description": "Missing, malformed or rejected message"},
        405: {"model": ErrorResponse, "description": "Method other than POST"},
        413: {"model": ErrorResponse, "description": "Message longer than the maximum"},
        429: {"model": ErrorResponse, "description": "Rate limited; see Retry-After"},
        500: {"model": ErrorResponse, "description": "Unexpected server error"},
        502: {"model": ErrorResponse, "description": "Upstream returned an error"},
        504: {"model": ErrorResponse, "description": "Upstream timed out"},
    },
)
async def chat(request: Request) -> ChatReply:
    """Relay one chat message to the completion service.

    Checks run in order and the first failure answers the request:
    method, body shape, size and content, rate limit, then the bounded
    upstream call. Failures surface as domain errors and are rendered by
    the global exception handlers.

    Returns:
        ChatReply: ``{"reply": "..."}`` with the model's text.
    """
    validate_method(request.method)

    envelope = parse_chat_request(decode_body(await read_body_limited(request)))
    message = validate_message(envelope.message)

    enforce_rate_limit(request)

    logger.info(
        "chat.request_admitted",
        extra={
            "key_hash": fingerprint(resolve_caller_key(request)),
            "message_chars": len(message),
        },
    )

    reply = await get_chat_service().reply(message)
    return ChatReply(reply=reply)
