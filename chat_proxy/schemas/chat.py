"""Pydantic schemas for the chat endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRequest(BaseModel):
    """Incoming chat request envelope.

    ``message`` must be a JSON string (no coercion from numbers or lists) with
    at least one non-whitespace character. The original text, surrounding
    whitespace included, is what gets forwarded upstream.
    """

    model_config = ConfigDict(strict=True)

    message: str = Field(..., description="The user's chat message.")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class ChatReply(BaseModel):
    """Successful chat response."""

    reply: str = Field(..., description="Completion text relayed from the model.")


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str = Field(..., description="Human-readable error message.")
