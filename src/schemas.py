"""
Request and response models for the backend HTTP API.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatTurn] = Field(..., description="Prior context plus the new user message, oldest first")
    userProfile: dict[str, Any] = Field(default_factory=dict, description="Profile record from onboarding")


class ChatSuccess(BaseModel):
    success: Literal[True] = True
    message: str
    usage: Optional[dict[str, int]] = None


class ChatFailure(BaseModel):
    success: Literal[False] = False
    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    message: str
    environment: str
    timestamp: str
    api_key_configured: bool
    usage: Optional[dict[str, int]] = Field(default=None, description="Calls and tokens since startup")
