from datetime import datetime
from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    # Optional here so a missing message is a 400 with a specific reason, not a 422
    message: str | None = None
    conversation_id: str | None = Field(None, alias="conversationId")
    model: str | None = None

    class Config:
        populate_by_name = True


class ChatUsage(BaseModel):
    input_tokens: int = Field(0, alias="inputTokens")
    output_tokens: int = Field(0, alias="outputTokens")
    total_tokens: int = Field(0, alias="totalTokens")
    cost: float = 0.0

    class Config:
        populate_by_name = True


class ChatResponse(BaseModel):
    message: str
    conversation_id: str = Field(..., alias="conversationId")
    model: str
    usage: ChatUsage

    class Config:
        populate_by_name = True


class ConversationSummary(BaseModel):
    id: str
    title: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MessageOut(BaseModel):
    id: str
    role: str  # "user" | "assistant"
    content: str
    model: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationDetail(ConversationSummary):
    user_id: str
    messages: list[MessageOut]


class UsageSummaryResponse(BaseModel):
    """Assistant usage for the current calendar month (UTC)."""
    period_start: datetime
    messages: int = Field(..., description="Assistant replies this month")
    tokens: int = Field(..., description="Input + output tokens this month")
    cost: float = Field(..., description="Cost in USD at registry prices")
