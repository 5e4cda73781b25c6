"""
Chat Validation Models
Pydantic models for request/response validation in chat endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chat_service.config.settings import get_settings


class ChatRequest(BaseModel):
    """Request body for a chat submission"""

    message: str = Field(..., description="Message to send to the model")

    model_config = ConfigDict(
        json_schema_extra={"example": {"message": "Hello, what can you do?"}}
    )

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")

        max_length = get_settings().MAX_MESSAGE_LENGTH
        if len(v) > max_length:
            raise ValueError(f"Message cannot exceed {max_length} characters")
        return v


class ChatTurnResponse(BaseModel):
    """One stored chat turn as returned by the history endpoint"""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str
    message: str
    response: str
    timestamp: str


class ChatHistoryResponse(BaseModel):
    """Paginated chat history"""

    model_config = ConfigDict(populate_by_name=True)

    chats: List[ChatTurnResponse]
    total_pages: int = Field(..., alias="totalPages")
    current_page: int = Field(..., alias="currentPage")


class HealthResponse(BaseModel):
    """Liveness response"""
    status: str
    timestamp: str
