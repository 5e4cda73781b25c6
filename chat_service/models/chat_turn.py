"""
MongoDB document model for chat turn storage.

A chat turn is one user message paired with the generated response. It is
written once, after the response stream completes, and never updated.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chat_service.utils.formatters import format_timestamp


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChatTurn(BaseModel):
    """Persisted exchange between a user and the model"""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str = Field(..., min_length=1)
    message: str
    response: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_object_id(cls, v: Any) -> Any:
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ChatTurn":
        """Build a turn from a raw MongoDB document."""
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        """
        Convert to a MongoDB document.

        Returns:
            Document ready for insertion; ``_id`` is omitted until assigned
        """
        document: Dict[str, Any] = {
            "user_id": self.user_id,
            "message": self.message,
            "response": self.response,
            "timestamp": self.timestamp,
        }
        if self.id:
            document["_id"] = ObjectId(self.id)
        return document

    def to_response(self) -> Dict[str, Any]:
        """JSON-safe wire form used in history responses and the cache."""
        return {
            "_id": self.id,
            "user_id": self.user_id,
            "message": self.message,
            "response": self.response,
            "timestamp": format_timestamp(self.timestamp),
        }
