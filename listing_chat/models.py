from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

MAX_HISTORY_MESSAGES = 60
MAX_MESSAGE_CHARS = 8000


class Message(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(max_length=MAX_MESSAGE_CHARS)

    model_config = {"frozen": True}


class TurnRequest(BaseModel):
    """Everything the caller round-trips for one conversation turn."""

    category: str = Field(min_length=1, max_length=64)
    imageCount: int = Field(default=0, ge=0)
    messages: List[Message] = Field(default_factory=list, max_length=MAX_HISTORY_MESSAGES)
    extractedData: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("extractedData", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class TurnResult(BaseModel):
    message: str
    extractedData: Dict[str, Any] = Field(default_factory=dict)
    isComplete: bool = False
    nextSteps: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "message": self.message,
            "extractedData": dict(self.extractedData),
            "isComplete": self.isComplete,
        }
        if self.nextSteps:
            payload["nextSteps"] = self.nextSteps
        return payload


class ListingDraftRequest(BaseModel):
    category: str = Field(min_length=1, max_length=64)
    description: str = Field(default="", max_length=MAX_MESSAGE_CHARS)
    price: Optional[Union[str, float]] = None
    location: Optional[str] = Field(default=None, max_length=256)
    imageCount: int = Field(default=0, ge=0)


class EnhanceRequest(BaseModel):
    text: str = Field(min_length=1, max_length=MAX_MESSAGE_CHARS)
    tone: str = Field(default="professional", min_length=1, max_length=64)
