from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatMessage(BaseModel):
    """A message record created under chats/{chatId}/messages/{messageId}"""
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    id: Optional[str] = None
    chatId: Optional[str] = None
    senderRef: Any = None  # DocumentReference, {"path": ...} or a path string
    senderId: Optional[str] = None
    text: Optional[str] = None
    title: Optional[str] = None

    @field_validator("id", "chatId", "senderId", "text", "title", mode="before")
    @classmethod
    def _strings_only(cls, value):
        return value if isinstance(value, str) else None

    @classmethod
    def from_record(cls, data: Optional[Dict[str, Any]], message_id: str = None,
                    chat_id: str = None) -> "ChatMessage":
        record = dict(data or {})
        # path segments are authoritative over fields stored in the record
        if message_id is not None:
            record["id"] = message_id
        if chat_id is not None:
            record["chatId"] = chat_id
        return cls.model_validate(record)


class NotificationContent(BaseModel):
    title: str
    body: str = ""


class NotificationPayload(BaseModel):
    """Payload handed to the push transport"""
    notification: NotificationContent
    data: Dict[str, str] = Field(default_factory=dict)


class TokenResult(BaseModel):
    """Delivery result for a single device token"""
    token: str
    success: bool
    messageId: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None


class BatchResult(BaseModel):
    responses: List[TokenResult] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.responses if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.responses if not r.success)


class DispatchStatus(str, Enum):
    SENT = "SENT"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
    NO_RECIPIENTS = "NO_RECIPIENTS"
    NO_TOKENS = "NO_TOKENS"


class TokenFailure(BaseModel):
    token: str
    code: Optional[str] = None
    message: Optional[str] = None


class DispatchOutcome(BaseModel):
    """What happened to one message's notification fan-out"""
    status: DispatchStatus
    tokens: List[str] = Field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    failures: List[TokenFailure] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def transport_called(self) -> bool:
        return self.status in (DispatchStatus.SENT, DispatchStatus.PARTIAL, DispatchStatus.FAILED)
