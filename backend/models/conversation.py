"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"


@dataclass
class Message:
    """A single message in a conversation, ordered by sequence_number."""
    conversation_id: str
    role: str  # "user" | "assistant"
    content: str
    sequence_number: int
    message_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class Conversation:
    """Represents a multi-turn conversation."""
    conversation_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    messages: List[Message] = field(default_factory=list)
    message_count: int = 0


@dataclass
class ChatResult:
    """Outcome of one committed chat turn."""
    conversation_id: str
    message_id: int
    response: str
    is_new_conversation: bool
