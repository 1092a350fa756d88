"""
Chat Message Data Model

Defines the immutable Message record stored per subject, plus its
JSON-friendly (camelCase, ISO-8601) storage representation.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List


class Role(Enum):
    """Message authors."""
    USER = "user"
    ASSISTANT = "assistant"


# Tag used for the clarifying question, the reply to it and the acknowledgment.
# Messages carrying it are never sent to the completion endpoint.
PERSONALIZATION_ACTION = "personalization"


def new_message_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """A single chat message. Never mutated after creation."""
    role: Role
    content: str
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=utc_now)
    action_type: Optional[str] = None
    learning_style: Optional[str] = None
    error: bool = False

    @classmethod
    def user(cls, content: str, action_type: Optional[str] = None) -> "Message":
        return cls(role=Role.USER, content=content, action_type=action_type)

    @classmethod
    def assistant(
        cls,
        content: str,
        action_type: Optional[str] = None,
        learning_style: Optional[str] = None,
        error: bool = False
    ) -> "Message":
        return cls(
            role=Role.ASSISTANT,
            content=content,
            action_type=action_type,
            learning_style=learning_style,
            error=error
        )

    @property
    def is_personalization(self) -> bool:
        return self.action_type == PERSONALIZATION_ACTION

    def to_api(self) -> Dict[str, str]:
        """Role/content pair as sent to the completion endpoint."""
        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a dictionary for storage.

        Optional fields are only written when set, matching what the
        browser client stored.
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.action_type:
            data["actionType"] = self.action_type
        if self.learning_style:
            data["learningStyle"] = self.learning_style
        if self.error:
            data["error"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """
        Convert a stored dictionary back into a Message.

        Raises:
            ValueError: unknown role, missing content or unparseable timestamp
        """
        if not isinstance(data, dict):
            raise ValueError(f"Message record must be an object, got {type(data).__name__}")

        role = Role(data.get("role"))
        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("Message record has no text content")

        raw_timestamp = data.get("timestamp")
        if not isinstance(raw_timestamp, str):
            raise ValueError("Message record has no timestamp")
        # Browser clients write a trailing "Z" for UTC
        if raw_timestamp.endswith("Z"):
            raw_timestamp = raw_timestamp[:-1] + "+00:00"
        timestamp = datetime.fromisoformat(raw_timestamp)

        return cls(
            role=role,
            content=content,
            id=str(data.get("id") or new_message_id()),
            timestamp=timestamp,
            action_type=data.get("actionType"),
            learning_style=data.get("learningStyle"),
            error=bool(data.get("error", False))
        )


def count_user_messages(messages: List[Message]) -> int:
    return sum(1 for msg in messages if msg.role == Role.USER)
