"""
Chat message types.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class ChatMessage:
    """A single chat message"""
    role: Role
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_provider(self) -> Dict[str, str]:
        """Shape accepted by both the OpenAI and Anthropic message APIs."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(role=Role(data["role"]), content=str(data.get("content", "")))


def to_messages(items: Iterable[Any]) -> List[ChatMessage]:
    """Accept ChatMessage instances or {role, content} dicts."""
    return [
        item if isinstance(item, ChatMessage) else ChatMessage.from_dict(item)
        for item in items
    ]
