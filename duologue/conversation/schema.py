import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

PENDING_CONTENT = "..."  # placeholder shown while a reply is being generated

_ID_ALPHABET = string.ascii_lowercase + string.digits


class Speaker(str, Enum):
    AI_A = "AI_A"
    AI_B = "AI_B"
    USER = "USER"

    def other(self) -> "Speaker":
        """The automatic participant opposite this one."""
        if self is Speaker.AI_A:
            return Speaker.AI_B
        if self is Speaker.AI_B:
            return Speaker.AI_A
        raise ValueError("USER has no opposite participant")


class TurnKind(str, Enum):
    AI = "ai"
    USER = "user"


def new_turn_id() -> str:
    """Millisecond timestamp plus a random suffix so rapid appends never collide."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}{suffix}"


@dataclass(frozen=True)
class Turn:
    """A single turn in the shared conversation."""
    speaker: Speaker
    content: str
    kind: TurnKind = TurnKind.AI
    id: str = field(default_factory=new_turn_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_pending(self) -> bool:
        return self.content == PENDING_CONTENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "speaker": self.speaker.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
        }
