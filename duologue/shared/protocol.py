import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..conversation.schema import Turn


class EventType(str, Enum):
    CONNECTED = "connected"
    STATE = "state"
    HEARTBEAT = "heartbeat"
    MESSAGE = "message"
    USER_MESSAGE = "user_message"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def connected_event() -> Dict[str, Any]:
    """Greeting pushed to a channel the moment it subscribes."""
    return {"type": EventType.CONNECTED.value, "timestamp": now_iso()}


def snapshot_event(
    event_type: EventType, snapshot: Dict[str, Any], turn: Optional[Turn] = None
) -> Dict[str, Any]:
    """A full-state frame, optionally tagged with the turn that caused it."""
    event: Dict[str, Any] = {
        "type": EventType(event_type).value,
        "log": snapshot["log"],
        "totalCount": snapshot["totalCount"],
        "timestamp": now_iso(),
    }
    if turn is not None:
        event["turn"] = turn.to_dict()
    return event


def format_sse(event: Dict[str, Any]) -> str:
    """Encode one event as a Server-Sent Events data frame."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
