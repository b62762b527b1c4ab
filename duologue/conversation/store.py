import logging
from collections import deque
from typing import Any, Callable, Dict, List, Optional

from .schema import Speaker, Turn, TurnKind
from .state import ConversationState

logger = logging.getLogger(__name__)

TurnListener = Callable[[Turn], None]


class TurnStore:
    """
    Ordered log of conversation turns over a rolling window.

    Appends are announced synchronously to registered listeners so that
    whatever they read from the store is already the post-append state.
    """

    def __init__(self, state: ConversationState):
        self.state = state
        self._listeners: List[TurnListener] = []

    def add_listener(self, fn: TurnListener) -> None:
        self._listeners.append(fn)

    def remove_listener(self, fn: TurnListener) -> None:
        self._listeners = [f for f in self._listeners if f is not fn]

    def append(self, speaker: Speaker, content: str, kind: TurnKind = TurnKind.AI) -> Turn:
        """Create a turn, push it onto the window and notify listeners."""
        turn = Turn(speaker=Speaker(speaker), content=content, kind=TurnKind(kind))
        # deque(maxlen) evicts the oldest entry in the same step
        self.state.turns.append(turn)
        self.state.total_emitted += 1
        logger.debug("Turn %s appended by %s (%d total)", turn.id, turn.speaker.value, self.state.total_emitted)

        for listener in list(self._listeners):
            try:
                listener(turn)
            except Exception:
                logger.exception("Turn listener failed for %s", turn.id)
        return turn

    def remove(self, turn_id: str) -> None:
        """Drop the turn with `turn_id`; unknown ids are ignored."""
        kept = [t for t in self.state.turns if t.id != turn_id]
        if len(kept) != len(self.state.turns):
            self.state.turns = deque(kept, maxlen=self.state.max_turns)

    def recent(self, limit: Optional[int] = None) -> List[Turn]:
        """Up to `limit` newest turns, oldest first."""
        turns = list(self.state.turns)
        if limit is None:
            return turns
        if limit <= 0:
            return []
        return turns[-limit:]

    def context_for(self, exclude_speaker: Optional[Speaker], limit: int = 15) -> List[Turn]:
        """
        Newest `limit` turns with every turn by `exclude_speaker` filtered out.

        A participant sees the other side's history plus user interjections,
        never its own lines.
        """
        turns = list(self.state.turns)
        if exclude_speaker is not None:
            turns = [t for t in turns if t.speaker != exclude_speaker]
        if limit <= 0:
            return []
        return turns[-limit:]

    def count(self) -> int:
        return self.state.total_emitted

    def snapshot(self) -> Dict[str, Any]:
        """Full served state: the window plus the all-time turn count."""
        return {
            "log": [t.to_dict() for t in self.state.turns],
            "totalCount": self.state.total_emitted,
        }
