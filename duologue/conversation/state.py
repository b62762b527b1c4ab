from collections import deque
from dataclasses import dataclass, field

from .schema import Speaker, Turn


@dataclass
class ConversationState:
    """
    The one shared, mutable conversation.

    Built once by the entry point and handed to the store, scheduler and
    broadcast hub. `turns` is the rolling window served to clients;
    `total_emitted` counts every turn ever created and never decreases.
    """
    max_turns: int = 100
    turns: "deque[Turn]" = field(init=False)
    total_emitted: int = 0
    next_auto_speaker: Speaker = Speaker.AI_A
    busy: bool = False
    live_mode: bool = False
    initialized: bool = False

    def __post_init__(self):
        if self.max_turns < 1:
            raise ValueError("max_turns must be positive")
        self.turns = deque(maxlen=self.max_turns)
