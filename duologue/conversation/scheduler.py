"""
Turn scheduler — decides when the next automatic turn fires.

All production of automatic turns funnels through `request_next_turn`,
which is single-flight: the `busy` flag is tested and set with no await
in between, so under one asyncio loop no second generation can start
until the first has settled.
"""

import asyncio
import logging
import random
from typing import Optional, Set

from ..config import SchedulerConfig
from ..intelligence.responder import ResponseProducer
from .schema import PENDING_CONTENT, Speaker, Turn, TurnKind
from .state import ConversationState
from .store import TurnStore

logger = logging.getLogger(__name__)


class TurnScheduler:
    """Drives the two automatic participants and reacts to user interjections."""

    def __init__(
        self,
        state: ConversationState,
        store: TurnStore,
        producer: ResponseProducer,
        config: Optional[SchedulerConfig] = None,
        opening_line: str = "Hello!",
    ):
        self.state = state
        self.store = store
        self.producer = producer
        self.config = config or SchedulerConfig()
        self.opening_line = opening_line

        self._loop_task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()
        self._follow_ups: Set[asyncio.Task] = set()

    # ── state accessors ────────────────────────────────────────

    @property
    def is_busy(self) -> bool:
        return self.state.busy

    @property
    def live_mode(self) -> bool:
        return self.state.live_mode

    @property
    def next_speaker(self) -> Speaker:
        return self.state.next_auto_speaker

    # ── one automatic turn ─────────────────────────────────────

    async def request_next_turn(self) -> Optional[Turn]:
        """
        Produce one automatic turn.

        Returns None right away if a generation is already in flight.
        Provider failures come back as the fallback reply; anything else
        is logged and re-raised after the cycle has been settled.
        """
        if self.state.busy:
            logger.debug("Generation already in flight, skipping")
            return None
        self.state.busy = True

        speaker = self.state.next_auto_speaker
        placeholder: Optional[Turn] = None
        try:
            placeholder = self.store.append(speaker, PENDING_CONTENT, TurnKind.AI)
            content = await self.producer.generate(speaker)
            self.store.remove(placeholder.id)
            placeholder = None
            turn = self.store.append(speaker, content, TurnKind.AI)
            logger.info("%s: %s", speaker.value, content[:80])
            return turn
        except Exception:
            logger.exception("Turn cycle for %s failed", speaker.value)
            raise
        finally:
            if placeholder is not None:
                self.store.remove(placeholder.id)
            self.state.next_auto_speaker = speaker.other()
            self.state.busy = False

    # ── user interjection ──────────────────────────────────────

    def inject_user_turn(self, content: str) -> Turn:
        """Append a user turn now and let the automatic side answer shortly after."""
        turn = self.store.append(Speaker.USER, content, TurnKind.USER)
        logger.info("USER: %s", content[:80])

        task = asyncio.create_task(self._follow_up(self.config.follow_up_delay))
        self._follow_ups.add(task)
        task.add_done_callback(self._follow_ups.discard)
        return turn

    async def _follow_up(self, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.request_next_turn()
        except Exception:
            # already logged by request_next_turn
            pass

    # ── lifecycle ──────────────────────────────────────────────

    def seed(self) -> bool:
        """
        Lazily open the conversation. Idempotent: returns False and leaves
        the log alone once it has been initialized or holds any turn.
        """
        if self.state.initialized:
            return False
        self.state.initialized = True
        if self.state.turns:
            return False

        speaker = self.state.next_auto_speaker
        self.store.append(speaker, self.opening_line, TurnKind.AI)
        self.state.next_auto_speaker = speaker.other()
        logger.info("Conversation seeded by %s", speaker.value)
        return True

    def initialize(self) -> None:
        """Seed if needed and arm the continuous schedule."""
        self.seed()
        self.start()

    def start(self) -> None:
        """Arm live mode and launch the repeating turn loop if it is not running."""
        self.state.live_mode = True
        if self._loop_task is not None and not self._loop_task.done():
            return
        self._stopping.clear()
        self._loop_task = asyncio.create_task(self._run())
        logger.info(
            "Live mode armed (every %.1f-%.1fs)",
            self.config.min_delay, self.config.max_delay,
        )

    async def stop(self) -> None:
        """Disarm live mode and cancel the loop and any pending follow-ups."""
        self.state.live_mode = False
        self._stopping.set()

        tasks = list(self._follow_ups)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._follow_ups.clear()
        self._loop_task = None
        logger.info("Turn scheduler stopped")

    def next_delay(self) -> float:
        return random.uniform(self.config.min_delay, self.config.max_delay)

    async def _run(self) -> None:
        """Wait a jittered delay, produce a turn, repeat until stopped."""
        while self.state.live_mode and not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.next_delay())
                break
            except asyncio.TimeoutError:
                pass

            if not self.state.live_mode:
                break
            try:
                await self.request_next_turn()
            except Exception:
                # already logged; the schedule keeps going
                continue
