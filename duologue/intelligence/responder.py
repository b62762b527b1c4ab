import logging
from typing import Awaitable, Callable

from ..conversation.schema import Speaker
from ..conversation.store import TurnStore

logger = logging.getLogger(__name__)

# Anything that turns prompt text into reply text, e.g. LLMClient.complete
Provider = Callable[[str], Awaitable[str]]

REPLY_INSTRUCTION = (
    "Here is the conversation history. Please respond naturally to continue "
    "the conversation. Keep it brief (1-2 sentences)."
)
FALLBACK_REPLY = "I'm having trouble responding right now."


class ResponseProducer:
    """Builds a participant's prompt from the store and asks the provider once."""

    def __init__(
        self,
        store: TurnStore,
        provider: Provider,
        context_limit: int = 10,
        fallback_reply: str = FALLBACK_REPLY,
    ):
        self.store = store
        self.provider = provider
        self.context_limit = context_limit
        self.fallback_reply = fallback_reply

    def build_prompt(self, speaker: Speaker) -> str:
        context = self.store.context_for(speaker, self.context_limit)
        lines = [f"{turn.speaker.value}: {turn.content}" for turn in context]
        lines.append(REPLY_INSTRUCTION)
        return "\n".join(lines)

    async def generate(self, speaker: Speaker) -> str:
        """Reply text for `speaker`, or the fallback reply if the provider fails."""
        prompt = self.build_prompt(speaker)
        try:
            reply = await self.provider(prompt)
        except Exception as e:
            logger.error("Provider failed for %s: %s: %s", Speaker(speaker).value, type(e).__name__, e)
            return self.fallback_reply

        if not isinstance(reply, str) or not reply.strip():
            logger.error("Provider returned no text for %s", Speaker(speaker).value)
            return self.fallback_reply
        return reply.strip()
