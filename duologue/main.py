"""
Main orchestrator — wires all components together and runs the async event loop.
Entry point: python -m duologue
"""

import asyncio
import logging
import signal

from .config import AppConfig
from .conversation.scheduler import TurnScheduler
from .conversation.state import ConversationState
from .conversation.store import TurnStore
from .intelligence.llm_client import LLMClient
from .intelligence.responder import ResponseProducer
from .presentation.server import FeedServer
from .shared.broadcast import BroadcastHub

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("duologue")


async def main():
    """Bootstrap and run all system components."""
    config = AppConfig.from_env()

    logger.info("=" * 60)
    logger.info("  Duologue — Starting Up")
    logger.info("=" * 60)

    # ── 1. Shared conversation ─────────────────────────────────
    state = ConversationState(max_turns=config.conversation.max_turns)
    store = TurnStore(state)
    hub = BroadcastHub(store, channel_queue_size=config.server.channel_queue_size)

    # ── 2. Generation ──────────────────────────────────────────
    llm = LLMClient(config.llm)
    await llm.initialize()
    if not llm.configured:
        logger.warning("No LLM API key configured — every reply will be the fallback")

    producer = ResponseProducer(
        store,
        llm.complete,
        context_limit=config.conversation.context_limit,
        fallback_reply=config.conversation.fallback_reply,
    )
    scheduler = TurnScheduler(
        state,
        store,
        producer,
        config.scheduler,
        opening_line=config.conversation.opening_line,
    )

    # ── 3. Ingress ─────────────────────────────────────────────
    server = FeedServer(config.server, store, scheduler, hub, llm_configured=llm.configured)

    if config.scheduler.autostart:
        scheduler.initialize()

    # ── 4. Graceful shutdown handling ──────────────────────────
    shutdown_event = asyncio.Event()

    def _signal_handler():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            pass  # Windows

    logger.info("Open http://%s:%d/events to follow the conversation", config.server.host, config.server.port)

    server_task = asyncio.create_task(server.start())
    shutdown_task = asyncio.create_task(shutdown_event.wait())
    try:
        await asyncio.wait({server_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        pass
    finally:
        logger.info("Shutting down...")
        shutdown_task.cancel()
        await server.stop()
        await asyncio.gather(server_task, shutdown_task, return_exceptions=True)
        await llm.close()
        logger.info("Bye!")


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
