"""
FastAPI server exposing the live conversation.
Plain JSON endpoints for state and interjections, plus a Server-Sent Events
stream that pushes every change to connected browsers.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ..config import ServerConfig
from ..conversation.scheduler import TurnScheduler
from ..conversation.store import TurnStore
from ..shared.broadcast import BroadcastHub, ChannelSink
from ..shared.protocol import EventType, format_sse, now_iso

logger = logging.getLogger(__name__)


class FeedServer:
    """
    HTTP ingress for the dialogue feed. Owns the FastAPI app and, when run
    directly, the uvicorn server.
    """

    def __init__(
        self,
        config: ServerConfig,
        store: TurnStore,
        scheduler: TurnScheduler,
        hub: BroadcastHub,
        llm_configured: bool = False,
    ):
        self.config = config
        self.store = store
        self.scheduler = scheduler
        self.hub = hub
        self.llm_configured = llm_configured
        self.app = FastAPI(title="Duologue", docs_url=None, lifespan=self._lifespan)
        self._server = None

        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        yield
        await self.stop()

    def _state_payload(self) -> dict:
        payload = self.store.snapshot()
        payload["liveMode"] = self.scheduler.live_mode
        payload["busy"] = self.scheduler.is_busy
        return payload

    def _setup_routes(self):
        """Configure FastAPI routes."""

        @self.app.get("/health")
        async def health():
            return {
                "status": "ok",
                "timestamp": now_iso(),
                "connections": self.hub.connection_count,
                "env": {"hasApiKey": self.llm_configured},
            }

        @self.app.get("/state")
        async def state():
            self.scheduler.seed()
            return self._state_payload()

        @self.app.post("/init")
        async def init():
            try:
                self.scheduler.initialize()
            except Exception:
                logger.exception("Error initializing conversation")
                return JSONResponse({"error": "Failed to initialize conversation"}, status_code=500)
            payload = self._state_payload()
            payload["success"] = True
            payload["messageCount"] = len(payload["log"])
            return payload

        @self.app.post("/step")
        async def step():
            try:
                turn = await self.scheduler.request_next_turn()
            except Exception:
                return JSONResponse({"error": "Failed to generate message"}, status_code=500)
            if turn is None:
                return JSONResponse(
                    {"error": "Generation already in progress, try again later"},
                    status_code=409,
                )
            return {"turn": turn.to_dict()}

        @self.app.get("/messages")
        async def get_messages():
            self.scheduler.seed()
            return self.store.snapshot()

        @self.app.post("/messages")
        async def post_message(request: Request):
            try:
                body = await request.json()
            except ValueError:
                return JSONResponse({"error": "Content is required"}, status_code=400)

            content = body.get("content") if isinstance(body, dict) else None
            if not isinstance(content, str) or not content.strip():
                return JSONResponse({"error": "Content is required"}, status_code=400)

            try:
                turn = self.scheduler.inject_user_turn(content.strip())
            except Exception:
                logger.exception("Error adding user message")
                return JSONResponse({"error": "Failed to add message"}, status_code=500)
            return {"turn": turn.to_dict()}

        @self.app.get("/events")
        async def events(request: Request):
            self.scheduler.seed()
            channel = self.hub.subscribe()
            return StreamingResponse(
                self._stream(request, channel),
                media_type="text/event-stream",
                headers={
                    "Cache-Control": "no-cache",
                    "Connection": "keep-alive",
                    "X-Accel-Buffering": "no",
                },
            )

    async def _stream(self, request: Request, channel: ChannelSink):
        """Drain one channel into SSE frames, heartbeating while idle."""
        try:
            while not channel.closed:
                if await request.is_disconnected():
                    break
                event = await channel.get(timeout=self.config.heartbeat_interval)
                if event is None:
                    event = self.hub.snapshot_event(EventType.HEARTBEAT)
                yield format_sse(event)
        finally:
            self.hub.unsubscribe(channel)

    async def start(self):
        """Start the uvicorn server."""
        import uvicorn
        config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        logger.info(
            "Feed server starting on %s:%d",
            self.config.host, self.config.port
        )
        await self._server.serve()

    async def stop(self):
        """Stop generating and drop all live channels."""
        await self.scheduler.stop()
        self.hub.close_all()
        if self._server is not None:
            self._server.should_exit = True
        logger.info("Feed server stopped")
