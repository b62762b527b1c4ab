"""
Tests for the HTTP ingress routes using FastAPI's TestClient.
"""

import asyncio
import os
import sys

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from duologue.config import SchedulerConfig, ServerConfig
from duologue.conversation.scheduler import TurnScheduler
from duologue.conversation.state import ConversationState
from duologue.conversation.store import TurnStore
from duologue.intelligence.responder import ResponseProducer
from duologue.presentation.server import FeedServer
from duologue.shared.broadcast import BroadcastHub


async def canned_provider(prompt):
    return "A canned reply."


def make_server(provider=canned_provider):
    state = ConversationState()
    store = TurnStore(state)
    hub = BroadcastHub(store)
    producer = ResponseProducer(store, provider)
    # long delays keep background turns out of the way
    scheduler = TurnScheduler(
        state, store, producer,
        SchedulerConfig(min_delay=60, max_delay=60, follow_up_delay=60),
    )
    return FeedServer(ServerConfig(), store, scheduler, hub, llm_configured=True)


class TestFeedServer:

    def setup_method(self):
        self.server = make_server()

    def test_health(self):
        with TestClient(self.server.app) as client:
            resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["connections"] == 0
        assert body["env"]["hasApiKey"] is True

    def test_state_lazily_seeds(self):
        with TestClient(self.server.app) as client:
            first = client.get("/state").json()
            second = client.get("/state").json()
        assert len(first["log"]) == 1
        assert first["log"][0]["speaker"] == "AI_A"
        assert first["log"][0]["content"] == "Hello!"
        assert first["totalCount"] == 1
        assert first["liveMode"] is False
        assert first["busy"] is False
        assert second["log"] == first["log"]

    def test_init_arms_live_mode(self):
        with TestClient(self.server.app) as client:
            body = client.post("/init").json()
            again = client.post("/init").json()
            assert body["success"] is True
            assert body["liveMode"] is True
            assert body["messageCount"] == 1
            assert again["log"] == body["log"]
        assert self.server.scheduler.live_mode is False  # stopped on shutdown

    def test_messages_get(self):
        with TestClient(self.server.app) as client:
            body = client.get("/messages").json()
        assert set(body) == {"log", "totalCount"}

    def test_step_produces_turn(self):
        with TestClient(self.server.app) as client:
            client.post("/init")
            resp = client.post("/step")
            assert resp.status_code == 200
            turn = resp.json()["turn"]
            assert turn["speaker"] == "AI_B"
            assert turn["content"] == "A canned reply."
            assert turn["kind"] == "ai"
            log = client.get("/messages").json()["log"]
        assert [t["content"] for t in log] == ["Hello!", "A canned reply."]

    def test_step_when_busy(self):
        self.server.scheduler.state.busy = True
        with TestClient(self.server.app) as client:
            resp = client.post("/step")
        assert resp.status_code == 409
        assert "error" in resp.json()

    def test_step_internal_fault(self):
        def explode(*args, **kwargs):
            raise RuntimeError("store exploded")

        self.server.store.append = explode
        with TestClient(self.server.app) as client:
            resp = client.post("/step")
        assert resp.status_code == 500
        assert self.server.scheduler.is_busy is False

    def test_post_message(self):
        with TestClient(self.server.app) as client:
            resp = client.post("/messages", json={"content": "  hello  "})
            assert resp.status_code == 200
            turn = resp.json()["turn"]
            log = client.get("/messages").json()["log"]
        assert turn["speaker"] == "USER"
        assert turn["kind"] == "user"
        assert turn["content"] == "hello"
        assert log[-1]["id"] == turn["id"]

    def test_post_message_validation(self):
        with TestClient(self.server.app) as client:
            for body in ({}, {"content": ""}, {"content": "   "}, {"content": 42}, ["content"]):
                resp = client.post("/messages", json=body)
                assert resp.status_code == 400, body
            resp = client.post(
                "/messages", content=b"not json", headers={"Content-Type": "application/json"}
            )
            assert resp.status_code == 400
            assert client.get("/messages").json()["totalCount"] == 1  # only the seed

    def test_stream_frames(self):
        async def _test():
            channel = self.server.hub.subscribe()

            class FakeRequest:
                calls = 0

                async def is_disconnected(self):
                    FakeRequest.calls += 1
                    return FakeRequest.calls > 3

            self.server.config.heartbeat_interval = 0.01
            frames = [frame async for frame in self.server._stream(FakeRequest(), channel)]
            assert frames[0].startswith('data: {"type": "connected"')
            assert frames[1].startswith('data: {"type": "state"')
            assert frames[2].startswith('data: {"type": "heartbeat"')
            assert self.server.hub.connection_count == 0

        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(_test())
        finally:
            loop.close()
