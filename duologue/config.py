"""
Centralized configuration for the Duologue feed.
All settings loaded from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv


@dataclass
class LLMConfig:
    """LLM API configuration."""
    api_key: str = ""
    base_url: str = "https://api.deepseek.com/v1"
    model: str = "deepseek-chat"
    max_tokens: int = 120
    temperature: float = 0.9
    timeout: float = 30.0


@dataclass
class ConversationConfig:
    """Shape of the shared conversation."""
    max_turns: int = 100  # rolling window served to clients
    context_limit: int = 10  # turns shown to a participant when it replies
    opening_line: str = "Hello!"
    fallback_reply: str = "I'm having trouble responding right now."


@dataclass
class SchedulerConfig:
    """Cadence of automatic turns."""
    min_delay: float = 5.0
    max_delay: float = 10.0
    follow_up_delay: float = 2.0  # pause before answering a user interjection
    autostart: bool = True


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    heartbeat_interval: float = 2.0
    channel_queue_size: int = 256


@dataclass
class AppConfig:
    """Top-level application configuration."""
    llm: LLMConfig = field(default_factory=LLMConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables (including .env file)."""
        load_dotenv()
        config = cls()

        # LLM config
        config.llm.api_key = os.getenv("LLM_API_KEY", config.llm.api_key)
        config.llm.base_url = os.getenv("LLM_BASE_URL", config.llm.base_url)
        config.llm.model = os.getenv("LLM_MODEL", config.llm.model)
        max_tokens = os.getenv("LLM_MAX_TOKENS")
        if max_tokens:
            config.llm.max_tokens = int(max_tokens)
        temperature = os.getenv("LLM_TEMPERATURE")
        if temperature:
            config.llm.temperature = float(temperature)
        timeout = os.getenv("LLM_TIMEOUT")
        if timeout:
            config.llm.timeout = float(timeout)

        # Conversation config
        max_turns = os.getenv("MAX_TURNS")
        if max_turns:
            config.conversation.max_turns = int(max_turns)
        context_limit = os.getenv("CONTEXT_LIMIT")
        if context_limit:
            config.conversation.context_limit = int(context_limit)
        config.conversation.opening_line = os.getenv(
            "OPENING_LINE", config.conversation.opening_line
        )
        config.conversation.fallback_reply = os.getenv(
            "FALLBACK_REPLY", config.conversation.fallback_reply
        )

        # Scheduler config
        min_delay = os.getenv("TURN_MIN_DELAY")
        if min_delay:
            config.scheduler.min_delay = float(min_delay)
        max_delay = os.getenv("TURN_MAX_DELAY")
        if max_delay:
            config.scheduler.max_delay = float(max_delay)
        follow_up = os.getenv("FOLLOW_UP_DELAY")
        if follow_up:
            config.scheduler.follow_up_delay = float(follow_up)
        live_mode = os.getenv("LIVE_MODE")
        if live_mode:
            config.scheduler.autostart = live_mode.strip().lower() in ("1", "true", "yes", "on")

        # Server config
        config.server.host = os.getenv("SERVER_HOST", config.server.host)
        port = os.getenv("SERVER_PORT") or os.getenv("PORT")
        if port:
            config.server.port = int(port)
        heartbeat = os.getenv("HEARTBEAT_INTERVAL")
        if heartbeat:
            config.server.heartbeat_interval = float(heartbeat)
        queue_size = os.getenv("CHANNEL_QUEUE_SIZE")
        if queue_size:
            config.server.channel_queue_size = int(queue_size)

        return config
