import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "your-default-api-key")
MODEL = os.getenv("MODEL", "gpt-4o-mini")
# Upper bound for a single generator round trip
LLM_TIMEOUT_SEC = float(os.getenv("LLM_TIMEOUT_SEC", "20"))
# Requests per client across the /chat routes
CHAT_RATE_LIMIT = os.getenv("CHAT_RATE_LIMIT", "50 per 15 minutes")

# Optional subsystems, resolved once at startup
CHAT_HISTORY_ENABLED = _flag("CHAT_HISTORY_ENABLED", "true")
REDIS_ENABLED = _flag("REDIS_ENABLED", "false")

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
CONTEXT_TTL_SEC = int(os.getenv("CONTEXT_TTL_SEC", "1800"))

HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "50"))
RECENT_WINDOW = int(os.getenv("RECENT_WINDOW", "5"))
PROMPT_TURNS = int(os.getenv("PROMPT_TURNS", "3"))

DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "en")
VOICE_DEFAULT_LANGUAGE = os.getenv("VOICE_DEFAULT_LANGUAGE", "hi")
