import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Realtime
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # Storage (defaults to in-memory when REDIS_URL is empty)
    REDIS_URL = os.environ.get("REDIS_URL", "")
    ROOM_TTL_SEC = int(os.environ.get("ROOM_TTL_SEC", str(60 * 60 * 6)))

    # Game
    DEFAULT_ROUNDS = int(os.environ.get("DEFAULT_ROUNDS", "3"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "3"))
    PROMPT_DURATION_SEC = int(os.environ.get("PROMPT_DURATION_SEC", "60"))
    VOTE_DURATION_SEC = int(os.environ.get("VOTE_DURATION_SEC", "30"))
    SPEED_PROMPT_DURATION_SEC = int(os.environ.get("SPEED_PROMPT_DURATION_SEC", "30"))
    SPEED_VOTE_DURATION_SEC = int(os.environ.get("SPEED_VOTE_DURATION_SEC", "20"))
    STAGE_MESSAGE_DURATION_MS = int(os.environ.get("STAGE_MESSAGE_DURATION_MS", "10000"))

    # Deadline sweep for rooms with auto-advance on. 0 disables it.
    SWEEP_INTERVAL_SEC = float(os.environ.get("SWEEP_INTERVAL_SEC", "1.0"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
