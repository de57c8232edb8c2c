from __future__ import annotations

import logging
import random
from typing import Callable

from .errors import InternalError, ValidationError
from .models import DEFAULT_AVATAR

logger = logging.getLogger(__name__)

# No I, L, O, 0 or 1: they are easy to misread on a shared screen.
CODE_CHARS = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 4
MAX_CODE_ATTEMPTS = 50

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 18
RESPONSE_MIN_LENGTH = 2
RESPONSE_MAX_LENGTH = 160
CUSTOM_PROMPT_MIN_LENGTH = 5
CUSTOM_PROMPT_MAX_LENGTH = 150
AVATAR_MAX_LENGTH = 8


def generate_room_code(exists: Callable[[str], bool]) -> str:
    """Return a code for which ``exists`` is false, giving up after 50 draws."""
    for _ in range(MAX_CODE_ATTEMPTS):
        code = "".join(random.choice(CODE_CHARS) for _ in range(CODE_LENGTH))
        if not exists(code):
            return code
        logger.warning("Room code collision on %s, drawing again", code)
    raise InternalError("Failed to generate a room code, try again")


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def normalize_name(name: str) -> str:
    n = (name or "").strip()
    if len(n) < NAME_MIN_LENGTH:
        raise ValidationError(f"Name must be at least {NAME_MIN_LENGTH} characters long")
    if len(n) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be at most {NAME_MAX_LENGTH} characters long")
    return n


def normalize_avatar(raw: str | None) -> str:
    a = (raw or "").strip()
    if not a:
        return DEFAULT_AVATAR
    return a[:AVATAR_MAX_LENGTH]


def sanitize_response(text: str) -> str:
    t = (text or "").strip()
    if len(t) < RESPONSE_MIN_LENGTH:
        raise ValidationError("Response is too short")
    return t[:RESPONSE_MAX_LENGTH]


def sanitize_custom_prompt(text: str) -> str:
    t = (text or "").strip()
    if len(t) < CUSTOM_PROMPT_MIN_LENGTH or len(t) > CUSTOM_PROMPT_MAX_LENGTH:
        raise ValidationError(
            f"Prompt must be between {CUSTOM_PROMPT_MIN_LENGTH} and {CUSTOM_PROMPT_MAX_LENGTH} characters"
        )
    return t
