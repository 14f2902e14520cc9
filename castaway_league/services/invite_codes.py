import logging
import secrets
from typing import Awaitable, Callable

from castaway_league.core.config import get_settings
from castaway_league.core.errors import AllocationExhausted

logger = logging.getLogger(__name__)

# No 0/O or 1/I, people read these codes off a phone screen.
INVITE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_invite_code(length: int | None = None) -> str:
    length = length or get_settings().invite_code_length
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: str) -> str:
    return code.strip().upper()


async def allocate_invite_code(
    is_taken: Callable[[str], Awaitable[bool]],
    attempts: int | None = None,
    generate: Callable[[], str] = generate_invite_code,
) -> str:
    """
    Draw random codes until one isn't taken.

    Gives up with ``AllocationExhausted`` after ``attempts`` consecutive
    collisions rather than looping forever.
    """
    attempts = attempts or get_settings().invite_code_attempts
    for attempt in range(1, attempts + 1):
        code = generate()
        if not await is_taken(code):
            return code
        logger.info("Invite code collision on attempt %d", attempt)
    raise AllocationExhausted(f"No free invite code after {attempts} attempts")
