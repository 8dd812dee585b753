"""
RSVP Code Generator
Issues short, unguessable confirmation codes for event registrations.
"""

import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.core.config import settings
from campushub.core.exceptions import ConflictError
from campushub.models.rsvp import EventRsvp

# Crockford-style alphabet without 0/O, 1/I/L and U so codes survive being read aloud
RSVP_ALPHABET = "23456789ABCDEFGHJKMNPQRSTVWXYZ"
GROUP_SIZE = 4


def _format_code(prefix: str, body: str) -> str:
    groups = [body[i:i + GROUP_SIZE] for i in range(0, len(body), GROUP_SIZE)]
    return "-".join([prefix, *groups]) if prefix else "-".join(groups)


def generate_rsvp_number(prefix: Optional[str] = None, length: Optional[int] = None) -> str:
    """Return a random code such as ``RSVP-7KQ2-M9XD``.

    Symbols come from `secrets`, so consecutive codes carry no ordering and
    cannot be enumerated from one another.
    """
    prefix = settings.RSVP_CODE_PREFIX if prefix is None else prefix
    length = length or settings.RSVP_CODE_LENGTH
    body = "".join(secrets.choice(RSVP_ALPHABET) for _ in range(length))
    return _format_code(prefix, body)


def normalize_rsvp_number(raw: str) -> str:
    """Canonical form of scanner or keyboard input.

    Separators are ignored, so ``rsvp 7kq2 m9xd``, ``RSVP7KQ2M9XD`` and
    ``7KQ2-M9XD`` all become ``RSVP-7KQ2-M9XD``. Input of any other length
    is returned compacted and will not match a stored code.
    """
    compact = "".join(ch for ch in (raw or "") if ch.isalnum()).upper()
    prefix = settings.RSVP_CODE_PREFIX or ""
    bare_prefix = "".join(ch for ch in prefix if ch.isalnum()).upper()
    length = settings.RSVP_CODE_LENGTH

    if bare_prefix and len(compact) == len(bare_prefix) + length and compact.startswith(bare_prefix):
        return _format_code(prefix, compact[len(bare_prefix):])
    if len(compact) == length:
        return _format_code(prefix, compact)
    return compact


class RsvpCodeGenerator:
    """Generates RSVP numbers that do not collide with any stored registration."""

    def __init__(self, max_attempts: Optional[int] = None):
        self.max_attempts = max_attempts or settings.RSVP_CODE_MAX_ATTEMPTS

    async def generate_unique(self, db: AsyncSession) -> str:
        for _ in range(self.max_attempts):
            candidate = generate_rsvp_number()
            existing = await db.execute(
                select(EventRsvp.rsvp_id).where(EventRsvp.rsvp_number == candidate)
            )
            if existing.scalar_one_or_none() is None:
                return candidate
        raise ConflictError("Could not allocate a unique RSVP number, please retry")
