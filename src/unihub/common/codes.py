from __future__ import annotations

import secrets
import uuid

from ..core.constants import INVITE_CODE_ALPHABET, INVITE_CODE_LENGTH


def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def new_public_id() -> str:
    """Opaque identifier for anything exposed to students or third parties."""
    return uuid.uuid4().hex


def new_secret(num_bytes: int = 32) -> str:
    return secrets.token_hex(num_bytes)
