"""Dispatch tokens that tie a remote run back to the invocation that started it."""

from __future__ import annotations

import secrets
import string
import time
from typing import Callable, Optional

TOKEN_PREFIX = "trigger"
SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
SUFFIX_LENGTH = 9


def generate_dispatch_token(
    *,
    prefix: str = TOKEN_PREFIX,
    suffix_length: int = SUFFIX_LENGTH,
    clock: Optional[Callable[[], float]] = None,
) -> str:
    """Return ``<prefix>-<epoch millis>-<base36 suffix>``."""

    if suffix_length < 6:
        raise ValueError("Dispatch token suffix needs at least 6 base-36 characters.")
    now = (clock or time.time)()
    millis = int(now * 1000)
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(suffix_length))
    return f"{prefix}-{millis}-{suffix}"


def token_matches(token: str, text: Optional[str]) -> bool:
    """True when ``token`` appears verbatim inside ``text``."""

    if not token or not text:
        return False
    return token in text
