"""Prefixed, collision-resistant identifiers."""

from __future__ import annotations

import hashlib
import itertools
import os
import secrets
import socket
import string
import threading
import time

_ID_LENGTH = 24
_ALPHABET = string.digits + string.ascii_lowercase

_counter = itertools.count(secrets.randbelow(476782367))
_counter_lock = threading.Lock()
_FINGERPRINT = hashlib.sha3_512(
    f"{os.getpid()}{socket.gethostname()}{secrets.token_hex(32)}".encode()
).hexdigest()


def _base36(number: int) -> str:
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits)) or "0"


def _cuid(length: int = _ID_LENGTH) -> str:
    with _counter_lock:
        count = next(_counter)
    first = secrets.choice(string.ascii_lowercase)
    material = f"{time.time_ns():x}{secrets.token_hex(length)}{count:x}{_FINGERPRINT}"
    digest = hashlib.sha3_512(material.encode()).digest()
    body = _base36(int.from_bytes(digest, "big"))
    return first + body[1:length]


def generate_id(kind: str) -> str:
    """Return a new identifier of the form ``<kind>_<cuid>``."""
    return f"{kind}_{_cuid()}"