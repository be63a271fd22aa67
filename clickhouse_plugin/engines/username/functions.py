"""
Function table for username templates.

Filters transform a value (``{{ role_name | truncate(8) }}``); functions
produce one (``{{ random(15) }}``). These tables are the complete vocabulary:
the template environment exposes nothing else.
"""

import secrets
import string
import time
import uuid
from typing import Any, Callable

_ALPHANUMERIC = string.ascii_letters + string.digits


def truncate(value: Any, length: int) -> str:
    """First *length* characters of *value*."""
    if length < 0:
        raise ValueError(f"truncate length must be >= 0, got {length}")
    return str(value)[:length]


def uppercase(value: Any) -> str:
    return str(value).upper()


def lowercase(value: Any) -> str:
    return str(value).lower()


def random_string(length: int) -> str:
    """Alphanumeric string of *length* characters from the OS CSPRNG."""
    if length < 0:
        raise ValueError(f"random length must be >= 0, got {length}")
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def unix_time() -> str:
    return str(int(time.time()))


def new_uuid() -> str:
    return str(uuid.uuid4())


USERNAME_FILTERS: dict[str, Callable[..., str]] = {
    "truncate": truncate,
    "uppercase": uppercase,
    "lowercase": lowercase,
}

USERNAME_FUNCTIONS: dict[str, Callable[..., str]] = {
    "random": random_string,
    "unix_time": unix_time,
    "uuid": new_uuid,
}
