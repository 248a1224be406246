# tenantkit/domain/services.py
from __future__ import annotations

import re
import secrets

_PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")


def generate_numeric_code(length: int = 6) -> str:
    """Zero-padded numeric code drawn from the OS CSPRNG."""
    if length < 1:
        raise ValueError("code length must be positive")
    return f"{secrets.randbelow(10**length):0{length}d}"


def is_phone_number(identifier: str) -> bool:
    """
    E.164-ish check: optional leading '+', no leading zero, 2 to 15 digits.
    Anything else is treated as an email address (or unknown).
    """
    return bool(_PHONE_RE.match(identifier))


def otp_message(code: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return f"Your verification code is: {code}. Valid for {minutes} minutes."
