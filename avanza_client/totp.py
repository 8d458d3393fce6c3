"""Time-based one-time codes for the second login step."""

from __future__ import annotations

import binascii
from datetime import datetime

import pyotp

from .errors import InvalidSecret

CODE_DIGITS = 6
CODE_INTERVAL = 30


def generate_code(secret: str, *, for_time: datetime | int | None = None) -> str:
    """Return the 6-digit code for the 30-second UTC window containing for_time.

    Args:
        secret: Shared base32 secret issued when TOTP was enabled.
        for_time: Point in time to generate for. Defaults to now.

    Raises:
        InvalidSecret: If the secret is empty or not valid base32.
    """
    if not secret or not secret.strip():
        raise InvalidSecret("TOTP secret is empty")

    totp = pyotp.TOTP(
        secret.replace(" ", "").upper(),
        digits=CODE_DIGITS,
        interval=CODE_INTERVAL,
    )
    try:
        if for_time is None:
            return totp.now()
        return totp.at(for_time)
    except (binascii.Error, ValueError, TypeError) as err:
        raise InvalidSecret("TOTP secret is not valid base32") from err
