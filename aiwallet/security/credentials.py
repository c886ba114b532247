"""
Credential encoding.

WARNING: this is base64, not a password hash. Anyone who can read the
snapshot file or the local storage can recover every password. It is kept
only so data files written by the JavaScript web client stay readable; a
production deployment must replace it with a real KDF (bcrypt, argon2)
and migrate stored credentials.
"""

import base64
import binascii
import hmac
from typing import Optional


def encode_credential(password: str) -> str:
    return base64.b64encode(password.encode("utf-8")).decode("ascii")


def decode_credential(stored: str) -> Optional[str]:
    """Return the plain password, or None if `stored` is not valid base64 UTF-8."""
    try:
        return base64.b64decode(stored.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None


def credential_matches(stored: Optional[str], password: str) -> bool:
    if not stored:
        return False
    decoded = decode_credential(stored)
    if decoded is None:
        return False
    return hmac.compare_digest(decoded.encode("utf-8"), password.encode("utf-8"))
