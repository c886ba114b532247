"""Credential helpers."""

from aiwallet.security.credentials import (
    credential_matches,
    decode_credential,
    encode_credential,
)

__all__ = ["credential_matches", "decode_credential", "encode_credential"]
