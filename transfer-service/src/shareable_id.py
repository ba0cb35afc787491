"""
Shareable identifiers.

A shareable id is the base64 form of a bank account id so that a user can
hand a recipient a copyable string. It is obfuscation for casual sharing,
not encryption: anyone can decode it.
"""

import base64
import binascii

from errors import DecodeError


def encode_id(account_id: str) -> str:
    return base64.b64encode(account_id.encode("utf-8")).decode("ascii")


def decode_id(shareable_id: str) -> str:
    """
    Reverse encode_id. Raises DecodeError for anything encode_id could not
    have produced (bad alphabet/padding, non UTF-8 payload, empty result).
    """
    if not isinstance(shareable_id, str):
        raise DecodeError(detail="shareable id must be a string")
    try:
        raw = base64.b64decode(shareable_id.strip(), validate=True)
        account_id = raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        # UnicodeDecodeError is a ValueError
        raise DecodeError(detail=str(e)) from e
    if not account_id.strip():
        raise DecodeError(detail="decoded account id is empty")
    return account_id
