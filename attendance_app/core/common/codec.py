"""Base64 text codec for transport payloads.

Example::

    >>> decode(encode("Genetics S1 (Att)"))
    'Genetics S1 (Att)'
"""
from __future__ import annotations

import base64
import binascii

from attendance_app.core.common.errors import CodecError

__all__ = ["encode", "decode"]


def encode(text: str) -> str:
    """Encode UTF-8 text as standard base64."""

    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode(encoded: str) -> str:
    """Decode standard base64 back to UTF-8 text.

    Args:
        encoded: base64 text without embedded whitespace.

    Raises:
        CodecError: if ``encoded`` is not valid base64 or the decoded bytes are
            not valid UTF-8.
    """

    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CodecError(func="decode", message=f"invalid base64: {exc}") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CodecError(func="decode", message=f"payload is not UTF-8: {exc}") from exc
