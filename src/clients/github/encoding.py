from __future__ import annotations

import base64
import binascii
import logging

logger = logging.getLogger(__name__)

DECODING_ERROR = "DECODING_ERROR: File content could not be read."


def encode_base64_utf8(text: str) -> str:
    # Lone surrogates are not valid UTF-8; replace them instead of failing.
    raw = (text or "").encode("utf-8", errors="replace")
    return base64.b64encode(raw).decode("ascii")


def decode_base64_utf8(data: str) -> str:
    """Decode base64-encoded UTF-8; never raises.

    GitHub wraps blob content at 60 columns, so whitespace is dropped first.
    Invalid base64 or invalid UTF-8 yields the ``DECODING_ERROR`` sentinel so a
    single corrupt blob cannot abort a bulk import.
    """
    cleaned = "".join((data or "").split())
    try:
        return base64.b64decode(cleaned, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.warning("UTF-8 decoding from base64 failed: %s", e)
        return DECODING_ERROR
