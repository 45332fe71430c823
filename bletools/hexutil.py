"""
Hex encoding helpers used by the delimited-text export.
"""

from __future__ import annotations

import re
from typing import Optional

from .constants import HEX_GROUP_SIZE

_HEX_PAIR = re.compile(r'[0-9a-f]{1,2}', re.IGNORECASE)


def hexadecimal(data: bytes) -> str:
    """Lower-case hex string of ``data`` with no separators."""
    return data.hex()


def separate(text: str, every: int = 4, separator: str = ' ') -> str:
    """Insert ``separator`` between every ``every`` characters of ``text``."""
    if every <= 0:
        raise ValueError("every must be positive")
    return separator.join(text[i:i + every] for i in range(0, len(text), every))


def grouped_hex(data: bytes, every: int = HEX_GROUP_SIZE) -> str:
    """Hex string of ``data`` split into space separated groups."""
    return separate(hexadecimal(data), every)


def from_hex(text: str) -> Optional[bytes]:
    """
    Decode a hex string, ignoring anything that is not a hex digit.

    Spaces, angle brackets and other decoration are skipped, so the output of
    :func:`grouped_hex` decodes back to the original bytes.

    Returns:
        The decoded bytes, ``b''`` for an empty string, or None when the text
        contains no hex digits at all.
    """
    if not text:
        return b''
    digits = ''.join(text.split())
    pairs = _HEX_PAIR.findall(digits)
    if not pairs:
        return None
    return bytes(int(pair, 16) for pair in pairs)
