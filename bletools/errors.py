"""
Exceptions raised by bletools.
"""

from __future__ import annotations


class BLEToolsError(Exception):
    """Base class for all bletools errors."""


class NoMacAddressError(BLEToolsError):
    """A transport-less device was constructed from an advertisement without an address."""


class DecodingError(BLEToolsError):
    """A TLV value could not be decoded."""


class UnknownTypeError(DecodingError):
    """No decoder is registered for a TLV type."""

    def __init__(self, tlv_type: int):
        super().__init__(f"No decoder for TLV type 0x{tlv_type:02x}")
        self.tlv_type = tlv_type


class TLVParseError(DecodingError):
    """A TLV byte stream is truncated or malformed."""
