"""
Byte-level decoders for Apple continuity TLV values.

Each decoder turns the value bytes of one TLV type into an ordered mapping of
field names to decoded values. A decoded value is always one of:

- a scalar (``int``, ``str``, ``bool`` or an ``Enum`` member)
- ``bytes``
- a ``list`` of decoded values
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Union

from .errors import DecodingError, UnknownTypeError
from .tlv import ContinuityType

Scalar = Union[int, str, bool, Enum]
FieldValue = Union[Scalar, bytes, list]
DecodedFields = dict[str, FieldValue]


class NearbyDeviceFlags(IntEnum):
    """
    Data flags byte of a Nearby Info advertisement.

    The byte varies with the OS family and release and with the Wi-Fi
    setting, which makes it usable as a fingerprint.
    """
    IOS10 = 0x00
    MACOS_WIFI_UNKNOWN = 0x04
    WATCH_WIFI_UNKNOWN = 0x06
    IOS11 = 0x10
    MACOS_WIFI_ON = 0x14
    IOS12_WIFI_ON = 0x18
    IOS12_WIFI_OFF = 0x1A
    IOS12_OR_IPADOS13_WIFI_ON = 0x1C
    IOS12_OR_MACOS_WIFI_ON = 0x1E
    IOS13_WIFI_OFF = 0x90
    IOS13_WIFI_ON = 0x98
    IOS13_WIFI_ON_2 = 0x9C
    UNKNOWN = -1

    @classmethod
    def from_byte(cls, value: int) -> NearbyDeviceFlags:
        """Map a raw flags byte to a member; reserved values map to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class ContinuityDecoder:
    """Base class for TLV value decoders."""

    tlv_type: ContinuityType
    min_length = 0

    def decode(self, data: bytes) -> DecodedFields:
        if len(data) < self.min_length:
            raise DecodingError(
                f"{self.tlv_type.description} value needs at least {self.min_length} "
                f"bytes, got {len(data)}"
            )
        return self._decode(bytes(data))

    def _decode(self, data: bytes) -> DecodedFields:
        raise NotImplementedError


class NearbyInfoDecoder(ContinuityDecoder):
    tlv_type = ContinuityType.NEARBY_INFO
    min_length = 2

    def _decode(self, data: bytes) -> DecodedFields:
        return {
            'status_flags': data[0] >> 4,
            'action_code': data[0] & 0x0F,
            'wifi_state': NearbyDeviceFlags.from_byte(data[1]),
            'auth_tag': data[2:],
        }


class NearbyActionDecoder(ContinuityDecoder):
    tlv_type = ContinuityType.NEARBY_ACTION
    min_length = 2

    def _decode(self, data: bytes) -> DecodedFields:
        return {
            'action_flags': data[0],
            'action_type': data[1],
            'auth_tag': data[2:5],
            'action_parameters': data[5:],
        }


class HandoffDecoder(ContinuityDecoder):
    tlv_type = ContinuityType.HANDOFF
    min_length = 4

    def _decode(self, data: bytes) -> DecodedFields:
        return {
            'clipboard_status': data[0],
            'sequence_number': int.from_bytes(data[1:3], 'little'),
            'auth_tag': data[3:4],
            'encrypted_payload': data[4:],
        }


class AirDropDecoder(ContinuityDecoder):
    """Decodes the truncated contact hashes an AirDrop sender broadcasts."""

    tlv_type = ContinuityType.AIRDROP
    min_length = 17

    def _decode(self, data: bytes) -> DecodedFields:
        return {
            'version': data[8],
            'contact_hashes': [data[offset:offset + 2] for offset in range(9, 17, 2)],
        }


class ProximityPairingDecoder(ContinuityDecoder):
    tlv_type = ContinuityType.PROXIMITY_PAIRING
    min_length = 6

    def _decode(self, data: bytes) -> DecodedFields:
        # Battery levels are nibbles; 0xF means not reported
        return {
            'prefix': data[0],
            'device_model': int.from_bytes(data[1:3], 'big'),
            'status': data[3],
            'battery_levels': [data[4] >> 4, data[4] & 0x0F, data[5] & 0x0F],
            'lid_open_count': data[6] if len(data) > 6 else 0,
        }


class OfflineFindingDecoder(ContinuityDecoder):
    tlv_type = ContinuityType.OFFLINE_FINDING
    min_length = 1

    def _decode(self, data: bytes) -> DecodedFields:
        fields: DecodedFields = {
            'status': data[0],
            'public_key': data[1:23],
        }
        if len(data) > 23:
            fields['public_key_bits'] = data[23]
        if len(data) > 24:
            fields['hint'] = data[24]
        return fields


_DECODERS: dict[int, ContinuityDecoder] = {
    decoder.tlv_type: decoder
    for decoder in (
        NearbyInfoDecoder(),
        NearbyActionDecoder(),
        HandoffDecoder(),
        AirDropDecoder(),
        ProximityPairingDecoder(),
        OfflineFindingDecoder(),
    )
}


def decoder_for_type(tlv_type: int) -> ContinuityDecoder:
    """
    Get the decoder registered for a TLV type.

    Raises:
        UnknownTypeError: if no decoder handles ``tlv_type``.
    """
    try:
        return _DECODERS[tlv_type]
    except KeyError:
        raise UnknownTypeError(tlv_type) from None


def decode(tlv_type: int, data: bytes) -> DecodedFields:
    """Decode ``data`` with the decoder for ``tlv_type``."""
    return decoder_for_type(tlv_type).decode(data)
