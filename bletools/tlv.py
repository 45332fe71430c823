"""
TLV (type-length-value) payloads carried in Apple manufacturer data.

Apple continuity advertisements pack a sequence of records of the form
``type (1 byte) | length (1 byte) | value (length bytes)`` into the
manufacturer-specific data field. Because the field starts with the
little-endian company id ``4c 00``, the first record parsed from raw
manufacturer data is always the pseudo-TLV ``(0x4c, 0x00, b'')``, which acts
as the vendor marker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from .errors import TLVParseError


class ContinuityType(IntEnum):
    """Known Apple continuity TLV types."""
    IBEACON = 0x02
    AIRPRINT = 0x03
    AIRDROP = 0x05
    HOMEKIT = 0x06
    PROXIMITY_PAIRING = 0x07
    HEY_SIRI = 0x08
    AIRPLAY_TARGET = 0x09
    AIRPLAY_SOURCE = 0x0A
    MAGIC_SWITCH = 0x0B
    HANDOFF = 0x0C
    TETHERING_TARGET = 0x0D
    TETHERING_SOURCE = 0x0E
    NEARBY_ACTION = 0x0F
    NEARBY_INFO = 0x10
    OFFLINE_FINDING = 0x12
    VENDOR_MARKER = 0x4C

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def describe(cls, tlv_type: int) -> Optional[str]:
        """Description for a raw type byte, or None when the type is not known."""
        try:
            return cls(tlv_type).description
        except ValueError:
            return None


_DESCRIPTIONS = {
    ContinuityType.IBEACON: 'iBeacon',
    ContinuityType.AIRPRINT: 'AirPrint',
    ContinuityType.AIRDROP: 'AirDrop',
    ContinuityType.HOMEKIT: 'HomeKit',
    ContinuityType.PROXIMITY_PAIRING: 'Proximity Pairing',
    ContinuityType.HEY_SIRI: 'Hey Siri',
    ContinuityType.AIRPLAY_TARGET: 'AirPlay Target',
    ContinuityType.AIRPLAY_SOURCE: 'AirPlay Source',
    ContinuityType.MAGIC_SWITCH: 'Magic Switch',
    ContinuityType.HANDOFF: 'Handoff',
    ContinuityType.TETHERING_TARGET: 'Tethering Target',
    ContinuityType.TETHERING_SOURCE: 'Tethering Source',
    ContinuityType.NEARBY_ACTION: 'Nearby Action',
    ContinuityType.NEARBY_INFO: 'Nearby Info',
    ContinuityType.OFFLINE_FINDING: 'Offline Finding',
    ContinuityType.VENDOR_MARKER: 'Apple BLE',
}


@dataclass(frozen=True)
class TLV:
    """A single type-length-value record."""
    type: int
    length: int
    value: bytes

    def to_bytes(self) -> bytes:
        return bytes([self.type, self.length]) + self.value


@dataclass(frozen=True)
class TLVBox:
    """Ordered sequence of TLV records with lookup by type."""
    tlvs: tuple[TLV, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, data: bytes) -> TLVBox:
        """
        Parse a TLV byte stream.

        Raises:
            TLVParseError: if a record header or value is truncated.
        """
        tlvs = []
        index = 0
        while index < len(data):
            if index + 2 > len(data):
                raise TLVParseError(f"Truncated TLV header at offset {index}")
            tlv_type = data[index]
            length = data[index + 1]
            start = index + 2
            end = start + length
            if end > len(data):
                raise TLVParseError(
                    f"TLV 0x{tlv_type:02x} at offset {index} declares {length} bytes, "
                    f"only {len(data) - start} available"
                )
            tlvs.append(TLV(type=tlv_type, length=length, value=bytes(data[start:end])))
            index = end
        return cls(tlvs=tuple(tlvs))

    def get_value(self, tlv_type: int) -> Optional[bytes]:
        """Value of the first record with ``tlv_type``, or None."""
        for tlv in self.tlvs:
            if tlv.type == tlv_type:
                return tlv.value
        return None

    @property
    def tlv_types(self) -> list[int]:
        return [tlv.type for tlv in self.tlvs]

    def to_bytes(self) -> bytes:
        return b''.join(tlv.to_bytes() for tlv in self.tlvs)

    def __iter__(self):
        return iter(self.tlvs)

    def __len__(self) -> int:
        return len(self.tlvs)
