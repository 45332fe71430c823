"""
Data models for BLE advertisements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .constants import (
    ADDRESS_TYPES,
    APPLE_COMPANY_ID,
    GOOGLE_COMPANY_ID,
    MANUFACTURER_NAMES,
    MICROSOFT_COMPANY_ID,
    OWN_ECOSYSTEM_COMPANY_ID,
    SAMSUNG_COMPANY_ID,
)
from .errors import TLVParseError
from .tlv import TLVBox

logger = logging.getLogger('bletools.models')


class Manufacturer(str, Enum):
    """Vendor classification taken from the advertised company id."""
    APPLE = 'apple'
    MICROSOFT = 'microsoft'
    SAMSUNG = 'samsung'
    GOOGLE = 'google'
    OWN_ECOSYSTEM = 'own_ecosystem'
    UNKNOWN = 'unknown'

    @classmethod
    def from_company_id(cls, company_id: Optional[int]) -> Manufacturer:
        return _COMPANY_MANUFACTURERS.get(company_id, cls.UNKNOWN)

    @property
    def display_name(self) -> str:
        for company_id, manufacturer in _COMPANY_MANUFACTURERS.items():
            if manufacturer is self:
                return MANUFACTURER_NAMES[company_id]
        return 'Unknown'


_COMPANY_MANUFACTURERS = {
    APPLE_COMPANY_ID: Manufacturer.APPLE,
    MICROSOFT_COMPANY_ID: Manufacturer.MICROSOFT,
    SAMSUNG_COMPANY_ID: Manufacturer.SAMSUNG,
    GOOGLE_COMPANY_ID: Manufacturer.GOOGLE,
    OWN_ECOSYSTEM_COMPANY_ID: Manufacturer.OWN_ECOSYSTEM,
}


@dataclass(frozen=True)
class MACAddress:
    """A 48-bit link-layer address with its type discriminator."""
    address_data: bytes
    address_type_int: int = 0

    def __post_init__(self):
        if len(self.address_data) != 6:
            raise ValueError(f"MAC address must be 6 bytes, got {len(self.address_data)}")

    @classmethod
    def from_string(cls, address: str, address_type_int: int = 0) -> MACAddress:
        return cls(bytes.fromhex(address.replace(':', '').replace('-', '')), address_type_int)

    @property
    def address_string(self) -> str:
        return ':'.join(f'{b:02X}' for b in self.address_data)

    @property
    def address_type(self) -> str:
        return ADDRESS_TYPES.get(self.address_type_int, 'unknown')

    def __str__(self) -> str:
        return self.address_string


@dataclass(eq=False)
class Advertisement:
    """
    A single observed advertisement.

    Content fields are fixed at creation. ``rssi`` and ``reception_dates``
    grow when later receptions of identical content are merged in through
    :meth:`update`.
    """

    manufacturer_data: Optional[bytes] = None
    service_data: dict[str, bytes] = field(default_factory=dict)
    service_uuids: list[str] = field(default_factory=list)
    rssi: list[float] = field(default_factory=list)
    reception_dates: list[datetime] = field(default_factory=list)
    payload: Optional[bytes] = None
    device_name: Optional[str] = None
    device_address: Optional[bytes] = None
    device_address_type: Optional[int] = None
    connectable: bool = False
    tx_power: Optional[int] = None

    tlv: Optional[TLVBox] = field(init=False, default=None)

    def __post_init__(self):
        if not self.reception_dates:
            self.reception_dates = [datetime.now()]
        if self.payload is None:
            self.payload = self.manufacturer_data or b''
        if self.device_address is not None and len(self.device_address) != 6:
            logger.debug(f"Ignoring {len(self.device_address)}-byte device address {self.device_address.hex()}")
            self.device_address = None
            self.device_address_type = None
        if self.manufacturer_data and self.company_id == APPLE_COMPANY_ID:
            try:
                self.tlv = TLVBox.parse(self.manufacturer_data)
            except TLVParseError as e:
                logger.debug(f"Undecodable manufacturer data {self.manufacturer_data.hex()}: {e}")

    @property
    def company_id(self) -> Optional[int]:
        if not self.manufacturer_data or len(self.manufacturer_data) < 2:
            return None
        return int.from_bytes(self.manufacturer_data[:2], 'little')

    @property
    def manufacturer(self) -> Manufacturer:
        return Manufacturer.from_company_id(self.company_id)

    @property
    def mac_address(self) -> Optional[MACAddress]:
        if self.device_address is None or self.device_address_type is None:
            return None
        return MACAddress(self.device_address, self.device_address_type)

    @property
    def content_key(self) -> tuple:
        """Identity used to detect repeated receptions of the same content."""
        return (
            self.manufacturer_data,
            tuple(sorted(self.service_data.items())),
            tuple(self.service_uuids),
        )

    @property
    def last_reception(self) -> datetime:
        return self.reception_dates[-1]

    @property
    def last_rssi(self) -> Optional[float]:
        return self.rssi[-1] if self.rssi else None

    def update(self, other: Advertisement) -> None:
        """Merge a repeated reception of the same content into this record."""
        self.reception_dates.append(other.last_reception)
        if other.last_rssi is not None:
            self.rssi.append(other.last_rssi)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'manufacturer_data': self.manufacturer_data.hex() if self.manufacturer_data else None,
            'service_data': {uuid: data.hex() for uuid, data in self.service_data.items()},
            'service_uuids': list(self.service_uuids),
            'rssi': list(self.rssi),
            'reception_dates': [d.isoformat() for d in self.reception_dates],
            'device_name': self.device_name,
            'mac_address': self.mac_address.address_string if self.mac_address else None,
            'connectable': self.connectable,
            'tx_power': self.tx_power,
            'tlv_types': self.tlv.tlv_types if self.tlv else [],
        }
