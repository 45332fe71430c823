"""
GATT service and characteristic values supplied by the transport layer.

Both types compare and hash by their normalised 128-bit UUID only, so a
device holds at most one entry per service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from bleak.uuids import normalize_uuid_str, uuidstr_to_str


def normalize_uuid(uuid: str) -> str:
    """Normalise a 16, 32 or 128-bit UUID string to lower-case 128-bit form."""
    return normalize_uuid_str(str(uuid))


@dataclass(frozen=True)
class BLECharacteristic:
    uuid: str
    common_name: str = field(default='', compare=False)
    properties: tuple[str, ...] = field(default=(), compare=False)
    value: Optional[bytes] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'uuid', normalize_uuid(self.uuid))
        if not self.common_name:
            object.__setattr__(self, 'common_name', uuidstr_to_str(self.uuid))

    def __str__(self) -> str:
        if self.value is None:
            rendered = 'empty'
        else:
            try:
                rendered = self.value.decode('ascii')
            except UnicodeDecodeError:
                rendered = self.value.hex()
        return f"BLECharacteristic: {self.common_name} - {rendered}"


@dataclass(frozen=True)
class BLEService:
    uuid: str
    common_name: str = field(default='', compare=False)
    characteristics: tuple[BLECharacteristic, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'uuid', normalize_uuid(self.uuid))
        object.__setattr__(self, 'characteristics', tuple(self.characteristics))
        if not self.common_name:
            object.__setattr__(self, 'common_name', uuidstr_to_str(self.uuid))

    def characteristic(self, uuid: str) -> Optional[BLECharacteristic]:
        """Find a characteristic of this service by UUID."""
        wanted = normalize_uuid(uuid)
        for characteristic in self.characteristics:
            if characteristic.uuid == wanted:
                return characteristic
        return None

    @classmethod
    def from_bleak(cls, service, values: Optional[dict[str, bytes]] = None) -> BLEService:
        """
        Build a service from a bleak ``BleakGATTService``.

        Args:
            service: The bleak GATT service.
            values: Characteristic values read by the caller, keyed by UUID.
        """
        values = {normalize_uuid(uuid): bytes(value) for uuid, value in (values or {}).items()}
        characteristics = []
        for char in service.characteristics:
            uuid = normalize_uuid(char.uuid)
            characteristics.append(BLECharacteristic(
                uuid=uuid,
                common_name=char.description or '',
                properties=tuple(char.properties),
                value=values.get(uuid),
            ))
        return cls(
            uuid=service.uuid,
            common_name=service.description or '',
            characteristics=tuple(characteristics),
        )
