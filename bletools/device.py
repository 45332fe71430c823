"""
Per-device aggregation of BLE advertisements.

A BLEDevice accumulates every advertisement received from one physical
device. It deduplicates repeated content, tracks signal strength and
liveness, and keeps a heuristic OS/Wi-Fi fingerprint up to date.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from time import monotonic
from typing import Callable, Iterable, Optional

from .constants import (
    ACTIVITY_TIMEOUT,
    DEFAULT_RSSI,
    DEVICE_INFORMATION_SERVICE_UUID,
    MODEL_NUMBER_CHARACTERISTIC_UUID,
)
from .device_model import DeviceModel, DeviceType
from .errors import NoMacAddressError
from .export import advertisements_to_csv
from .fingerprint import infer_fingerprint
from .models import Advertisement, MACAddress, Manufacturer
from .services import BLEService

logger = logging.getLogger('bletools.device')

AdvertisementCallback = Callable[['BLEDevice', Advertisement], None]


@dataclass(frozen=True)
class DeviceSnapshot:
    """Consistent read-only view of a device for presentation layers."""
    id: str
    name: Optional[str]
    mac_address: Optional[str]
    manufacturer: Manufacturer
    device_model: Optional[DeviceModel]
    advertisement_count: int
    last_rssi: float
    last_update: datetime
    is_active: bool
    connectable: bool
    os_version: Optional[str]
    wifi_on: Optional[bool]
    service_uuids: tuple[str, ...]


class BLEDevice:
    """
    Aggregate of all advertisements received from one device.

    Create instances with :meth:`from_peripheral` when a transport reports
    the device, or :meth:`from_advertisement` for transport-less sources
    whose advertisements carry the link-layer address.

    All mutation goes through :meth:`add`, :meth:`update_service` and
    :meth:`add_services`. Mutations and the liveness timer are serialised on
    an internal lock, and the read properties return snapshots.
    """

    def __init__(
        self,
        advertisement: Advertisement,
        time: Optional[datetime] = None,
        peripheral=None,
        mac_address: Optional[MACAddress] = None,
        activity_timeout: float = ACTIVITY_TIMEOUT,
        max_rssi_history: Optional[int] = None,
    ):
        if (peripheral is None) == (mac_address is None):
            raise ValueError("Exactly one of peripheral or mac_address is required")

        self._lock = threading.RLock()
        self._activity_timeout = activity_timeout
        self._max_rssi_history = max_rssi_history

        self.peripheral = peripheral
        self.id: str = str(peripheral.address) if peripheral is not None else mac_address.address_string
        self._name: Optional[str] = None

        self._mac_address = mac_address
        self._advertisements: list[Advertisement] = []
        self._services: dict[str, BLEService] = {}
        self._device_model: Optional[DeviceModel] = None
        self._last_rssi = DEFAULT_RSSI
        self._rssi_history: list[tuple[datetime, float]] = []
        self._last_update = advertisement.last_reception
        self._os_version: Optional[str] = None
        self._wifi_on: Optional[bool] = None
        self._is_active = False

        self._activity_timer: Optional[threading.Timer] = None
        self._activity_generation = 0
        self._active_until = 0.0
        self._subscribers: list[AdvertisementCallback] = []

        self._manufacturer = Manufacturer.UNKNOWN
        self.manufacturer = advertisement.manufacturer

        self.add(advertisement, time)
        logger.info(f"New device {self.id} ({self._manufacturer.value})")

    @classmethod
    def from_peripheral(
        cls,
        peripheral,
        advertisement: Advertisement,
        time: Optional[datetime] = None,
        **kwargs,
    ) -> BLEDevice:
        """
        Create a device reported by a transport.

        Args:
            peripheral: Transport handle with ``address`` and ``name``
                attributes, e.g. a bleak ``BLEDevice``. It is referenced, not
                owned.
            advertisement: First advertisement received.
            time: Reception time for RSSI history; defaults to the
                advertisement's reception date.
        """
        return cls(advertisement, time, peripheral=peripheral, **kwargs)

    @classmethod
    def from_advertisement(
        cls,
        advertisement: Advertisement,
        time: Optional[datetime] = None,
        **kwargs,
    ) -> BLEDevice:
        """
        Create a device from an advertisement alone, identified by its MAC.

        Raises:
            NoMacAddressError: if the advertisement carries no address.
        """
        mac_address = advertisement.mac_address
        if mac_address is None:
            raise NoMacAddressError("Advertisement carries no link-layer address")
        return cls(advertisement, time, mac_address=mac_address, **kwargs)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add(self, advertisement: Advertisement, time: Optional[datetime] = None) -> Advertisement:
        """
        Add a received advertisement.

        Repeated content is merged into the first stored advertisement with
        the same manufacturer data, service data and service UUIDs; anything
        else is appended.

        Args:
            advertisement: The received advertisement.
            time: Time recorded in the RSSI history; defaults to the
                advertisement's latest reception date.

        Returns:
            The stored advertisement the reception was recorded on.
        """
        mac_address = advertisement.mac_address

        with self._lock:
            stored = self._find_duplicate(advertisement)
            if stored is not None:
                stored.update(advertisement)
            else:
                stored = advertisement
                self._advertisements.append(advertisement)

            self._last_update = stored.last_reception

            rssi = advertisement.last_rssi
            if rssi is not None:
                self._last_rssi = float(rssi)
                self._rssi_history.append((time or advertisement.last_reception, float(rssi)))
                if self._max_rssi_history and len(self._rssi_history) > self._max_rssi_history:
                    self._rssi_history = self._rssi_history[-self._max_rssi_history:]

            self._mark_active()

            if mac_address is not None:
                self._mac_address = mac_address

            self._update_fingerprint(advertisement)
            self._notify(stored)
            return stored

    def update_service(self, service: BLEService) -> None:
        """Insert or replace a GATT service, reading the model number if present."""
        with self._lock:
            self._apply_device_information(service)
            self._services[service.uuid] = service

    def add_services(self, services: Iterable[BLEService]) -> None:
        """Replace the set of known GATT services."""
        with self._lock:
            self._services = {}
            for service in services:
                self._apply_device_information(service)
                self._services[service.uuid] = service

    def close(self) -> None:
        """Cancel the pending liveness timer."""
        with self._lock:
            self._activity_generation += 1
            if self._activity_timer is not None:
                self._activity_timer.cancel()
                self._activity_timer = None

    def _find_duplicate(self, advertisement: Advertisement) -> Optional[Advertisement]:
        key = advertisement.content_key
        for stored in self._advertisements:
            if stored.content_key == key:
                return stored
        return None

    def _mark_active(self) -> None:
        self._is_active = True
        self._active_until = monotonic() + self._activity_timeout
        # A pending timer re-arms itself for the extended window when it fires
        if self._activity_timer is None:
            self._arm_timer(self._activity_timeout)

    def _arm_timer(self, interval: float) -> None:
        self._activity_generation += 1
        timer = threading.Timer(interval, self._deactivate, args=(self._activity_generation,))
        timer.daemon = True
        self._activity_timer = timer
        timer.start()

    def _deactivate(self, generation: int) -> None:
        with self._lock:
            # A timer replaced while already firing must not clear the new window
            if generation != self._activity_generation:
                return
            remaining = self._active_until - monotonic()
            if remaining > 0:
                self._arm_timer(remaining)
                return
            self._is_active = False
            self._activity_timer = None

    def _update_fingerprint(self, advertisement: Advertisement) -> None:
        fingerprint = infer_fingerprint(advertisement, self._device_model)
        if fingerprint is None:
            return
        # Both fields follow the latest inference, so codes that do not reveal
        # Wi-Fi (iOS 10, iOS 11, the watchOS and macOS unknowns) reset wifi_on
        self._os_version = fingerprint.os_version
        self._wifi_on = fingerprint.wifi_on

    def _apply_device_information(self, service: BLEService) -> None:
        if service.uuid != DEVICE_INFORMATION_SERVICE_UUID:
            return
        characteristic = service.characteristic(MODEL_NUMBER_CHARACTERISTIC_UUID)
        if characteristic is None or characteristic.value is None:
            return
        try:
            model_number = characteristic.value.decode('utf-8')
        except UnicodeDecodeError:
            logger.warning(f"Device {self.id} reported a non UTF-8 model number: {characteristic.value.hex()}")
            return
        self.device_model = DeviceModel.from_model_number(model_number)

    def _notify(self, advertisement: Advertisement) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self, advertisement)
            except Exception as e:
                logger.warning(f"Advertisement subscriber failed for {self.id}: {e}")

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def subscribe(self, callback: AdvertisementCallback) -> Callable[[], None]:
        """
        Receive every stored advertisement right after :meth:`add` records it.

        Callbacks run on the thread that called :meth:`add`, in order.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def name(self) -> Optional[str]:
        with self._lock:
            if self._name:
                return self._name
            peripheral_name = getattr(self.peripheral, 'name', None)
            if peripheral_name:
                return peripheral_name
            for advertisement in reversed(self._advertisements):
                if advertisement.device_name:
                    return advertisement.device_name
            return None

    @name.setter
    def name(self, value: Optional[str]) -> None:
        with self._lock:
            self._name = value

    @property
    def manufacturer(self) -> Manufacturer:
        return self._manufacturer

    @manufacturer.setter
    def manufacturer(self, value: Manufacturer) -> None:
        with self._lock:
            self._manufacturer = value
            self._apply_ecosystem_override()

    @property
    def device_model(self) -> Optional[DeviceModel]:
        return self._device_model

    @device_model.setter
    def device_model(self, value: Optional[DeviceModel]) -> None:
        with self._lock:
            self._device_model = value
            self._apply_ecosystem_override()

    def _apply_ecosystem_override(self) -> None:
        if self._manufacturer == Manufacturer.OWN_ECOSYSTEM and self._device_model is not None:
            self._device_model.device_type = DeviceType.OWN_ECOSYSTEM

    @property
    def advertisements(self) -> tuple[Advertisement, ...]:
        with self._lock:
            return tuple(self._advertisements)

    @property
    def services(self) -> dict[str, BLEService]:
        with self._lock:
            return dict(self._services)

    @property
    def mac_address(self) -> Optional[MACAddress]:
        return self._mac_address

    @property
    def last_rssi(self) -> float:
        return self._last_rssi

    @property
    def rssi_history(self) -> list[tuple[datetime, float]]:
        with self._lock:
            return list(self._rssi_history)

    @property
    def last_update(self) -> datetime:
        return self._last_update

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def os_version(self) -> Optional[str]:
        return self._os_version

    @property
    def wifi_on(self) -> Optional[bool]:
        return self._wifi_on

    @property
    def connectable(self) -> bool:
        with self._lock:
            return any(advertisement.connectable for advertisement in self._advertisements)

    @property
    def advertisement_csv(self) -> str:
        return self.to_delimited_text()

    def to_delimited_text(self) -> str:
        """Export the full advertisement history as ``;`` delimited text."""
        return advertisements_to_csv(self.advertisements)

    def snapshot(self) -> DeviceSnapshot:
        with self._lock:
            return DeviceSnapshot(
                id=self.id,
                name=self.name,
                mac_address=self._mac_address.address_string if self._mac_address else None,
                manufacturer=self._manufacturer,
                device_model=replace(self._device_model) if self._device_model else None,
                advertisement_count=len(self._advertisements),
                last_rssi=self._last_rssi,
                last_update=self._last_update,
                is_active=self._is_active,
                connectable=self.connectable,
                os_version=self._os_version,
                wifi_on=self._wifi_on,
                service_uuids=tuple(self._services),
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        with self._lock:
            snapshot = self.snapshot()
            advertisements = [advertisement.to_dict() for advertisement in self._advertisements]
        return {
            'id': snapshot.id,
            'name': snapshot.name,
            'mac_address': snapshot.mac_address,
            'manufacturer': snapshot.manufacturer.value,
            'manufacturer_name': snapshot.manufacturer.display_name,
            'device_model': snapshot.device_model.to_dict() if snapshot.device_model else None,
            'advertisement_count': snapshot.advertisement_count,
            'last_rssi': snapshot.last_rssi,
            'last_update': snapshot.last_update.isoformat(),
            'is_active': snapshot.is_active,
            'connectable': snapshot.connectable,
            'os_version': snapshot.os_version,
            'wifi_on': snapshot.wifi_on,
            'services': list(snapshot.service_uuids),
            'advertisements': advertisements,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, BLEDevice):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<BLEDevice {self.id} name={self.name!r} advertisements={len(self._advertisements)}>"
