"""
Registry of device aggregates.

Routes advertisements to the right BLEDevice and owns the eviction policy
for devices that have stopped advertising.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from .constants import ACTIVITY_TIMEOUT, DEVICE_STALE_TIMEOUT, MAX_RSSI_SAMPLES
from .device import BLEDevice
from .errors import NoMacAddressError
from .models import Advertisement

logger = logging.getLogger('bletools.registry')

IngestCallback = Callable[[BLEDevice, Advertisement], None]


class DeviceRegistry:
    """
    Maps device ids to BLEDevice aggregates.

    Devices reported by a transport are keyed by the transport identifier;
    devices from transport-less sources are keyed by MAC address.
    """

    def __init__(
        self,
        activity_timeout: float = ACTIVITY_TIMEOUT,
        max_rssi_history: Optional[int] = MAX_RSSI_SAMPLES,
    ):
        self._devices: dict[str, BLEDevice] = {}
        self._lock = threading.Lock()
        self._activity_timeout = activity_timeout
        self._max_rssi_history = max_rssi_history
        self._subscribers: list[IngestCallback] = []

    def ingest(
        self,
        advertisement: Advertisement,
        peripheral=None,
        time: Optional[datetime] = None,
    ) -> BLEDevice:
        """
        Record an advertisement on its device, creating the device on first sight.

        Args:
            advertisement: The received advertisement.
            peripheral: Transport handle that reported it, if any.
            time: Reception time for RSSI history.

        Returns:
            The device the advertisement was added to.

        Raises:
            NoMacAddressError: if there is no peripheral and the advertisement
                carries no address.
        """
        if peripheral is not None:
            device_id = str(peripheral.address)
        else:
            mac_address = advertisement.mac_address
            if mac_address is None:
                raise NoMacAddressError("Advertisement carries no link-layer address")
            device_id = mac_address.address_string

        with self._lock:
            device = self._devices.get(device_id)
            created = device is None
            if created:
                options = {
                    'activity_timeout': self._activity_timeout,
                    'max_rssi_history': self._max_rssi_history,
                }
                if peripheral is not None:
                    device = BLEDevice.from_peripheral(peripheral, advertisement, time, **options)
                else:
                    device = BLEDevice.from_advertisement(advertisement, time, **options)
                self._devices[device_id] = device
            subscribers = list(self._subscribers)

        if not created:
            device.add(advertisement, time)

        for callback in subscribers:
            try:
                callback(device, advertisement)
            except Exception as e:
                logger.warning(f"Registry subscriber failed for {device_id}: {e}")

        return device

    def subscribe(self, callback: IngestCallback) -> Callable[[], None]:
        """Receive ``(device, advertisement)`` for every ingested advertisement."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def get_device(self, device_id: str) -> Optional[BLEDevice]:
        """Get a device by ID."""
        with self._lock:
            return self._devices.get(device_id)

    def get_all_devices(
        self,
        sort_by: Optional[str] = None,
        min_rssi: Optional[float] = None,
    ) -> list[BLEDevice]:
        """
        Get all tracked devices.

        Args:
            sort_by: 'rssi' (strongest first), 'last_seen' (most recent
                first) or 'name'. Insertion order when None.
            min_rssi: Only include devices whose last RSSI is at least this.
        """
        with self._lock:
            devices = list(self._devices.values())

        if min_rssi is not None:
            devices = [d for d in devices if d.last_rssi >= min_rssi]

        if sort_by == 'rssi':
            devices.sort(key=lambda d: d.last_rssi, reverse=True)
        elif sort_by == 'last_seen':
            devices.sort(key=lambda d: d.last_update, reverse=True)
        elif sort_by == 'name':
            devices.sort(key=lambda d: (d.name is None, (d.name or '').lower()))
        elif sort_by is not None:
            raise ValueError(f"Unknown sort key: {sort_by}")

        return devices

    def get_active_devices(self, max_age_seconds: float = DEVICE_STALE_TIMEOUT) -> list[BLEDevice]:
        """Get devices updated within the specified time window."""
        cutoff = datetime.now() - timedelta(seconds=max_age_seconds)
        with self._lock:
            return [d for d in self._devices.values() if d.last_update >= cutoff]

    def prune_stale_devices(self, max_age_seconds: float = DEVICE_STALE_TIMEOUT) -> int:
        """
        Remove devices not updated within the specified time window.

        Returns:
            Number of devices removed.
        """
        cutoff = datetime.now() - timedelta(seconds=max_age_seconds)
        with self._lock:
            stale_ids = [
                device_id for device_id, device in self._devices.items()
                if device.last_update < cutoff
            ]
            stale = [self._devices.pop(device_id) for device_id in stale_ids]

        for device in stale:
            device.close()
        if stale:
            logger.info(f"Pruned {len(stale)} stale devices")
        return len(stale)

    def clear(self) -> None:
        """Clear all tracked devices."""
        with self._lock:
            devices = list(self._devices.values())
            self._devices.clear()
        for device in devices:
            device.close()

    @property
    def device_count(self) -> int:
        """Number of tracked devices."""
        with self._lock:
            return len(self._devices)
