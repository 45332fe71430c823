"""
bleak-backed advertisement source.

Converts bleak detection callbacks into Advertisement records and feeds them
into a DeviceRegistry.
"""

from __future__ import annotations

import asyncio
import logging
import re
import threading
from datetime import datetime
from typing import Optional

from bleak import BleakScanner

from .constants import (
    ADDRESS_TYPE_PUBLIC,
    ADDRESS_TYPE_RANDOM,
    BLEAK_SCAN_TIMEOUT,
    SCANNER_STOP_TIMEOUT,
)
from .models import Advertisement
from .registry import DeviceRegistry

logger = logging.getLogger('bletools.scanner')

_MAC_PATTERN = re.compile(r'^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$')

_ADDRESS_TYPE_CODES = {
    ADDRESS_TYPE_PUBLIC: 0,
    ADDRESS_TYPE_RANDOM: 1,
}


def _to_bytes(data) -> bytes:
    if isinstance(data, str):
        return bytes.fromhex(data)
    return bytes(data)


def _address_type_code(device) -> Optional[int]:
    """Address type from BlueZ device details, when the backend exposes them."""
    details = getattr(device, 'details', None)
    if not isinstance(details, dict):
        return None
    props = details.get('props')
    if not isinstance(props, dict):
        return None
    return _ADDRESS_TYPE_CODES.get(str(props.get('AddressType', '')).lower())


def advertisement_from_bleak(device, adv_data, timestamp: Optional[datetime] = None) -> Advertisement:
    """
    Convert a bleak detection into an Advertisement.

    bleak strips the company id from manufacturer data; it is restored here
    in little-endian order so the payload matches what the radio received.
    On backends that identify peripherals by UUID (CoreBluetooth) no
    link-layer address is available.

    Args:
        device: bleak ``BLEDevice``.
        adv_data: bleak ``AdvertisementData``.
        timestamp: Reception time (defaults to now).
    """
    manufacturer_data = None
    if adv_data.manufacturer_data:
        company_id, data = next(iter(adv_data.manufacturer_data.items()))
        manufacturer_data = int(company_id).to_bytes(2, 'little') + _to_bytes(data)

    service_data = {}
    for uuid, data in (adv_data.service_data or {}).items():
        try:
            service_data[str(uuid)] = _to_bytes(data)
        except (TypeError, ValueError) as e:
            logger.debug(f"Could not convert service data for {uuid}: {e}")

    device_address = None
    device_address_type = None
    address = device.address or ''
    if _MAC_PATTERN.match(address):
        device_address = bytes.fromhex(address.replace(':', '').replace('-', ''))
        device_address_type = _address_type_code(device)
        if device_address_type is None:
            # Top two bits set marks a random static address
            device_address_type = 1 if (device_address[0] & 0xC0) == 0xC0 else 0

    return Advertisement(
        manufacturer_data=manufacturer_data,
        service_data=service_data,
        service_uuids=[str(uuid) for uuid in (adv_data.service_uuids or [])],
        rssi=[float(adv_data.rssi)] if adv_data.rssi is not None else [],
        reception_dates=[timestamp or datetime.now()],
        device_name=adv_data.local_name or device.name,
        device_address=device_address,
        device_address_type=device_address_type,
        connectable=bool(getattr(adv_data, 'connectable', True)),
        tx_power=adv_data.tx_power,
    )


class BleakAdvertisementScanner:
    """
    Cross-platform advertisement scanner using the bleak library.

    Scanning runs on a background thread with its own event loop; every
    detection is converted and ingested into the registry.
    """

    def __init__(self, registry: DeviceRegistry):
        self._registry = registry
        self._is_scanning = False
        self._scan_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def is_scanning(self) -> bool:
        return self._is_scanning

    def start(self, duration: float = BLEAK_SCAN_TIMEOUT) -> bool:
        """
        Start scanning in a background thread.

        Args:
            duration: Scan duration in seconds; 0 scans until stopped.

        Returns:
            True if scanning is running.
        """
        if self._is_scanning:
            return True

        self._stop_event.clear()
        self._scan_thread = threading.Thread(
            target=self._scan_loop,
            args=(duration,),
            daemon=True,
        )
        self._is_scanning = True
        self._scan_thread.start()
        logger.info(f"Bleak scanner started (duration={duration}s)")
        return True

    def stop(self) -> None:
        """Stop scanning."""
        self._stop_event.set()
        if self._scan_thread:
            self._scan_thread.join(timeout=SCANNER_STOP_TIMEOUT)
            self._scan_thread = None
        self._is_scanning = False
        logger.info("Bleak scanner stopped")

    def handle_detection(self, device, adv_data) -> None:
        """Convert one bleak detection and ingest it; errors are logged and dropped."""
        if self._stop_event.is_set():
            return
        try:
            advertisement = advertisement_from_bleak(device, adv_data)
            self._registry.ingest(advertisement, peripheral=device)
        except Exception as e:
            logger.debug(f"Error ingesting bleak detection from {getattr(device, 'address', '?')}: {e}")

    def _scan_loop(self, duration: float) -> None:
        try:
            asyncio.run(self._async_scan(duration))
        except Exception as e:
            logger.error(f"Bleak scan error: {e}")
        finally:
            self._is_scanning = False

    async def _async_scan(self, duration: float) -> None:
        scanner = BleakScanner(detection_callback=self.handle_detection)
        await scanner.start()
        try:
            loop = asyncio.get_running_loop()
            start_time = loop.time()
            while not self._stop_event.is_set():
                await asyncio.sleep(0.1)
                if duration > 0 and (loop.time() - start_time) >= duration:
                    break
        finally:
            await scanner.stop()
