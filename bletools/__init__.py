"""
BLE advertisement aggregation and device fingerprinting.

Provides per-device advertisement aggregation with deduplication, liveness
tracking, OS/Wi-Fi fingerprinting from continuity advertisements, and a
delimited-text export of advertisement histories.
"""

from .constants import (
    ACTIVITY_TIMEOUT,
    DEFAULT_RSSI,
    DEVICE_STALE_TIMEOUT,
    APPLE_COMPANY_ID,
    OWN_ECOSYSTEM_COMPANY_ID,
)
from .decoders import NearbyDeviceFlags, decode, decoder_for_type
from .device import BLEDevice, DeviceSnapshot
from .device_model import DeviceModel, DeviceType
from .errors import (
    BLEToolsError,
    DecodingError,
    NoMacAddressError,
    TLVParseError,
    UnknownTypeError,
)
from .export import advertisements_to_csv, read_advertisement_csv
from .fingerprint import Fingerprint, classify_flags, infer_fingerprint
from .models import Advertisement, MACAddress, Manufacturer
from .registry import DeviceRegistry
from .scanner import BleakAdvertisementScanner, advertisement_from_bleak
from .services import BLECharacteristic, BLEService
from .tlv import TLV, ContinuityType, TLVBox

__all__ = [
    # Device aggregate
    'BLEDevice',
    'DeviceSnapshot',
    'DeviceRegistry',

    # Models
    'Advertisement',
    'MACAddress',
    'Manufacturer',
    'DeviceModel',
    'DeviceType',
    'BLEService',
    'BLECharacteristic',

    # TLV payloads
    'TLV',
    'TLVBox',
    'ContinuityType',
    'NearbyDeviceFlags',
    'decode',
    'decoder_for_type',

    # Fingerprinting
    'Fingerprint',
    'classify_flags',
    'infer_fingerprint',

    # Export
    'advertisements_to_csv',
    'read_advertisement_csv',

    # Transport
    'BleakAdvertisementScanner',
    'advertisement_from_bleak',

    # Errors
    'BLEToolsError',
    'NoMacAddressError',
    'DecodingError',
    'UnknownTypeError',
    'TLVParseError',

    # Constants
    'ACTIVITY_TIMEOUT',
    'DEFAULT_RSSI',
    'DEVICE_STALE_TIMEOUT',
    'APPLE_COMPANY_ID',
    'OWN_ECOSYSTEM_COMPANY_ID',
]
