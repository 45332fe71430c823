"""
BLE-specific constants for device aggregation and fingerprinting.
"""

from __future__ import annotations

# =============================================================================
# AGGREGATION SETTINGS
# =============================================================================

# Seconds a device stays active after its most recent advertisement
ACTIVITY_TIMEOUT = 1.0

# RSSI reported for a device that has never sent a signal-strength reading
DEFAULT_RSSI = -100.0

# Device expiration time (seconds since last update)
DEVICE_STALE_TIMEOUT = 300  # 5 minutes

# Default per-device RSSI history cap for devices created by a registry
MAX_RSSI_SAMPLES = 300

# =============================================================================
# SCANNER SETTINGS
# =============================================================================

# bleak scan timeout
BLEAK_SCAN_TIMEOUT = 10.0

# Thread join timeout when stopping a scanner
SCANNER_STOP_TIMEOUT = 2.0

# =============================================================================
# ADDRESS TYPE CLASSIFICATIONS
# =============================================================================

ADDRESS_TYPE_PUBLIC = 'public'
ADDRESS_TYPE_RANDOM = 'random'

# Link-layer address type discriminators as carried in advertisements
ADDRESS_TYPES = {
    0: ADDRESS_TYPE_PUBLIC,
    1: ADDRESS_TYPE_RANDOM,
}

# =============================================================================
# COMPANY IDS
# =============================================================================

APPLE_COMPANY_ID = 0x004C
MICROSOFT_COMPANY_ID = 0x0006
SAMSUNG_COMPANY_ID = 0x0075
GOOGLE_COMPANY_ID = 0x00E0

# SIG id reserved for internal test builds, used by devices running this toolkit
OWN_ECOSYSTEM_COMPANY_ID = 0xFFFF

MANUFACTURER_NAMES = {
    APPLE_COMPANY_ID: 'Apple, Inc.',
    MICROSOFT_COMPANY_ID: 'Microsoft',
    SAMSUNG_COMPANY_ID: 'Samsung Electronics',
    GOOGLE_COMPANY_ID: 'Google',
    OWN_ECOSYSTEM_COMPANY_ID: 'Internal test build',
}

# =============================================================================
# GATT
# =============================================================================

DEVICE_INFORMATION_SERVICE_UUID = '0000180a-0000-1000-8000-00805f9b34fb'
MODEL_NUMBER_CHARACTERISTIC_UUID = '00002a24-0000-1000-8000-00805f9b34fb'

# =============================================================================
# DELIMITED TEXT EXPORT
# =============================================================================

CSV_DELIMITER = ';'
CSV_HEADER = ('Manufacturer data', 'TLV', 'Description')
NO_DATA = 'no data'
UNKNOWN_TYPE = 'unknown type'
UNKNOWN_TYPE_NAME = 'Unknown type'
VENDOR_MARKER_LABEL = 'Apple BLE'

# Hex characters per group when rendering byte values
HEX_GROUP_SIZE = 8
