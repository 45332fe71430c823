"""
OS and Wi-Fi fingerprinting from Nearby Info advertisements.

iOS, iPadOS, macOS and watchOS devices broadcast a Nearby Info TLV whose
data flags byte depends on the OS release and the Wi-Fi setting. A fixed
decision table maps that byte to an (OS label, Wi-Fi on) pair. Some bytes are
shared between two OS families; these are disambiguated with the device
model read over GATT, when one is known.

Inference is heuristic. It identifies behaviour, not a verified identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .decoders import NearbyDeviceFlags, decoder_for_type
from .device_model import DeviceModel, DeviceType
from .errors import DecodingError
from .models import Advertisement
from .tlv import ContinuityType

logger = logging.getLogger('bletools.fingerprint')

IOS10 = 'iOS 10'
IOS11 = 'iOS 11'
IOS12 = 'iOS 12'
IOS13 = 'iOS 13'
IPADOS13 = 'iPadOS 13'
MACOS = 'macOS'
WATCHOS = 'watchOS'


@dataclass(frozen=True)
class Fingerprint:
    """Inferred OS label and Wi-Fi state; ``wifi_on`` is None when not revealed."""
    os_version: str
    wifi_on: Optional[bool] = None


def _is_ipad(model: Optional[DeviceModel]) -> bool:
    return model is not None and model.device_type == DeviceType.IPAD


def _is_mac(model: Optional[DeviceModel]) -> bool:
    return model is not None and model.is_mac


def _fixed(os_version: str, wifi_on: Optional[bool] = None) -> Callable[[Optional[DeviceModel]], Fingerprint]:
    return lambda model: Fingerprint(os_version, wifi_on)


def _ipad_or_ios12(wifi_on: bool) -> Callable[[Optional[DeviceModel]], Fingerprint]:
    return lambda model: Fingerprint(IPADOS13 if _is_ipad(model) else IOS12, wifi_on)


def _mac_or_ios12(wifi_on: bool) -> Callable[[Optional[DeviceModel]], Fingerprint]:
    return lambda model: Fingerprint(MACOS if _is_mac(model) else IOS12, wifi_on)


# Every defined flag except UNKNOWN has exactly one rule
DECISION_TABLE: dict[NearbyDeviceFlags, Callable[[Optional[DeviceModel]], Fingerprint]] = {
    NearbyDeviceFlags.IOS10: _fixed(IOS10),
    NearbyDeviceFlags.IOS11: _fixed(IOS11),
    NearbyDeviceFlags.IOS12_OR_IPADOS13_WIFI_ON: _ipad_or_ios12(True),
    NearbyDeviceFlags.IOS12_WIFI_ON: _mac_or_ios12(True),
    NearbyDeviceFlags.IOS12_WIFI_OFF: _mac_or_ios12(False),
    NearbyDeviceFlags.IOS12_OR_MACOS_WIFI_ON: _mac_or_ios12(True),
    NearbyDeviceFlags.IOS13_WIFI_ON: _fixed(IOS13, True),
    NearbyDeviceFlags.IOS13_WIFI_OFF: _fixed(IOS13, False),
    NearbyDeviceFlags.IOS13_WIFI_ON_2: _fixed(IOS13, True),
    NearbyDeviceFlags.MACOS_WIFI_UNKNOWN: _fixed(MACOS),
    NearbyDeviceFlags.MACOS_WIFI_ON: _fixed(MACOS, True),
    NearbyDeviceFlags.WATCH_WIFI_UNKNOWN: _fixed(WATCHOS),
}


def classify_flags(
    flags: NearbyDeviceFlags,
    device_model: Optional[DeviceModel] = None,
) -> Optional[Fingerprint]:
    """
    Map a Nearby Info data flags value to a fingerprint.

    Returns:
        The fingerprint, or None for UNKNOWN (no inference).
    """
    rule = DECISION_TABLE.get(flags)
    if rule is None:
        return None
    return rule(device_model)


def infer_fingerprint(
    advertisement: Advertisement,
    device_model: Optional[DeviceModel] = None,
) -> Optional[Fingerprint]:
    """
    Infer the OS and Wi-Fi state of the sender of an advertisement.

    Args:
        advertisement: The received advertisement.
        device_model: Model already known for the device, used to separate
            iPad from iPhone and Mac from iPhone on shared flag values.

    Returns:
        A Fingerprint, or None when the advertisement carries no decodable
        Nearby Info record or its flags are not recognised.
    """
    if advertisement.tlv is None:
        return None

    nearby = advertisement.tlv.get_value(ContinuityType.NEARBY_INFO)
    if nearby is None:
        return None

    try:
        fields = decoder_for_type(ContinuityType.NEARBY_INFO).decode(nearby)
    except DecodingError as e:
        logger.debug(f"Skipping fingerprint, Nearby Info not decodable: {e}")
        return None

    wifi_state = fields.get('wifi_state')
    if not isinstance(wifi_state, NearbyDeviceFlags):
        return None
    return classify_flags(wifi_state, device_model)
