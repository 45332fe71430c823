"""
Device model classification from the GATT Model Number String.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger('bletools.device_model')


class DeviceType(str, Enum):
    IPHONE = 'iphone'
    IPAD = 'ipad'
    MAC = 'mac'
    APPLE_WATCH = 'apple_watch'
    AIRPODS = 'airpods'
    APPLE_TV = 'apple_tv'
    OWN_ECOSYSTEM = 'own_ecosystem'
    OTHER = 'other'


# Model identifier prefix -> device type, checked in order
_TYPE_PREFIXES = (
    ('iPhone', DeviceType.IPHONE),
    ('iPad', DeviceType.IPAD),
    ('iMac', DeviceType.MAC),
    ('Mac', DeviceType.MAC),
    ('Watch', DeviceType.APPLE_WATCH),
    ('AirPods', DeviceType.AIRPODS),
    ('AppleTV', DeviceType.APPLE_TV),
)

MODEL_NAMES = {
    'iPhone10,3': 'iPhone X',
    'iPhone11,2': 'iPhone XS',
    'iPhone11,8': 'iPhone XR',
    'iPhone12,1': 'iPhone 11',
    'iPhone12,3': 'iPhone 11 Pro',
    'iPhone12,8': 'iPhone SE (2nd generation)',
    'iPad7,5': 'iPad (6th generation)',
    'iPad8,1': 'iPad Pro (11-inch)',
    'iPad11,3': 'iPad Air (3rd generation)',
    'MacBookPro15,1': 'MacBook Pro (15-inch, 2018)',
    'MacBookPro16,1': 'MacBook Pro (16-inch, 2019)',
    'MacBookAir9,1': 'MacBook Air (Retina, 13-inch, 2020)',
    'iMac19,1': 'iMac (Retina 5K, 27-inch, 2019)',
    'Macmini8,1': 'Mac mini (2018)',
    'Watch5,1': 'Apple Watch Series 5',
    'AirPods2,1': 'AirPods (2nd generation)',
    'AppleTV11,1': 'Apple TV 4K (2nd generation)',
}


@dataclass
class DeviceModel:
    """
    A device model resolved from a model identifier such as ``iPad8,1``.

    ``device_type`` is mutable so a manufacturer override can be applied
    after classification.
    """
    model_number: str
    model_name: str
    device_type: DeviceType = DeviceType.OTHER

    @classmethod
    def from_model_number(cls, model_number: str) -> DeviceModel:
        model_number = model_number.strip().rstrip('\x00')
        device_type = DeviceType.OTHER
        for prefix, prefix_type in _TYPE_PREFIXES:
            if model_number.startswith(prefix):
                device_type = prefix_type
                break
        else:
            logger.debug(f"Unrecognised model number: {model_number!r}")

        return cls(
            model_number=model_number,
            model_name=MODEL_NAMES.get(model_number, model_number),
            device_type=device_type,
        )

    @property
    def is_mac(self) -> bool:
        return 'mac' in self.model_name.lower()

    def to_dict(self) -> dict:
        return {
            'model_number': self.model_number,
            'model_name': self.model_name,
            'device_type': self.device_type.value,
        }
