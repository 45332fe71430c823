"""Unit tests for the bleak transport adapter."""

import pytest
from datetime import datetime
from unittest.mock import MagicMock, patch

from bletools.registry import DeviceRegistry
from bletools.scanner import BleakAdvertisementScanner, advertisement_from_bleak

NOW = datetime(2024, 3, 1, 12, 0, 0)


def make_bleak_device(address='AA:BB:CC:DD:EE:FF', name=None, details=None):
    device = MagicMock()
    device.address = address
    device.name = name
    device.details = details
    return device


def make_adv_data(
    manufacturer_data=None,
    service_data=None,
    service_uuids=None,
    rssi=-61,
    local_name=None,
    tx_power=None,
    connectable=True,
):
    adv_data = MagicMock()
    adv_data.manufacturer_data = manufacturer_data or {}
    adv_data.service_data = service_data or {}
    adv_data.service_uuids = service_uuids or []
    adv_data.rssi = rssi
    adv_data.local_name = local_name
    adv_data.tx_power = tx_power
    adv_data.connectable = connectable
    return adv_data


@pytest.fixture
def registry():
    registry = DeviceRegistry(activity_timeout=5.0)
    yield registry
    registry.clear()


class TestAdvertisementFromBleak:
    """Tests for converting bleak detections."""

    def test_company_id_is_restored(self):
        adv_data = make_adv_data(manufacturer_data={0x004C: bytes.fromhex('1005011ca1b2c3')})
        adv = advertisement_from_bleak(make_bleak_device(), adv_data, NOW)

        assert adv.manufacturer_data == bytes.fromhex('4c001005011ca1b2c3')
        assert adv.tlv.tlv_types == [0x4C, 0x10]

    def test_fields(self):
        adv_data = make_adv_data(
            service_data={'0000fd6f-0000-1000-8000-00805f9b34fb': bytearray(b'\x01\x02')},
            service_uuids=['0000fd6f-0000-1000-8000-00805f9b34fb'],
            local_name='Tag',
            tx_power=-8,
            connectable=False,
        )
        adv = advertisement_from_bleak(make_bleak_device(name='Ignored'), adv_data, NOW)

        assert adv.manufacturer_data is None
        assert adv.service_data == {'0000fd6f-0000-1000-8000-00805f9b34fb': b'\x01\x02'}
        assert adv.service_uuids == ['0000fd6f-0000-1000-8000-00805f9b34fb']
        assert adv.rssi == [-61.0]
        assert adv.reception_dates == [NOW]
        assert adv.device_name == 'Tag'
        assert adv.tx_power == -8
        assert adv.connectable is False

    def test_device_name_fallback(self):
        adv = advertisement_from_bleak(make_bleak_device(name='Phone'), make_adv_data(), NOW)
        assert adv.device_name == 'Phone'

    def test_missing_rssi(self):
        adv = advertisement_from_bleak(make_bleak_device(), make_adv_data(rssi=None), NOW)
        assert adv.rssi == []

    def test_mac_address_with_bluez_type(self):
        device = make_bleak_device(details={'props': {'AddressType': 'random'}})
        adv = advertisement_from_bleak(device, make_adv_data(), NOW)

        assert adv.mac_address.address_string == 'AA:BB:CC:DD:EE:FF'
        assert adv.mac_address.address_type == 'random'

    def test_mac_address_type_from_address_bits(self):
        public = advertisement_from_bleak(make_bleak_device('11:22:33:44:55:66'), make_adv_data(), NOW)
        random_static = advertisement_from_bleak(make_bleak_device('D1:22:33:44:55:66'), make_adv_data(), NOW)

        assert public.mac_address.address_type == 'public'
        assert random_static.mac_address.address_type == 'random'

    def test_uuid_identifier_has_no_mac(self):
        device = make_bleak_device('6F1C7A4E-2F6A-4C25-9A4B-0E7E2B6C1D11')
        adv = advertisement_from_bleak(device, make_adv_data(), NOW)
        assert adv.mac_address is None


class TestBleakAdvertisementScanner:
    """Tests for the scanner wrapper."""

    def test_handle_detection_ingests(self, registry):
        scanner = BleakAdvertisementScanner(registry)
        device = make_bleak_device('6F1C7A4E-2F6A-4C25-9A4B-0E7E2B6C1D11', name='Phone')
        adv_data = make_adv_data(manufacturer_data={0x004C: bytes.fromhex('1005019' '0a1b2c3')})

        scanner.handle_detection(device, adv_data)
        scanner.handle_detection(device, adv_data)

        aggregate = registry.get_device('6F1C7A4E-2F6A-4C25-9A4B-0E7E2B6C1D11')
        assert aggregate is not None
        assert aggregate.peripheral is device
        assert len(aggregate.advertisements) == 1
        assert len(aggregate.advertisements[0].reception_dates) == 2
        assert aggregate.os_version == 'iOS 13'
        assert aggregate.wifi_on is False

    def test_handle_detection_drops_bad_data(self, registry):
        scanner = BleakAdvertisementScanner(registry)
        adv_data = make_adv_data(manufacturer_data={0x004C: 'not hex'})

        scanner.handle_detection(make_bleak_device(), adv_data)

        assert registry.device_count == 0

    def test_start_and_stop(self, registry):
        scanner = BleakAdvertisementScanner(registry)
        with patch.object(scanner, '_scan_loop') as scan_loop:
            assert scanner.start(duration=1.0) is True
            assert scanner.is_scanning is True
            scanner.stop()

        scan_loop.assert_called_once_with(1.0)
        assert scanner.is_scanning is False
        assert scanner.registry is registry

    def test_ignores_detections_after_stop(self, registry):
        scanner = BleakAdvertisementScanner(registry)
        scanner.stop()
        scanner.handle_detection(make_bleak_device(), make_adv_data())
        assert registry.device_count == 0
