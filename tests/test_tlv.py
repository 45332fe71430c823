"""Unit tests for TLV parsing and continuity decoders."""

import pytest

from bletools.decoders import (
    NearbyDeviceFlags,
    decode,
    decoder_for_type,
)
from bletools.errors import DecodingError, TLVParseError, UnknownTypeError
from bletools.models import Advertisement, Manufacturer
from bletools.tlv import TLV, ContinuityType, TLVBox


class TestTLVBox:
    """Tests for TLV stream parsing."""

    def test_parse_apple_manufacturer_data(self):
        box = TLVBox.parse(bytes.fromhex('4c00' '1005' '011c' 'a1b2c3' '0c02' 'beef'))

        assert box.tlv_types == [0x4C, 0x10, 0x0C]
        assert box.tlvs[0] == TLV(0x4C, 0, b'')
        assert box.get_value(0x10) == bytes.fromhex('011ca1b2c3')
        assert box.get_value(0x0C) == b'\xbe\xef'
        assert len(box) == 3

    def test_get_value_returns_first_match(self):
        box = TLVBox.parse(bytes.fromhex('0701aa' '0701bb'))
        assert box.get_value(0x07) == b'\xaa'

    def test_get_value_missing(self):
        assert TLVBox.parse(bytes.fromhex('4c00')).get_value(0x10) is None

    def test_empty(self):
        box = TLVBox.parse(b'')
        assert box.tlvs == ()

    def test_truncated_value(self):
        with pytest.raises(TLVParseError):
            TLVBox.parse(bytes.fromhex('4c00' '1005' '0102'))

    def test_truncated_header(self):
        with pytest.raises(TLVParseError):
            TLVBox.parse(bytes.fromhex('4c00' '10'))

    def test_to_bytes(self):
        raw = bytes.fromhex('4c00' '1005' '011ca1b2c3')
        assert TLVBox.parse(raw).to_bytes() == raw

    def test_type_descriptions(self):
        assert ContinuityType.NEARBY_INFO.description == 'Nearby Info'
        assert ContinuityType.describe(0x0C) == 'Handoff'
        assert ContinuityType.describe(0x55) is None


class TestAdvertisementTLV:
    """Tests for TLV parsing attached to advertisements."""

    def test_apple_data_is_parsed(self):
        adv = Advertisement(manufacturer_data=bytes.fromhex('4c00' '1005' '011ca1b2c3'))
        assert adv.manufacturer == Manufacturer.APPLE
        assert adv.tlv.tlv_types == [0x4C, 0x10]

    def test_malformed_data_has_no_tlv(self):
        adv = Advertisement(manufacturer_data=bytes.fromhex('4c00' '10ff' '01'))
        assert adv.tlv is None
        assert adv.manufacturer == Manufacturer.APPLE

    def test_other_vendors_are_not_parsed(self):
        adv = Advertisement(manufacturer_data=bytes.fromhex('7500' '0201' '00'))
        assert adv.manufacturer == Manufacturer.SAMSUNG
        assert adv.tlv is None

    def test_payload_defaults_to_manufacturer_data(self):
        data = bytes.fromhex('4c00')
        assert Advertisement(manufacturer_data=data).payload == data
        assert Advertisement().payload == b''

    def test_reception_date_defaults_to_now(self):
        assert len(Advertisement().reception_dates) == 1


class TestDecoders:
    """Tests for per-type value decoders."""

    def test_nearby_info(self):
        fields = decode(0x10, bytes.fromhex('311c' 'a1b2c3'))
        assert fields == {
            'status_flags': 0x3,
            'action_code': 0x1,
            'wifi_state': NearbyDeviceFlags.IOS12_OR_IPADOS13_WIFI_ON,
            'auth_tag': bytes.fromhex('a1b2c3'),
        }

    def test_nearby_info_reserved_flags(self):
        fields = decode(0x10, bytes.fromhex('0142'))
        assert fields['wifi_state'] is NearbyDeviceFlags.UNKNOWN

    def test_nearby_action(self):
        fields = decode(0x0F, bytes.fromhex('9000' 'd5b37c' '0102'))
        assert fields['action_flags'] == 0x90
        assert fields['action_type'] == 0x00
        assert fields['auth_tag'] == bytes.fromhex('d5b37c')
        assert fields['action_parameters'] == b'\x01\x02'

    def test_handoff(self):
        fields = decode(0x0C, bytes.fromhex('00' '3412' '9a' 'deadbeef'))
        assert fields['sequence_number'] == 0x1234
        assert fields['auth_tag'] == b'\x9a'
        assert fields['encrypted_payload'] == bytes.fromhex('deadbeef')

    def test_airdrop_hashes_are_a_list(self):
        value = bytes(8) + bytes.fromhex('01' 'aaaa' 'bbbb' 'cccc' 'dddd' '00')
        fields = decode(0x05, value)
        assert fields['version'] == 1
        assert fields['contact_hashes'] == [b'\xaa\xaa', b'\xbb\xbb', b'\xcc\xcc', b'\xdd\xdd']

    def test_proximity_pairing(self):
        fields = decode(0x07, bytes.fromhex('01' '0e20' '2b' '98' '04' '05'))
        assert fields['device_model'] == 0x0E20
        assert fields['battery_levels'] == [9, 8, 4]
        assert fields['lid_open_count'] == 5

    def test_offline_finding(self):
        value = bytes.fromhex('10') + bytes(range(22)) + bytes.fromhex('02' '5c')
        fields = decode(0x12, value)
        assert fields['status'] == 0x10
        assert fields['public_key'] == bytes(range(22))
        assert fields['public_key_bits'] == 2
        assert fields['hint'] == 0x5C

    def test_too_short(self):
        with pytest.raises(DecodingError):
            decode(0x10, b'\x01')

    def test_unknown_type(self):
        with pytest.raises(UnknownTypeError) as excinfo:
            decoder_for_type(0x55)
        assert excinfo.value.tlv_type == 0x55

    def test_unknown_type_is_a_decoding_error(self):
        with pytest.raises(DecodingError):
            decode(0x4C, b'')
