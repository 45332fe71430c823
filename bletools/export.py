"""
Delimited-text export of advertisement histories.

Each advertisement becomes one ``;`` separated row with three columns:
manufacturer data as hex, the TLV records as hex, and a readable description
of every TLV. The export is written with the ``csv`` module, so a field that
contains the delimiter is quoted rather than left bare.
"""

from __future__ import annotations

import csv
import io
import logging
from enum import Enum
from typing import Iterable, Optional

from .constants import (
    CSV_DELIMITER,
    CSV_HEADER,
    NO_DATA,
    UNKNOWN_TYPE,
    UNKNOWN_TYPE_NAME,
    VENDOR_MARKER_LABEL,
)
from .decoders import FieldValue, decode
from .errors import DecodingError
from .hexutil import from_hex, grouped_hex, hexadecimal
from .models import Advertisement
from .tlv import TLV, ContinuityType, TLVBox

logger = logging.getLogger('bletools.export')

TLV_SEPARATOR = ', '
DESCRIPTION_SEPARATOR = ',\t'


def format_tlv(tlv: TLV) -> str:
    """Render a TLV as ``tt ll vvvvvvvv vvvv``."""
    return f'{tlv.type:02x} {tlv.length:02x} ' + grouped_hex(tlv.value)


def format_value(value: FieldValue) -> str:
    if isinstance(value, (bytes, bytearray)):
        return grouped_hex(bytes(value))
    if isinstance(value, list):
        return '[' + ', '.join(format_value(item) for item in value) + ']'
    if isinstance(value, Enum):
        return value.name
    return str(value)


def describe_tlv(tlv: TLV) -> str:
    """Readable description of one TLV; never raises for bad content."""
    if tlv.type == ContinuityType.VENDOR_MARKER:
        return VENDOR_MARKER_LABEL

    type_name = ContinuityType.describe(tlv.type) or UNKNOWN_TYPE_NAME
    try:
        fields = decode(tlv.type, tlv.value)
    except DecodingError as e:
        logger.debug(f"TLV 0x{tlv.type:02x} rendered without fields: {e}")
        field_text = UNKNOWN_TYPE
    else:
        field_text = ' '.join(f'{key}:\t{format_value(value)}\t' for key, value in fields.items())

    return f'{type_name}\t: {field_text}'


def advertisement_row(advertisement: Advertisement) -> list[str]:
    manufacturer_data = (
        hexadecimal(advertisement.manufacturer_data)
        if advertisement.manufacturer_data else NO_DATA
    )

    box = advertisement.tlv
    if box is None:
        return [manufacturer_data, NO_DATA, NO_DATA]

    tlvs = TLV_SEPARATOR.join(format_tlv(tlv) for tlv in box)
    description = DESCRIPTION_SEPARATOR.join(describe_tlv(tlv) for tlv in box)
    return [manufacturer_data, tlvs, description]


def advertisements_to_csv(advertisements: Iterable[Advertisement]) -> str:
    """
    Serialise advertisements to delimited text.

    Args:
        advertisements: Advertisements in the order they should appear.

    Returns:
        The header row followed by one row per advertisement.
    """
    output = io.StringIO()
    writer = csv.writer(output, delimiter=CSV_DELIMITER, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for advertisement in advertisements:
        writer.writerow(advertisement_row(advertisement))
    return output.getvalue()


def _parse_tlv_column(column: str) -> list[TLV]:
    if column == NO_DATA or not column:
        return []
    tlvs = []
    for rendered in column.split(TLV_SEPARATOR):
        raw = from_hex(rendered) or b''
        tlvs.extend(TLVBox.parse(raw).tlvs)
    return tlvs


def read_advertisement_csv(text: str) -> list[tuple[Optional[bytes], list[TLV]]]:
    """
    Parse an export produced by :func:`advertisements_to_csv`.

    Returns:
        One ``(manufacturer_data, tlvs)`` pair per row; manufacturer data is
        None where the export recorded no data.
    """
    reader = csv.reader(io.StringIO(text), delimiter=CSV_DELIMITER)
    rows = []
    for index, row in enumerate(reader):
        if index == 0 and tuple(row) == CSV_HEADER:
            continue
        if not row:
            continue
        manufacturer_data = None if row[0] == NO_DATA else from_hex(row[0])
        tlvs = _parse_tlv_column(row[1] if len(row) > 1 else NO_DATA)
        rows.append((manufacturer_data, tlvs))
    return rows
