from __future__ import annotations

import numpy as np
import pytest

from motec_ld import EDL3, FileAddr, I2, NonUtf8Text, revision_by_name
from motec_ld import layout
from motec_ld.base import Channel
from motec_ld.datatype import Datatype


def test_record_sizes_and_offsets() -> None:
    assert layout.header.size == 1762
    assert layout.CHANNEL_META_OFFSET == 8
    assert layout.CHANNEL_DATA_OFFSET == 12
    assert layout.EVENT_OFFSET == 36
    assert layout.NUM_CHANNELS_OFFSET == 86
    assert layout.header.offsets['session'] == 1508
    assert layout.header.offsets['short_comment'] == 1572
    assert layout.VENUE_ADDR_OFFSET == 1152
    assert layout.VEHICLE_ADDR_OFFSET == 1098
    assert layout.vehicle.offsets['weight'] == 192
    assert layout.vehicle.offsets['diff_ratio'] == 260
    assert layout.vehicle.offsets['wheelbase'] == 284
    assert layout.channel.size == 124
    assert layout.NEXT_ADDR_OFFSET == 4
    assert layout.DATA_ADDR_OFFSET == 8
    assert layout.channel.offsets['name'] == 32
    assert layout.channel.offsets['short_name'] == 64
    assert layout.channel.offsets['unit'] == 72


def test_text_keys_skip_unknown_regions() -> None:
    assert layout.channel.text_keys == ('name', 'short_name', 'unit')
    assert '_unknown10' not in layout.header.text_keys


def test_file_addr_arithmetic() -> None:
    a = FileAddr(0x6E2)
    b = a + layout.VENUE_ADDR_OFFSET
    assert isinstance(b, FileAddr)
    assert b == 0x6E2 + 1152
    assert FileAddr(0).is_zero()
    assert FileAddr(0).or_none() is None
    assert a.or_none() == a
    with pytest.raises(ValueError):
        FileAddr(-1)


def test_decode_text_truncates_at_first_null() -> None:
    raw = b'Calder\0junk\0\0'
    assert I2.decode_text(raw, 'venue') == 'Calder'
    assert EDL3.decode_text(raw, 'venue') == 'Calder'


def test_trailing_spaces_depend_on_revision() -> None:
    raw = b'ADL  \0\0\0'
    assert I2.decode_text(raw, 'device_type') == 'ADL  '
    assert EDL3.decode_text(raw, 'device_type') == 'ADL'


def test_decode_text_rejects_non_utf8() -> None:
    with pytest.raises(NonUtf8Text) as exc:
        I2.decode_text(b'\xff\xfeab\0\0', 'driver')
    assert exc.value.field == 'driver'
    assert exc.value.raw == b'\xff\xfeab'
    assert isinstance(exc.value, UnicodeError)


def test_links() -> None:
    assert I2.pack_link(0x1336) == b'\x36\x13\0\0'
    assert EDL3.pack_link(0x1336) == b'\x36\x13\0\0'
    # i2 only looks at the low two bytes
    assert I2.unpack_link(b'\x36\x13\xff\xff') == 0x1336
    assert EDL3.unpack_link(b'\x36\x13\xff\xff') == 0xFFFF1336


def test_array_decode_matches_scalar_decode() -> None:
    ch = Channel(Datatype.I16, 2, offset=3, mul=2, scale=4, dec_places=1)
    raw = np.array([199, -12, 0, 4540], dtype='<i2')
    for rev in (I2, EDL3):
        values = rev.decode(raw, ch)
        assert values.dtype == np.float64
        assert list(values) == [rev.decode(float(r), ch) for r in raw]


def test_revision_by_name() -> None:
    assert revision_by_name('i2') is I2
    assert revision_by_name('EDL3') is EDL3
    with pytest.raises(ValueError):
        revision_by_name('ld9')


def test_encode_text_cuts_at_character_boundary() -> None:
    assert layout.channel.widths['short_name'] == 8
    assert layout.channel.encode_text('short_name', 'Oil Temp Post') == b'Oil Temp'
    assert layout.channel.encode_text('short_name', 'Öltemp°C') == 'Öltemp'.encode('utf-8')
    assert layout.channel.encode_text('unit', '°C') == '°C'.encode('utf-8')
