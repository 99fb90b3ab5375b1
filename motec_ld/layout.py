# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# .ld files are a handful of fixed-size records linked together by file
# pointers.  Each layout is a list of (key, struct format) pairs.  Keys
# starting with '_unknown' are regions we don't understand; they are
# kept as raw bytes so a decoded record can be written back unchanged.

from dataclasses import dataclass
import struct

import numpy as np

from .errors import NonUtf8Text

LD_HEADER_MARKER = 64

class Layout:
    def __init__(self, fields):
        self.keys = tuple(k for k, _ in fields)
        self.struct = struct.Struct('<' + ''.join(f for _, f in fields))
        self.size = self.struct.size
        self.text_keys = tuple(k for k, f in fields
                               if f.endswith('s') and not k.startswith('_unknown'))
        self.widths = {k: struct.calcsize('<' + f) for k, f in fields}
        self.offsets = {}
        pos = 0
        for k, f in fields:
            self.offsets[k] = pos
            pos += struct.calcsize('<' + f)

    def unpack(self, buf):
        return dict(zip(self.keys, self.struct.unpack(buf)))

    def pack(self, values):
        return self.struct.pack(*[values[k] for k in self.keys])

    def encode_text(self, key, s):
        # cut at a character boundary so the field always decodes again
        raw = s.encode('utf-8')[:self.widths[key]]
        return raw.decode('utf-8', 'ignore').encode('utf-8')

    def unknowns(self, values):
        return {k: v for k, v in values.items() if k.startswith('_unknown')}


header = Layout([
    # KEY                FORMAT     OFFSET
    ('marker',           'I'),      # 0
    ('_unknown0',        '4s'),     # 4
    ('channel_meta_ptr', 'I'),      # 8
    ('channel_data_ptr', 'I'),      # 12
    ('_unknown1',        '20s'),    # 16
    ('event_ptr',        'I'),      # 36
    ('_unknown2',        '24s'),    # 40   not 0 in some files
    ('_unknown3',        '6s'),     # 64
    ('device_serial',    'I'),      # 70
    ('device_type',      '8s'),     # 74
    ('device_version',   'H'),      # 82
    ('_unknown4',        '2s'),     # 84
    ('num_channels',     'I'),      # 86
    ('_unknown5',        '4s'),     # 90
    ('date_string',      '16s'),    # 94
    ('_unknown6',        '16s'),    # 110
    ('time_string',      '16s'),    # 126
    ('_unknown7',        '16s'),    # 142
    ('driver',           '64s'),    # 158
    ('vehicle_id',       '64s'),    # 222
    ('_unknown8',        '64s'),    # 286  engine id?
    ('venue',            '64s'),    # 350
    ('_unknown9',        '64s'),    # 414
    ('_unknown10',       '1024s'),  # 478  not a string, i2 rejects the file if it is
    ('pro_logging',      'I'),      # 1502
    ('_unknown11',       '2s'),     # 1506
    ('session',          '64s'),    # 1508
    ('short_comment',    '64s'),    # 1572
    ('_unknown12',       '126s'),   # 1636
])
assert header.size == 1762

# What the reference logger writes in the regions above.
header_defaults = {
    '_unknown0': bytes(4),
    '_unknown1': bytes(20),
    '_unknown2': bytes(24),
    '_unknown3': struct.pack('<HHH', 0x0000, 0x4240, 0x000F),
    '_unknown4': struct.pack('<H', 0x0080),
    '_unknown5': struct.pack('<I', 0x00010064),
    '_unknown6': bytes(16),
    '_unknown7': bytes(16),
    '_unknown8': bytes(64),
    '_unknown9': bytes(64),
    '_unknown10': bytes(1024),
    '_unknown11': bytes(2),
    '_unknown12': bytes(8) + bytes([99]) + bytes(117),
}

PRO_LOGGING_DEFAULT = 0xD20822

CHANNEL_META_OFFSET = header.offsets['channel_meta_ptr']
CHANNEL_DATA_OFFSET = header.offsets['channel_data_ptr']
EVENT_OFFSET = header.offsets['event_ptr']
NUM_CHANNELS_OFFSET = header.offsets['num_channels']

# The event, venue and vehicle records each end in a 4 byte link slot
# pointing at the next record (event -> venue -> vehicle).
LINK_SIZE = 4

event = Layout([
    ('name',             '64s'),    # 0
    ('session',          '64s'),    # 64
    ('comment',          '1024s'),  # 128
])
VENUE_ADDR_OFFSET = event.size      # 1152

venue = Layout([
    ('name',             '64s'),    # 0
    ('_unknown0',        '1034s'),  # 64
])
VEHICLE_ADDR_OFFSET = venue.size    # 1098

venue_defaults = {'_unknown0': bytes(1034)}

NUM_GEARS = 10

vehicle = Layout([
    ('id',               '64s'),    # 0
    ('desc',             '64s'),    # 64
    ('engine_id',        '64s'),    # 128
    ('weight',           'I'),      # 192  kg
    ('type',             '32s'),    # 196
    ('comment',          '32s'),    # 228
    ('diff_ratio',       'H'),      # 260  x1000
] + [('gear%d' % g,      'H') for g in range(1, NUM_GEARS + 1)] + [
    ('track',            'H'),      # 282  mm
    ('wheelbase',        'I'),      # 284  mm
])

channel = Layout([
    ('prev_addr',        'I'),      # 0
    ('next_addr',        'I'),      # 4
    ('data_addr',        'I'),      # 8
    ('data_count',       'I'),      # 12
    ('_unknown0',        '2s'),     # 16
    ('type_code',        'H'),      # 18
    ('type_size',        'H'),      # 20
    ('sample_rate',      'H'),      # 22
    ('offset',           'H'),      # 24
    ('mul',              'H'),      # 26
    ('scale',            'H'),      # 28
    ('dec_places',       'h'),      # 30
    ('name',             '32s'),    # 32
    ('short_name',       '8s'),     # 64
    ('unit',             '12s'),    # 72
    ('_unknown1',        '40s'),    # 84   40 bytes for ACC, 32 for ACTI?
])
assert channel.size == 124

channel_defaults = {
    '_unknown0': struct.pack('<H', 4),
    '_unknown1': bytes([201]) + bytes(39),
}

NEXT_ADDR_OFFSET = channel.offsets['next_addr']
DATA_ADDR_OFFSET = channel.offsets['data_addr']


@dataclass(frozen=True)
class Revision:
    """Everything that differs between the .ld variants seen in the wild."""
    name: str
    link_format: str      # struct format of the event/venue/vehicle links
    strip_spaces: bool    # trim trailing spaces from text fields
    offset_before_mul: bool

    def decode(self, raw, ch):
        """Convert raw sample value(s) into engineering units.

        Works on a scalar or a numpy array; the arithmetic is always done
        in float64 and in exactly this order."""
        value = np.asarray(raw, dtype=np.float64)
        value = value / ch.scale
        value = value * 10.0 ** -ch.dec_places
        if self.offset_before_mul:
            value = (value + ch.offset) * ch.mul
        else:
            value = value * ch.mul + ch.offset
        return float(value) if value.ndim == 0 else value

    def unpack_link(self, buf):
        return struct.unpack_from('<' + self.link_format, buf)[0]

    def pack_link(self, addr):
        return struct.pack('<' + self.link_format, addr).ljust(LINK_SIZE, b'\0')

    def decode_text(self, raw, field):
        idx = raw.find(b'\0')
        if idx >= 0:
            raw = raw[:idx]
        try:
            s = raw.decode('utf-8')
        except UnicodeDecodeError:
            raise NonUtf8Text(field, raw) from None
        return s.rstrip(' ') if self.strip_spaces else s


I2 = Revision('i2', 'H', strip_spaces=False, offset_before_mul=False)
EDL3 = Revision('edl3', 'I', strip_spaces=True, offset_before_mul=True)

revisions = {r.name: r for r in (I2, EDL3)}

def revision_by_name(name):
    try:
        return revisions[name.lower()]
    except KeyError:
        raise ValueError('Unknown .ld revision %r (known: %s)'
                         % (name, ', '.join(sorted(revisions)))) from None
