# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass
import enum

import numpy as np

from . import layout
from .errors import UnrecognizedDatatype, UnsupportedDatatype

class Datatype(enum.Enum):
    # Beacon channels behave as plain integers of the same width, the
    # logger just tags them differently.
    BEACON16 = 'beacon16'
    BEACON32 = 'beacon32'
    I16 = 'i16'
    I32 = 'i32'
    F16 = 'f16' # recognized, but we don't know how to decode it
    F32 = 'f32'
    INVALID = 'invalid' # zero-sample channels from some exporters

    def size(self):
        return _sizes[self]

    def type_code(self):
        try:
            return _type_codes[self]
        except KeyError:
            raise UnsupportedDatatype(self) from None

    def sample_kind(self, channel_name=''):
        """struct/array typecode used for one sample of this datatype."""
        try:
            return _sample_kinds[self]
        except KeyError:
            raise UnsupportedDatatype(self, channel_name) from None

    def dtype(self, channel_name=''):
        return np.dtype('<' + self.sample_kind(channel_name))

    @classmethod
    def from_type_and_size(cls, type_code, size):
        try:
            return _from_type_and_size[(type_code, size)]
        except KeyError:
            raise UnrecognizedDatatype(type_code, size) from None

_sizes = {
    Datatype.BEACON16: 2,
    Datatype.BEACON32: 4,
    Datatype.I16: 2,
    Datatype.I32: 4,
    Datatype.F16: 2,
    Datatype.F32: 4,
    Datatype.INVALID: 0,
}

_type_codes = {
    Datatype.BEACON16: 0,
    Datatype.BEACON32: 0,
    Datatype.I16: 3,
    Datatype.I32: 3,
    Datatype.F16: 7,
    Datatype.F32: 7,
}

_sample_kinds = {
    Datatype.BEACON16: 'h',
    Datatype.BEACON32: 'i',
    Datatype.I16: 'h',
    Datatype.I32: 'i',
    Datatype.F32: 'f',
}

_from_type_and_size = {
    (0, 2): Datatype.BEACON16,
    (0, 4): Datatype.BEACON32,
    (3, 2): Datatype.I16,
    (3, 4): Datatype.I32,
    # some loggers use 5 for ints
    (5, 2): Datatype.I16,
    (5, 4): Datatype.I32,
    (7, 2): Datatype.F16,
    (7, 4): Datatype.F32,
    # iRacing exports of Damper Pos FL/FR/RL, always 0 samples
    (17536, 5): Datatype.INVALID,
    (6566, 5): Datatype.INVALID,
    (29813, 5): Datatype.INVALID,
    # Damper Pos RR from the same exporter.  Beacon40?
    (0, 5): Datatype.INVALID,
    # Ride Height Center, 0 samples
    (15, 5): Datatype.INVALID,
}


@dataclass(frozen=True)
class Sample:
    kind: str # 'h': int16, 'i': int32, 'f': float32
    value: object

    @classmethod
    def i16(cls, value):
        return cls('h', int(value))

    @classmethod
    def i32(cls, value):
        return cls('i', int(value))

    @classmethod
    def f32(cls, value):
        # round through float32 so the value matches what lands on disk
        return cls('f', float(np.float32(value)))

    def decode_f64(self, channel, revision=layout.I2):
        return revision.decode(float(self.value), channel)


def samples_from_array(arr):
    kind = arr.dtype.char
    return [Sample(kind, v) for v in arr.tolist()]
