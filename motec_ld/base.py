# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass, field
import typing

import numpy as np

from . import layout
from .addr import FileAddr, ZERO
from .datatype import Datatype

# Records decoded from a file are frozen; the writer fills in addresses
# itself and never needs to mutate what the caller hands it.  The raw
# '_unknown' regions ride along in `unknown` so they can be written back
# verbatim, but don't take part in comparisons.

@dataclass(frozen=True)
class Header:
    device_serial: int = 0
    device_type: str = ''
    device_version: int = 0 # x100
    num_channels: int = 0
    date_string: str = ''
    time_string: str = ''
    driver: str = ''
    vehicle_id: str = ''
    venue: str = ''
    session: str = ''
    short_comment: str = ''
    pro_logging: int = layout.PRO_LOGGING_DEFAULT
    channel_meta_ptr: FileAddr = field(default=ZERO, compare=False)
    channel_data_ptr: FileAddr = field(default=ZERO, compare=False)
    event_ptr: FileAddr = field(default=ZERO, compare=False)
    unknown: typing.Dict[str, bytes] = field(default_factory=dict, repr=False, compare=False)

@dataclass(frozen=True)
class Event:
    name: str = ''
    session: str = ''
    comment: str = ''

@dataclass(frozen=True)
class Venue:
    name: str = ''
    unknown: typing.Dict[str, bytes] = field(default_factory=dict, repr=False, compare=False)

@dataclass(frozen=True)
class Vehicle:
    id: str = ''
    desc: str = ''
    engine_id: str = ''
    weight: int = 0 # kg
    type: str = ''
    comment: str = ''
    diff_ratio: int = 0 # x1000
    gears: typing.Tuple[int, ...] = (0,) * layout.NUM_GEARS # x1000
    track: int = 0 # mm
    wheelbase: int = 0 # mm

@dataclass(frozen=True)
class Channel:
    """A channel as supplied to the writer, without any file addresses."""
    datatype: Datatype
    sample_rate: int # Hz
    offset: int = 0
    mul: int = 1
    scale: int = 1
    dec_places: int = 0
    name: str = ''
    short_name: str = ''
    unit: str = ''

@dataclass(frozen=True)
class ChannelMetadata:
    """One node of the channel linked list as found in a file."""
    addr: FileAddr
    prev_addr: FileAddr
    next_addr: FileAddr
    data_addr: FileAddr
    data_count: int
    datatype: Datatype
    sample_rate: int
    offset: int
    mul: int
    scale: int
    dec_places: int
    name: str
    short_name: str
    unit: str
    unknown: typing.Dict[str, bytes] = field(default_factory=dict, repr=False, compare=False)

    def data_size(self):
        return self.data_count * self.datatype.size()

    def channel(self):
        return Channel(self.datatype, self.sample_rate, self.offset, self.mul, self.scale,
                       self.dec_places, self.name, self.short_name, self.unit)

@dataclass(eq=False)
class ChannelData:
    timecodes: np.ndarray # ms
    values: np.ndarray # engineering units, float64
    dec_pts: int
    name: str
    units: str

@dataclass(eq=False)
class LogFile:
    header: Header
    event: typing.Optional[Event]
    venue: typing.Optional[Venue]
    vehicle: typing.Optional[Vehicle]
    channels: typing.Dict[str, ChannelData]
    metadata: typing.Dict[str, str]
    file_name: str
