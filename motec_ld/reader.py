# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass
import logging
import struct
import typing

import numpy as np

from . import layout
from .addr import FileAddr
from .base import ChannelData, ChannelMetadata, Event, Header, Vehicle, Venue
from .datatype import Datatype, samples_from_array
from .errors import CyclicChannelChain, InvalidHeaderMarker, InvalidSampleRate

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class AddressTable:
    """Where the important structures of one file live."""
    channel_meta: FileAddr
    channel_data: FileAddr
    event: typing.Optional[FileAddr]
    venue: typing.Optional[FileAddr]
    vehicle: typing.Optional[FileAddr]


class LDReader:
    """Decodes an .ld file from a seekable binary stream.

    The stream (an open file, mmap or io.BytesIO) is owned by the reader
    for its whole lifetime; every method seeks before it reads so the
    stream position in between calls does not matter.
    """

    def __init__(self, source, revision=layout.I2):
        self._source = source
        self.revision = revision
        self._address_table = None

    def _read(self, addr, size):
        self._source.seek(addr)
        buf = self._source.read(size)
        if len(buf) != size:
            raise EOFError('Short read at 0x%X: wanted %d bytes, got %d'
                           % (addr, size, len(buf)))
        return buf

    def _read_u32(self, addr):
        return struct.unpack('<I', self._read(addr, 4))[0]

    def _read_link(self, addr):
        fmt = '<' + self.revision.link_format
        return FileAddr(self.revision.unpack_link(self._read(addr, struct.calcsize(fmt))))

    def _unpack(self, lay, buf):
        values = lay.unpack(buf)
        for k in lay.text_keys:
            values[k] = self.revision.decode_text(values[k], k)
        return values

    def address_table(self):
        """Resolve (once) the addresses of the optional structures."""
        if self._address_table is not None:
            return self._address_table

        channel_meta = FileAddr(self._read_u32(layout.CHANNEL_META_OFFSET))
        channel_data = FileAddr(self._read_u32(layout.CHANNEL_DATA_OFFSET))
        event = FileAddr(self._read_u32(layout.EVENT_OFFSET)).or_none()

        # Why is this some weird linked list of structs?
        venue = None
        if event is not None:
            venue = self._read_link(event + layout.VENUE_ADDR_OFFSET).or_none()
        vehicle = None
        if venue is not None:
            vehicle = self._read_link(venue + layout.VEHICLE_ADDR_OFFSET).or_none()

        tbl = AddressTable(channel_meta, channel_data, event, venue, vehicle)
        logger.debug('address table: %s', tbl)
        self._address_table = tbl
        return tbl

    def read_header(self):
        # Header is always at the start.  Check the marker before anything
        # else, a mismatch almost certainly means this isn't an .ld file.
        marker = self._read(0, 4)
        found, = struct.unpack('<I', marker)
        if found != layout.LD_HEADER_MARKER:
            raise InvalidHeaderMarker(found, layout.LD_HEADER_MARKER)

        v = self._unpack(layout.header, marker + self._read(4, layout.header.size - 4))
        return Header(device_serial=v['device_serial'],
                      device_type=v['device_type'],
                      device_version=v['device_version'],
                      num_channels=v['num_channels'],
                      date_string=v['date_string'],
                      time_string=v['time_string'],
                      driver=v['driver'],
                      vehicle_id=v['vehicle_id'],
                      venue=v['venue'],
                      session=v['session'],
                      short_comment=v['short_comment'],
                      pro_logging=v['pro_logging'],
                      channel_meta_ptr=FileAddr(v['channel_meta_ptr']),
                      channel_data_ptr=FileAddr(v['channel_data_ptr']),
                      event_ptr=FileAddr(v['event_ptr']),
                      unknown=layout.header.unknowns(v))

    def read_event(self):
        addr = self.address_table().event
        if addr is None:
            return None
        v = self._unpack(layout.event, self._read(addr, layout.event.size))
        return Event(v['name'], v['session'], v['comment'])

    def read_venue(self):
        addr = self.address_table().venue
        if addr is None:
            return None
        v = self._unpack(layout.venue, self._read(addr, layout.venue.size))
        return Venue(v['name'], unknown=layout.venue.unknowns(v))

    def read_vehicle(self):
        addr = self.address_table().vehicle
        if addr is None:
            return None
        v = self._unpack(layout.vehicle, self._read(addr, layout.vehicle.size))
        return Vehicle(id=v['id'],
                       desc=v['desc'],
                       engine_id=v['engine_id'],
                       weight=v['weight'],
                       type=v['type'],
                       comment=v['comment'],
                       diff_ratio=v['diff_ratio'],
                       gears=tuple(v['gear%d' % g] for g in range(1, layout.NUM_GEARS + 1)),
                       track=v['track'],
                       wheelbase=v['wheelbase'])

    def read_channels(self):
        """Walk the channel metadata linked list, in file order.

        The list ends at a zero next pointer.  Revisiting an address
        raises CyclicChannelChain rather than looping forever.
        """
        channels = []
        seen = set()
        addr = self.address_table().channel_meta
        while not addr.is_zero():
            if addr in seen:
                raise CyclicChannelChain(addr)
            seen.add(addr)
            ch = self.read_channel_metadata(addr)
            channels.append(ch)
            addr = ch.next_addr
        logger.debug('found %d channels', len(channels))
        return channels

    def read_channel_metadata(self, addr):
        v = self._unpack(layout.channel, self._read(addr, layout.channel.size))
        return ChannelMetadata(addr=FileAddr(addr),
                               prev_addr=FileAddr(v['prev_addr']),
                               next_addr=FileAddr(v['next_addr']),
                               data_addr=FileAddr(v['data_addr']),
                               data_count=v['data_count'],
                               datatype=Datatype.from_type_and_size(v['type_code'],
                                                                    v['type_size']),
                               sample_rate=v['sample_rate'],
                               offset=v['offset'],
                               mul=v['mul'],
                               scale=v['scale'],
                               dec_places=v['dec_places'],
                               name=v['name'],
                               short_name=v['short_name'],
                               unit=v['unit'],
                               unknown=layout.channel.unknowns(v))

    def channel_data(self, channel):
        """Raw samples of a channel as a numpy array, oldest first."""
        dtype = channel.datatype.dtype(channel.name)
        buf = self._read(channel.data_addr, channel.data_count * dtype.itemsize)
        return np.frombuffer(buf, dtype=dtype)

    def channel_samples(self, channel):
        return samples_from_array(self.channel_data(channel))

    def decode_channel(self, channel):
        data = self.channel_data(channel)
        if channel.sample_rate:
            timecodes = np.arange(0, channel.data_count) * (1000 / channel.sample_rate)
        elif not channel.data_count:
            timecodes = np.zeros(0)
        else:
            raise InvalidSampleRate(channel.name, channel.sample_rate)
        return ChannelData(timecodes,
                           self.revision.decode(data, channel),
                           dec_pts=max(channel.dec_places, 0),
                           name=channel.name,
                           units=channel.unit)
