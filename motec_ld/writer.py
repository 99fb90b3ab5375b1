# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass
import logging
import struct

import numpy as np

from . import layout
from .addr import FileAddr, ZERO
from .datatype import Datatype, Sample
from .errors import (ChannelDataAlreadyWritten, ChannelDataMissing, NoChannelsWritten,
                     SampleCountMismatch, SampleOutOfRange)

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ChannelHandle:
    id: int
    addr: FileAddr
    datatype: Datatype
    data_count: int

    @property
    def data_size(self):
        return self.data_count * self.datatype.size()


def _encode_samples(samples, datatype, name=''):
    dtype = datatype.dtype(name)
    if not isinstance(samples, np.ndarray):
        samples = [s.value if isinstance(s, Sample) else s for s in samples]
    arr = np.asarray(samples)
    if dtype.kind != 'i' or arr.dtype == dtype:
        return arr.astype(dtype)
    with np.errstate(invalid='ignore'):
        data = arr.astype(dtype)
    # integer channels store exactly what was given, no wrapping or rounding
    bad = np.flatnonzero(data != arr)
    if len(bad):
        raise SampleOutOfRange(name, int(bad[0]), arr[bad[0]], datatype)
    return data


class LDWriter:
    """Writes an .ld file to a seekable binary stream.

    Addresses of later structures aren't known when earlier records are
    written, so every pointer starts out as a placeholder and is patched
    in place once its target has been written:

      write_header()             header with zero channel pointers
      write_event()              optional event/venue/vehicle records
      write_channel()            metadata record; patches the previous
                                 record's next pointer
      write_channel_data()       sample payload; patches the record's data
                                 pointer
      finish()                   patches the header's channel pointers
    """

    def __init__(self, sink, revision=layout.I2):
        self._sink = sink
        self.revision = revision
        self._channels = []
        self._names = []
        self._data_blocks = {}
        self.write_pos = ZERO

    def _write(self, addr, buf):
        self._sink.seek(addr)
        written = self._sink.write(buf)
        if written is not None and written != len(buf):
            raise OSError('Short write at 0x%X: wrote %d of %d bytes'
                          % (addr, written, len(buf)))

    def _patch_u32(self, addr, value):
        logger.debug('patch 0x%X <- 0x%X', addr, value)
        self._write(addr, struct.pack('<I', value))

    def _patch_link(self, addr, value):
        logger.debug('patch link 0x%X <- 0x%X', addr, value)
        self._write(addr, self.revision.pack_link(value))

    def write_header(self, hdr):
        values = dict(layout.header_defaults)
        values.update(hdr.unknown)
        values.update(marker=layout.LD_HEADER_MARKER,
                      # filled in by finish() and write_event()
                      channel_meta_ptr=0,
                      channel_data_ptr=0,
                      event_ptr=0,
                      device_serial=hdr.device_serial,
                      device_version=hdr.device_version,
                      num_channels=hdr.num_channels,
                      pro_logging=hdr.pro_logging)
        for k in layout.header.text_keys:
            values[k] = layout.header.encode_text(k, getattr(hdr, k))
        self._write(ZERO, layout.header.pack(values))
        self.write_pos = FileAddr(layout.header.size)

    def write_event(self, event, venue=None, vehicle=None):
        """Write the event record and, optionally, the venue and vehicle
        records chained off it.  Must follow write_header() and precede
        the first channel."""
        if self._channels:
            raise ValueError('write_event() must be called before any channel is written')
        if vehicle is not None and venue is None:
            raise ValueError('a vehicle record can only be reached through a venue')

        event_addr = self.write_pos
        self._write(event_addr,
                    layout.event.pack({k: layout.event.encode_text(k, getattr(event, k))
                                       for k in layout.event.text_keys})
                    + self.revision.pack_link(0))
        self._patch_u32(layout.EVENT_OFFSET, event_addr)
        self.write_pos = event_addr + layout.event.size + layout.LINK_SIZE

        if venue is not None:
            venue_addr = self.write_pos
            values = dict(layout.venue_defaults)
            values.update(venue.unknown)
            values['name'] = layout.venue.encode_text('name', venue.name)
            self._write(venue_addr, layout.venue.pack(values) + self.revision.pack_link(0))
            self._patch_link(event_addr + layout.VENUE_ADDR_OFFSET, venue_addr)
            self.write_pos = venue_addr + layout.venue.size + layout.LINK_SIZE

            if vehicle is not None:
                vehicle_addr = self.write_pos
                self._write(vehicle_addr, self._pack_vehicle(vehicle))
                self._patch_link(venue_addr + layout.VEHICLE_ADDR_OFFSET, vehicle_addr)
                self.write_pos = vehicle_addr + layout.vehicle.size

    def _pack_vehicle(self, vehicle):
        gears = (tuple(vehicle.gears) + (0,) * layout.NUM_GEARS)[:layout.NUM_GEARS]
        values = {'weight': vehicle.weight,
                  'diff_ratio': vehicle.diff_ratio,
                  'track': vehicle.track,
                  'wheelbase': vehicle.wheelbase}
        for g, ratio in enumerate(gears, 1):
            values['gear%d' % g] = ratio
        for k in layout.vehicle.text_keys:
            values[k] = layout.vehicle.encode_text(k, getattr(vehicle, k))
        return layout.vehicle.pack(values)

    def write_channel(self, channel, samples):
        """Append the metadata record for `channel`.  Only the number of
        samples is used here; the payload itself goes through
        write_channel_data() with the returned handle."""
        # fail before writing anything if we can't encode this datatype
        channel.datatype.dtype(channel.name)

        addr = self.write_pos
        values = dict(layout.channel_defaults)
        values.update(getattr(channel, 'unknown', {}))
        values.update(prev_addr=self._channels[-1].addr if self._channels else 0,
                      next_addr=0,
                      data_addr=0, # patched by write_channel_data()
                      data_count=len(samples),
                      type_code=channel.datatype.type_code(),
                      type_size=channel.datatype.size(),
                      sample_rate=channel.sample_rate,
                      offset=channel.offset,
                      mul=channel.mul,
                      scale=channel.scale,
                      dec_places=channel.dec_places)
        for k in layout.channel.text_keys:
            values[k] = layout.channel.encode_text(k, getattr(channel, k))
        self._write(addr, layout.channel.pack(values))

        # now that we know where this record lives, point the previous one at it
        if self._channels:
            self._patch_u32(self._channels[-1].addr + layout.NEXT_ADDR_OFFSET, addr)

        handle = ChannelHandle(len(self._channels), addr, channel.datatype, len(samples))
        self._channels.append(handle)
        self._names.append(channel.name)
        self.write_pos = addr + layout.channel.size
        return handle

    def write_channel_data(self, handle, samples):
        """Append the samples of a channel.  Samples may be Sample objects,
        plain numbers or a numpy array; they are cast to the channel's
        on-file datatype."""
        if handle.id in self._data_blocks:
            raise ChannelDataAlreadyWritten(self._names[handle.id])
        data = _encode_samples(samples, handle.datatype, self._names[handle.id])
        if len(data) != handle.data_count:
            raise SampleCountMismatch(handle.data_count, len(data))

        data_addr = self.write_pos
        self._write(data_addr, data.tobytes())
        self._patch_u32(handle.addr + layout.DATA_ADDR_OFFSET, data_addr)

        self._data_blocks[handle.id] = data_addr
        self.write_pos = data_addr + handle.data_size

    def finish(self):
        """Point the header at the first channel record and data block."""
        if not self._channels:
            raise NoChannelsWritten()
        missing = [name for handle, name in zip(self._channels, self._names)
                   if handle.id not in self._data_blocks]
        if missing:
            raise ChannelDataMissing(missing)

        self._patch_u32(layout.CHANNEL_DATA_OFFSET, min(self._data_blocks.values()))
        self._patch_u32(layout.CHANNEL_META_OFFSET, min(h.addr for h in self._channels))
        self._patch_u32(layout.NUM_CHANNELS_OFFSET, len(self._channels))
        self._sink.flush()
        logger.debug('wrote %d channels, %d bytes', len(self._channels), self.write_pos)
