# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import logging
import mmap

from . import base
from . import layout
from .datatype import Datatype
from .errors import InvalidSampleRate
from .reader import LDReader
from .writer import LDWriter

logger = logging.getLogger(__name__)

_undecodable = (Datatype.F16, Datatype.INVALID)

def _set_if(meta, name, val, formatter=None):
    if val:
        meta[name] = formatter % val if formatter else val

def _metadata(hdr, event, venue, vehicle):
    metadata = {}
    metadata['Device Serial'] = hdr.device_serial
    metadata['Device Type'] = hdr.device_type
    metadata['Device Version'] = '%.2f' % (hdr.device_version / 100)
    metadata['Log Date'] = hdr.date_string
    metadata['Log Time'] = hdr.time_string
    metadata['Driver'] = hdr.driver
    metadata['Vehicle'] = hdr.vehicle_id
    metadata['Venue'] = hdr.venue
    metadata['Session'] = hdr.session
    metadata['Short Comment'] = hdr.short_comment

    if event:
        metadata['Event Name'] = event.name
        metadata['Event Session'] = event.session
        metadata['Long Comment'] = event.comment
    if venue:
        metadata['Venue Name'] = venue.name
    if vehicle:
        metadata['Vehicle Id'] = vehicle.id
        metadata['Vehicle Desc'] = vehicle.desc
        _set_if(metadata, 'Engine Id', vehicle.engine_id)
        _set_if(metadata, 'Vehicle Weight', vehicle.weight)
        _set_if(metadata, 'Vehicle Type', vehicle.type)
        _set_if(metadata, 'Vehicle Comment', vehicle.comment)
        _set_if(metadata, 'Diff Ratio', vehicle.diff_ratio / 1000, '%.3f')
        for gear, ratio in enumerate(vehicle.gears, 1):
            _set_if(metadata, 'Gear %d' % gear, ratio / 1000, '%.3f')
        _set_if(metadata, 'Vehicle Track [mm]', vehicle.track)
        _set_if(metadata, 'Vehicle Wheelbase [mm]', vehicle.wheelbase)
    return metadata

def _decode(reader, fname, progress):
    hdr = reader.read_header()
    event = reader.read_event()
    venue = reader.read_venue()
    vehicle = reader.read_vehicle()

    metas = reader.read_channels()
    if len(metas) != hdr.num_channels:
        logger.warning('%s: header declares %d channels, found %d',
                       fname, hdr.num_channels, len(metas))

    channels = {}
    for i, meta in enumerate(metas):
        if meta.datatype in _undecodable:
            logger.warning('%s: skipping channel %r with %s samples',
                           fname, meta.name, meta.datatype.name)
            continue
        try:
            channels[meta.name] = reader.decode_channel(meta)
        except InvalidSampleRate as e:
            logger.warning('%s: skipping channel: %s', fname, e)
            continue
        if progress:
            progress(i + 1, len(metas))

    return base.LogFile(hdr, event, venue, vehicle, channels,
                        _metadata(hdr, event, venue, vehicle), str(fname))

def load(fname, progress=None, revision=layout.I2):
    with open(fname, 'rb') as f:
        with mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as m:
            return _decode(LDReader(m, revision), fname, progress)

def save(fname, header, channels, event=None, venue=None, vehicle=None,
         revision=layout.I2):
    """Write a complete file.  `channels` is a sequence of (Channel, samples)
    pairs; all metadata records are laid out first, then all payloads."""
    channels = list(channels)
    with open(fname, 'wb') as f:
        writer = LDWriter(f, revision)
        writer.write_header(header)
        if event is not None:
            writer.write_event(event, venue, vehicle)
        handles = [writer.write_channel(ch, samples) for ch, samples in channels]
        for handle, (_, samples) in zip(handles, channels):
            writer.write_channel_data(handle, samples)
        writer.finish()
