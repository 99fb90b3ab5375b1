from __future__ import annotations

import io

import pytest

from motec_ld import Channel, Datatype, Header, I2, LDWriter


class RecordingStream(io.BytesIO):
    """BytesIO that remembers every (position, size) read from it."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.reads: list[tuple[int, int]] = []

    def read(self, size=-1):  # type: ignore[override]
        self.reads.append((self.tell(), size))
        return super().read(size)


@pytest.fixture
def header() -> Header:
    return Header(device_serial=12007,
                  device_type='ADL',
                  device_version=420,
                  num_channels=1,
                  date_string='23/11/2005',
                  time_string='09:53:00',
                  driver='',
                  vehicle_id='11A',
                  venue='Calder',
                  session='2',
                  short_comment='second warmup')


@pytest.fixture
def air_temp() -> Channel:
    return Channel(Datatype.I16, sample_rate=2, offset=0, mul=1, scale=1, dec_places=1,
                   name='Air Temp Inlet', short_name='Air Tem', unit='C')


@pytest.fixture
def engine_temp() -> Channel:
    return Channel(Datatype.I32, sample_rate=10, offset=1, mul=2, scale=2, dec_places=2,
                   name='Engine temp', short_name='EngTemp', unit='C')


@pytest.fixture
def build_ld():
    """Write a complete file into memory and return its bytes."""

    def build(header, channels, event=None, venue=None, vehicle=None, revision=I2) -> bytes:
        sink = io.BytesIO()
        writer = LDWriter(sink, revision)
        writer.write_header(header)
        if event is not None:
            writer.write_event(event, venue, vehicle)
        handles = [writer.write_channel(ch, samples) for ch, samples in channels]
        for handle, (_, samples) in zip(handles, channels):
            writer.write_channel_data(handle, samples)
        writer.finish()
        return sink.getvalue()

    return build
