# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from .addr import FileAddr
from .base import Channel, ChannelData, ChannelMetadata, Event, Header, LogFile, Vehicle, Venue
from .datatype import Datatype, Sample
from .errors import (ChannelDataAlreadyWritten, ChannelDataMissing, CyclicChannelChain,
                     InvalidHeaderMarker, InvalidSampleRate, LDError, NoChannelsWritten,
                     NonUtf8Text, SampleCountMismatch, SampleOutOfRange, UnrecognizedDatatype,
                     UnsupportedDatatype)
from .layout import EDL3, I2, Revision, revision_by_name
from .motec import load, save
from .reader import AddressTable, LDReader
from .writer import ChannelHandle, LDWriter
