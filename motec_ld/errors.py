# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

class LDError(Exception):
    pass

class InvalidHeaderMarker(LDError):
    def __init__(self, found, expected):
        super().__init__('Invalid header marker found %d, expected %d' % (found, expected))
        self.found = found
        self.expected = expected

class UnrecognizedDatatype(LDError):
    def __init__(self, type_code, size):
        super().__init__('Unrecognized datatype (type: %d, size: %d)' % (type_code, size))
        self.type_code = type_code
        self.size = size

class UnsupportedDatatype(LDError):
    def __init__(self, datatype, channel_name=''):
        super().__init__('Cannot convert samples of datatype %s (channel %r)'
                         % (datatype.name, channel_name))
        self.datatype = datatype
        self.channel_name = channel_name

class NonUtf8Text(LDError, UnicodeError):
    def __init__(self, field, raw):
        super().__init__('Text field %r is not valid utf-8: %r' % (field, raw))
        self.field = field
        self.raw = raw

class CyclicChannelChain(LDError):
    def __init__(self, addr):
        super().__init__('Channel metadata chain revisits address 0x%X' % addr)
        self.addr = addr

class NoChannelsWritten(LDError):
    def __init__(self):
        super().__init__('finish() called before any channel was written')

class ChannelDataMissing(LDError):
    def __init__(self, names):
        super().__init__('Sample data never written for channels: %s' % ', '.join(names))
        self.names = list(names)

class SampleCountMismatch(LDError):
    def __init__(self, expected, found):
        super().__init__('Channel was declared with %d samples, got %d' % (expected, found))
        self.expected = expected
        self.found = found

class SampleOutOfRange(LDError):
    def __init__(self, channel_name, index, value, datatype):
        super().__init__('Sample %d (%r) of channel %r does not fit datatype %s'
                         % (index, value, channel_name, datatype.name))
        self.channel_name = channel_name
        self.index = index
        self.value = value
        self.datatype = datatype

class ChannelDataAlreadyWritten(LDError):
    def __init__(self, channel_name):
        super().__init__('Sample data for channel %r was already written' % channel_name)
        self.channel_name = channel_name

class InvalidSampleRate(LDError):
    def __init__(self, channel_name, sample_rate):
        super().__init__('Channel %r has an invalid sample rate of %d'
                         % (channel_name, sample_rate))
        self.channel_name = channel_name
        self.sample_rate = sample_rate
