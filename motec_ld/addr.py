# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

class FileAddr(int):
    """Absolute byte offset into an .ld file.  Zero means "not present"."""

    __slots__ = ()

    def __new__(cls, value=0):
        value = int(value)
        if value < 0:
            raise ValueError('file address cannot be negative: %d' % value)
        return super().__new__(cls, value)

    def __add__(self, other):
        return FileAddr(int(self) + int(other))

    __radd__ = __add__

    def __repr__(self):
        return 'FileAddr(0x%X)' % int(self)

    def is_zero(self):
        return int(self) == 0

    def or_none(self):
        # the optional-pointer view of this address
        return None if self.is_zero() else self

ZERO = FileAddr(0)
