"""Binary reading utilities for tar blocks and forward-only byte streams."""

from io import BytesIO
from typing import BinaryIO, Iterable, Iterator, Optional, Union

# Default piece size when pulling from a file object
DEFAULT_READ_SIZE = 64 * 1024

# ASCII '0' and '7'
_OCTAL_ZERO = 0x30
_OCTAL_SEVEN = 0x37


def parse_octal(data: bytes) -> int:
    """Parse the leading run of ASCII octal digits in a numeric field.

    Anything after the first non-octal byte (space or NUL padding) is
    ignored. A field with no leading digits is 0.
    """
    value = 0
    for byte in data:
        if byte < _OCTAL_ZERO or byte > _OCTAL_SEVEN:
            break
        value = value * 8 + (byte - _OCTAL_ZERO)
    return value


def trim_nul(data: bytes) -> bytes:
    """Cut a fixed-width string field at its first NUL byte."""
    end = data.find(b"\x00")
    if end < 0:
        return data
    return data[:end]


class BinaryReader:
    """Helper for reading fixed-width fields out of a header block."""

    def __init__(self, data: bytes):
        self._stream = BytesIO(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._stream.seek(offset, whence)

    def read_bytes(self, size: int) -> bytes:
        data = self._stream.read(size)
        if len(data) < size:
            raise EOFError(f"Expected {size} bytes, got {len(data)}")
        return data

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_octal(self, length: int) -> int:
        """Read a space/NUL padded ASCII octal field."""
        return parse_octal(self.read_bytes(length))

    def read_fixed_bytes(self, length: int) -> bytes:
        """Read a fixed-length string field, cut at the first NUL."""
        return trim_nul(self.read_bytes(length))

    def skip(self, count: int) -> None:
        """Skip forward by count bytes."""
        self._stream.seek(count, 1)


def _iter_file(fileobj: BinaryIO, read_size: int) -> Iterator[bytes]:
    while True:
        data = fileobj.read(read_size)
        if not data:
            return
        yield data


class ByteSource:
    """Forward-only byte stream with a one-slot push-back buffer.

    Wraps a byte string, an iterable of byte strings, or a binary file
    object, and hands out whatever piece is available next. Bytes that
    were pulled but not needed go back with :meth:`unread` and are
    returned by the next pull.
    """

    def __init__(
        self,
        source: Union[bytes, Iterable[bytes], BinaryIO],
        read_size: int = DEFAULT_READ_SIZE,
    ):
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._pieces = iter([bytes(source)])
        elif hasattr(source, "read"):
            self._pieces = _iter_file(source, read_size)
        else:
            self._pieces = iter(source)
        self._pushed: Optional[bytes] = None
        self._exhausted = False

    def read_chunk(self) -> Optional[bytes]:
        """Return the next non-empty piece, or None once the source is exhausted."""
        if self._pushed is not None:
            data, self._pushed = self._pushed, None
            return data
        if self._exhausted:
            return None
        for data in self._pieces:
            if data:
                return bytes(data)
        self._exhausted = True
        return None

    def unread(self, data: bytes) -> None:
        """Push bytes back so the next pull returns them first.

        Bytes already waiting in the slot stay behind the new ones.
        """
        if not data:
            return
        if self._pushed is not None:
            data = bytes(data) + self._pushed
        self._pushed = bytes(data)

    def take(self, size: int) -> bytes:
        """Pull up to size bytes, combining pieces as needed.

        Returns fewer than size bytes only when the source runs dry.
        """
        parts = []
        needed = size
        while needed > 0:
            data = self.read_chunk()
            if data is None:
                break
            if len(data) > needed:
                self.unread(data[needed:])
                data = data[:needed]
            parts.append(data)
            needed -= len(data)
        return b"".join(parts)

    def skip(self, size: int) -> int:
        """Discard up to size bytes. Returns how many were actually discarded."""
        skipped = 0
        while skipped < size:
            data = self.read_chunk()
            if data is None:
                break
            needed = size - skipped
            if len(data) > needed:
                self.unread(data[needed:])
                data = data[:needed]
            skipped += len(data)
        return skipped

    @property
    def pending(self) -> Optional[bytes]:
        """Bytes currently held in the push-back slot."""
        return self._pushed
