"""Per-entry processing on top of the chunk stream."""

import logging
from typing import Callable, Iterable, Iterator, Optional, Tuple, TypeVar

from ..errors import NoMoreHeaders, UnexpectedPayload
from ..utils.binary import DEFAULT_READ_SIZE
from .chunks import Chunk, ErrorChunk, HeaderChunk, PayloadChunk
from .decoder import Source, untar
from .header import Header

LOG = logging.getLogger(__name__)

T = TypeVar("T")


class ChunkStream:
    """Chunk iterator with room to put one chunk back."""

    def __init__(self, chunks: Iterable[Chunk]):
        self._chunks = iter(chunks)
        self._pushed: Optional[Chunk] = None

    @classmethod
    def from_source(cls, source: Source, read_size: int = DEFAULT_READ_SIZE) -> "ChunkStream":
        return cls(untar(source, read_size))

    def next_chunk(self) -> Optional[Chunk]:
        if self._pushed is not None:
            chunk, self._pushed = self._pushed, None
            return chunk
        return next(self._chunks, None)

    def unread(self, chunk: Chunk) -> None:
        if self._pushed is not None:
            raise RuntimeError("ChunkStream already holds a pushed-back chunk")
        self._pushed = chunk

    def peek(self) -> Optional[Chunk]:
        chunk = self.next_chunk()
        if chunk is not None:
            self.unread(chunk)
        return chunk

    def __iter__(self) -> Iterator[Chunk]:
        return self

    def __next__(self) -> Chunk:
        chunk = self.next_chunk()
        if chunk is None:
            raise StopIteration
        return chunk


class EntryPayload:
    """Payload bytes of a single entry.

    Iterating yields payload fragments as they arrive from the stream;
    read() gives file-like access. Stops at the next header, which is left
    in the ChunkStream. An ErrorChunk met along the way is raised.
    """

    def __init__(self, stream: ChunkStream, header: Header):
        self.header = header
        self._stream = stream
        self._buffer = b""
        self._done = False
        self.bytes_read = 0

    def _next_fragment(self) -> Optional[bytes]:
        if self._buffer:
            data, self._buffer = self._buffer, b""
            return data
        if self._done:
            return None

        chunk = self._stream.next_chunk()
        if isinstance(chunk, PayloadChunk):
            return chunk.data

        self._done = True
        if isinstance(chunk, HeaderChunk):
            self._stream.unread(chunk)
        elif isinstance(chunk, ErrorChunk):
            raise chunk.error
        return None

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        data = self._next_fragment()
        if data is None:
            raise StopIteration
        self.bytes_read += len(data)
        return data

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, or everything left if size is negative."""
        parts = []
        needed = size
        while size < 0 or needed > 0:
            data = self._next_fragment()
            if data is None:
                break
            if size >= 0 and len(data) > needed:
                self._buffer = data[needed:]
                data = data[:needed]
            parts.append(data)
            needed -= len(data)
        data = b"".join(parts)
        self.bytes_read += len(data)
        return data

    def drain(self) -> int:
        """Discard whatever the handler left unread. Returns the byte count."""
        discarded = 0
        while True:
            data = self._next_fragment()
            if data is None:
                return discarded
            discarded += len(data)


def with_entry(stream: ChunkStream, handler: Callable[[Header, EntryPayload], T]) -> T:
    """Run handler on the next entry and return its result.

    The handler gets the header and an EntryPayload. Unread payload is
    drained afterwards, so the stream always ends up at the next entry.

    Raises NoMoreHeaders when the stream is finished, UnexpectedPayload if
    a payload chunk shows up with no header, and any TarError reported by
    the decoder.
    """
    chunk = stream.next_chunk()
    if chunk is None:
        raise NoMoreHeaders()

    if isinstance(chunk, PayloadChunk):
        stream.unread(chunk)
        raise UnexpectedPayload(chunk.offset)
    if isinstance(chunk, ErrorChunk):
        raise chunk.error

    payload = EntryPayload(stream, chunk.header)
    result = handler(chunk.header, payload)
    skipped = payload.drain()
    if skipped:
        LOG.debug("Skipped %d unread payload bytes of %s", skipped, chunk.header.file_path)
    return result


def with_entries(chunks: Iterable[Chunk], handler: Callable[[Header, EntryPayload], None]) -> None:
    """Run handler on every entry until the archive is exhausted.

    Any TarError aborts the iteration, including one raised by the handler.
    """
    stream = chunks if isinstance(chunks, ChunkStream) else ChunkStream(chunks)
    while stream.peek() is not None:
        with_entry(stream, handler)


def iter_entries(source: Source, read_size: int = DEFAULT_READ_SIZE) -> Iterator[Tuple[Header, bytes]]:
    """Yield (header, payload) for each entry, with the payload read in full."""
    stream = ChunkStream.from_source(source, read_size)
    while stream.peek() is not None:
        yield with_entry(stream, lambda header, payload: (header, payload.read()))
