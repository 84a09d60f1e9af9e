"""Streaming block decoder.

Turns a tar byte stream into a flat sequence of chunks: a HeaderChunk per
entry followed by PayloadChunks covering exactly its payload. Padding and
the two-block trailer are consumed silently. Structural problems end the
sequence with a single ErrorChunk instead of raising.

Block layout of an entry:

    offset            header block (512 bytes)
    offset + 512      payload (payload_size bytes)
                      zero padding up to the next 512-byte boundary
"""

import logging
from typing import BinaryIO, Generator, Iterable, Iterator, Optional, Union

from ..errors import (
    BadTrailer,
    IncompleteHeader,
    IncompletePayload,
    InvalidHeader,
    ShortTrailer,
    TarError,
)
from ..utils.binary import DEFAULT_READ_SIZE, ByteSource
from .chunks import Chunk, ErrorChunk, HeaderChunk, PayloadChunk
from .header import BLOCK_SIZE, is_zero_block, parse_header, payload_padding

LOG = logging.getLogger(__name__)

Source = Union[ByteSource, bytes, Iterable[bytes], BinaryIO]


def _fail(error: TarError) -> ErrorChunk:
    LOG.warning("Malformed tar stream: %s", error)
    return ErrorChunk(error)


def untar(source: Source, read_size: int = DEFAULT_READ_SIZE) -> Iterator[Chunk]:
    """Decode a tar byte stream into chunks, lazily.

    source may be a ByteSource, a byte string, an iterable of byte
    strings, or a binary file object (read in read_size pieces). On an
    error, the bytes that could not be used are pushed back into the
    ByteSource.
    """
    if not isinstance(source, ByteSource):
        source = ByteSource(source, read_size)

    offset = 0
    while True:
        assert offset % BLOCK_SIZE == 0, f"unaligned offset {offset}"

        block = source.take(BLOCK_SIZE)
        if not block:
            LOG.debug("Tar stream exhausted at offset %d", offset)
            return

        if len(block) < BLOCK_SIZE:
            source.unread(block)
            yield _fail(IncompleteHeader(offset))
            return

        if is_zero_block(block):
            offset += BLOCK_SIZE
            block = source.take(BLOCK_SIZE)
            if len(block) < BLOCK_SIZE:
                source.unread(block)
                yield _fail(ShortTrailer(offset))
            elif is_zero_block(block):
                LOG.debug("End of archive at offset %d", offset + BLOCK_SIZE)
            else:
                source.unread(block)
                yield _fail(BadTrailer(offset))
            return

        try:
            header = parse_header(offset, block)
        except InvalidHeader as e:
            source.unread(block)
            yield _fail(e)
            return

        LOG.debug(
            "Header at offset %d: %s (%d bytes)",
            offset,
            header.file_path,
            header.payload_size,
        )
        yield HeaderChunk(header)

        next_offset = yield from _payloads(source, header.payload_offset, header.payload_size)
        if next_offset is None:
            return

        assert next_offset == header.next_offset, f"entry at {offset} ended at {next_offset}"
        offset = next_offset


def _payloads(
    source: ByteSource, offset: int, size: int
) -> Generator[Chunk, None, Optional[int]]:
    """Yield payload chunks for size bytes, then skip the block padding.

    Returns the offset of the next block, or None if the stream ran out.
    """
    while size > 0:
        data = source.read_chunk()
        if data is None:
            yield _fail(IncompletePayload(offset, size))
            return None

        if len(data) > size:
            source.unread(data[size:])
            data = data[:size]

        yield PayloadChunk(offset, data)
        offset += len(data)
        size -= len(data)

    padding = payload_padding(offset)
    skipped = source.skip(padding)
    if skipped < padding:
        yield _fail(IncompletePayload(offset + skipped, padding - skipped))
        return None

    return offset + padding
