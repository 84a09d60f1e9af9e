"""ustar stream decoding."""

from .chunks import Chunk, ErrorChunk, HeaderChunk, PayloadChunk
from .entries import ChunkStream, EntryPayload, iter_entries, with_entries, with_entry
from .header import (
    BLOCK_SIZE,
    FileType,
    Header,
    OtherFileType,
    classify_link_indicator,
    header_file_path,
    header_file_type,
    parse_header,
)
from .decoder import untar

__all__ = [
    "BLOCK_SIZE",
    "Chunk",
    "ChunkStream",
    "EntryPayload",
    "ErrorChunk",
    "FileType",
    "Header",
    "HeaderChunk",
    "OtherFileType",
    "PayloadChunk",
    "classify_link_indicator",
    "header_file_path",
    "header_file_type",
    "iter_entries",
    "parse_header",
    "untar",
    "with_entries",
    "with_entry",
]
