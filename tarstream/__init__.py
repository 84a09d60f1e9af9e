"""tarstream - incremental decoding of ustar tar streams."""

__version__ = "0.1.0"

from .errors import (
    BadTrailer,
    IncompleteHeader,
    IncompletePayload,
    InvalidHeader,
    NoMoreHeaders,
    ShortTrailer,
    TarError,
    UnexpectedPayload,
)
from .ustar import (
    BLOCK_SIZE,
    Chunk,
    ChunkStream,
    EntryPayload,
    ErrorChunk,
    FileType,
    Header,
    HeaderChunk,
    OtherFileType,
    PayloadChunk,
    classify_link_indicator,
    header_file_path,
    header_file_type,
    iter_entries,
    parse_header,
    untar,
    with_entries,
    with_entry,
)

__all__ = [
    "BLOCK_SIZE",
    "BadTrailer",
    "Chunk",
    "ChunkStream",
    "EntryPayload",
    "ErrorChunk",
    "FileType",
    "Header",
    "HeaderChunk",
    "IncompleteHeader",
    "IncompletePayload",
    "InvalidHeader",
    "NoMoreHeaders",
    "OtherFileType",
    "PayloadChunk",
    "ShortTrailer",
    "TarError",
    "UnexpectedPayload",
    "classify_link_indicator",
    "header_file_path",
    "header_file_type",
    "iter_entries",
    "parse_header",
    "untar",
    "with_entries",
    "with_entry",
]
