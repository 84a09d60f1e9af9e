"""Events produced by the block decoder."""

from dataclasses import dataclass
from typing import Union

from ..errors import TarError
from .header import Header


@dataclass(frozen=True)
class HeaderChunk:
    """Start of a new entry."""

    header: Header


@dataclass(frozen=True)
class PayloadChunk:
    """A fragment of the current entry's payload, starting at offset."""

    offset: int
    data: bytes


@dataclass(frozen=True)
class ErrorChunk:
    """A structural anomaly. Always the last chunk of a decode."""

    error: TarError


Chunk = Union[HeaderChunk, PayloadChunk, ErrorChunk]
