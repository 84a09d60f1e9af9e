"""Exception hierarchy for tarstream.

Every structural anomaly carries the byte offset where it was detected.
The decoder reports these as values inside an ``ErrorChunk``; the entry
adapter raises them.
"""


class TarError(Exception):
    """Base class for tar stream errors."""

    def __eq__(self, other):
        return type(self) is type(other) and self.args == other.args

    def __hash__(self):
        return hash((type(self), self.args))


class NoMoreHeaders(TarError):
    """The chunk stream ended where another entry was expected."""

    def __init__(self):
        super().__init__()

    def __str__(self):
        return "no more headers"


class _OffsetError(TarError):
    message = "tar error"

    def __init__(self, offset: int):
        super().__init__(offset)
        self.offset = offset

    def __str__(self):
        return f"{self.message} at offset {self.offset}"


class UnexpectedPayload(_OffsetError):
    """A payload chunk arrived with no pending header."""

    message = "unexpected payload"


class IncompleteHeader(_OffsetError):
    """The stream ended partway through a header block."""

    message = "incomplete header"


class ShortTrailer(_OffsetError):
    """Only one of the two end-of-archive blocks was present."""

    message = "short trailer"


class BadTrailer(_OffsetError):
    """A non-zero block followed the first end-of-archive block."""

    message = "bad trailer"


class InvalidHeader(_OffsetError):
    """A header block could not be decoded."""

    message = "invalid header"


class IncompletePayload(TarError):
    """The stream ended before an entry's payload (or its padding) was complete."""

    def __init__(self, offset: int, remaining: int):
        super().__init__(offset, remaining)
        self.offset = offset
        self.remaining = remaining

    def __str__(self):
        return f"incomplete payload at offset {self.offset}, {self.remaining} bytes missing"
