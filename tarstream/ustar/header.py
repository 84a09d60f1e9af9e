"""ustar header block and file-type classification."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from ..errors import InvalidHeader
from ..utils.binary import BinaryReader

# Tar framing unit for headers, payload padding and the trailer
BLOCK_SIZE = 512


class FileType(IntEnum):
    """Entry kinds named by the ustar link indicator."""

    NORMAL = 0x30  # '0' (NUL is accepted as well)
    HARD_LINK = 0x31  # '1'
    SYMBOLIC_LINK = 0x32  # '2'
    CHARACTER_SPECIAL = 0x33  # '3'
    BLOCK_SPECIAL = 0x34  # '4'
    DIRECTORY = 0x35  # '5'
    FIFO = 0x36  # '6'


@dataclass(frozen=True)
class OtherFileType:
    """Any link indicator outside the ustar set (GNU, PAX, vendor types)."""

    indicator: int

    @property
    def name(self) -> str:
        return f"OTHER({self.indicator:#04x})"


def classify_link_indicator(indicator: int) -> Union[FileType, OtherFileType]:
    """Map a raw link indicator byte to its file type."""
    if indicator == 0:
        return FileType.NORMAL
    try:
        return FileType(indicator)
    except ValueError:
        return OtherFileType(indicator)


@dataclass(frozen=True)
class Header:
    """One decoded 512-byte ustar header.

    The checksum field is not checked; a block is taken as a header purely
    from its position in the stream.
    """

    offset: int  # Offset of the header block itself
    payload_offset: int  # offset + 512
    file_name_suffix: bytes  # 100 bytes at 0
    file_mode: int  # 8 bytes octal at 100
    owner_id: int  # 8 bytes octal at 108
    group_id: int  # 8 bytes octal at 116
    payload_size: int  # 12 bytes octal at 124
    mod_time: int  # 12 bytes octal at 136
    link_indicator: int  # 1 byte at 156
    owner_name: bytes  # 32 bytes at 265
    group_name: bytes  # 32 bytes at 297
    device_major: int  # 8 bytes octal at 329
    device_minor: int  # 8 bytes octal at 337
    file_name_prefix: bytes  # 155 bytes at 345

    @property
    def file_type(self) -> Union[FileType, OtherFileType]:
        return classify_link_indicator(self.link_indicator)

    @property
    def file_path_bytes(self) -> bytes:
        return self.file_name_prefix + self.file_name_suffix

    @property
    def file_path(self) -> str:
        # surrogateescape keeps non-UTF-8 names reversible with os.fsencode
        return self.file_path_bytes.decode("utf-8", errors="surrogateescape")

    @property
    def padded_size(self) -> int:
        """Payload size rounded up to the next block boundary."""
        return self.payload_size + payload_padding(self.payload_size)

    @property
    def next_offset(self) -> int:
        """Offset of the block following this entry's padded payload."""
        return self.payload_offset + self.padded_size

    @property
    def is_device(self) -> bool:
        return self.file_type in (FileType.CHARACTER_SPECIAL, FileType.BLOCK_SPECIAL)


def payload_padding(size: int) -> int:
    """Bytes needed after size bytes to reach the next block boundary."""
    return (BLOCK_SIZE - size % BLOCK_SIZE) % BLOCK_SIZE


def header_file_type(header: Header) -> Union[FileType, OtherFileType]:
    return header.file_type


def header_file_path(header: Header) -> str:
    return header.file_path


def is_zero_block(block: bytes) -> bool:
    return not block.strip(b"\x00")


def parse_header(offset: int, block: bytes) -> Header:
    """Decode one header block found at offset.

    Callers must pass exactly BLOCK_SIZE bytes. Raises InvalidHeader if
    the block cannot be read as a header.
    """
    assert len(block) == BLOCK_SIZE, f"header block must be {BLOCK_SIZE} bytes, got {len(block)}"

    reader = BinaryReader(block)
    try:
        file_name_suffix = reader.read_fixed_bytes(100)
        file_mode = reader.read_octal(8)
        owner_id = reader.read_octal(8)
        group_id = reader.read_octal(8)
        payload_size = reader.read_octal(12)
        mod_time = reader.read_octal(12)

        # Checksum is read past, never verified
        reader.skip(8)
        link_indicator = reader.read_u8()

        # Link name, magic and version are not part of the record
        reader.seek(265)
        owner_name = reader.read_fixed_bytes(32)
        group_name = reader.read_fixed_bytes(32)
        device_major = reader.read_octal(8)
        device_minor = reader.read_octal(8)
        file_name_prefix = reader.read_fixed_bytes(155)
    except EOFError as e:
        raise InvalidHeader(offset) from e

    return Header(
        offset=offset,
        payload_offset=offset + BLOCK_SIZE,
        file_name_suffix=file_name_suffix,
        file_mode=file_mode,
        owner_id=owner_id,
        group_id=group_id,
        payload_size=payload_size,
        mod_time=mod_time,
        link_indicator=link_indicator,
        owner_name=owner_name,
        group_name=group_name,
        device_major=device_major,
        device_minor=device_minor,
        file_name_prefix=file_name_prefix,
    )
