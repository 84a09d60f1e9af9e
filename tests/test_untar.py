"""Tests for the streaming block decoder."""

import io
import tarfile

import pytest

from tarbuild import create_archive, create_entry, create_tar_header, split_every

from tarstream.errors import (
    BadTrailer,
    IncompleteHeader,
    IncompletePayload,
    InvalidHeader,
    ShortTrailer,
)
from tarstream.ustar import untar
from tarstream.ustar.chunks import ErrorChunk, HeaderChunk, PayloadChunk
from tarstream.ustar.header import BLOCK_SIZE, parse_header
from tarstream.utils.binary import ByteSource

ZERO_BLOCK = b"\x00" * BLOCK_SIZE


def payloads_by_entry(chunks):
    """Group decoded chunks into (header, payload bytes) pairs."""
    entries = []
    for chunk in chunks:
        if isinstance(chunk, HeaderChunk):
            entries.append([chunk.header, b""])
        elif isinstance(chunk, PayloadChunk):
            entries[-1][1] += chunk.data
    return [tuple(entry) for entry in entries]


def create_tarfile_archive(members):
    """Build a real USTAR archive with the standard library."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.USTAR_FORMAT) as tar:
        for name, data in members:
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mtime = 1700000000
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class TestUntar:
    """Tests for untar on well-formed archives."""

    def test_single_entry(self):
        archive = create_archive(create_entry(b"a.txt", b"hello"))
        chunks = list(untar([archive]))

        header = parse_header(0, archive[:BLOCK_SIZE])
        assert chunks == [HeaderChunk(header), PayloadChunk(512, b"hello")]
        assert header.file_path == "a.txt"

    def test_empty_stream(self):
        assert list(untar([])) == []

    def test_trailer_only(self):
        assert list(untar([ZERO_BLOCK * 2])) == []

    def test_stops_after_trailer(self):
        # Anything after the second zero block is not read
        archive = create_archive(create_entry(b"a", b"x")) + b"junk"
        chunks = list(untar([archive]))
        assert not any(isinstance(c, ErrorChunk) for c in chunks)

    def test_end_without_trailer(self):
        chunks = list(untar([create_entry(b"a.txt", b"hello")]))
        assert [type(c) for c in chunks] == [HeaderChunk, PayloadChunk]

    def test_zero_size_entries(self):
        archive = create_archive(
            create_entry(b"dir/", b"", typeflag=b"5"),
            create_entry(b"empty", b""),
            create_entry(b"b.txt", b"bee"),
        )
        entries = payloads_by_entry(untar([archive]))

        assert [(h.file_path, data) for h, data in entries] == [
            ("dir/", b""),
            ("empty", b""),
            ("b.txt", b"bee"),
        ]
        assert [h.offset for h, _ in entries] == [0, 512, 1024]

    def test_multiple_entries_offsets(self):
        archive = create_archive(
            create_entry(b"one", b"1" * 600),
            create_entry(b"two", b"2" * 512),
            create_entry(b"three", b"3"),
        )
        entries = payloads_by_entry(untar([archive]))

        assert [h.offset for h, _ in entries] == [0, 1536, 2560]
        assert [h.payload_offset for h, _ in entries] == [512, 2048, 3072]
        assert [len(data) for _, data in entries] == [600, 512, 1]

    @pytest.mark.parametrize("piece_size", [1, 7, 511, 512, 513, 4096])
    def test_arbitrary_piece_sizes(self, piece_size):
        archive = create_archive(
            create_entry(b"one", bytes(range(256)) * 3),
            create_entry(b"two", b""),
            create_entry(b"three", b"abc" * 200),
        )
        chunks = list(untar(split_every(archive, piece_size)))
        entries = payloads_by_entry(chunks)

        assert [data for _, data in entries] == [bytes(range(256)) * 3, b"", b"abc" * 200]

        # Payload offsets are contiguous within each entry
        expected = None
        for chunk in chunks:
            if isinstance(chunk, HeaderChunk):
                expected = chunk.header.payload_offset
            else:
                assert chunk.offset == expected
                expected += len(chunk.data)

    def test_payload_chunks_never_overrun(self):
        archive = create_archive(create_entry(b"a", b"x" * 10), create_entry(b"b", b"y" * 10))
        chunks = list(untar([archive]))
        payload = [c for c in chunks if isinstance(c, PayloadChunk)]
        assert payload == [PayloadChunk(512, b"x" * 10), PayloadChunk(1536, b"y" * 10)]

    def test_byte_string_source(self):
        archive = create_archive(create_entry(b"a.txt", b"hello"))
        chunks = list(untar(archive))

        header = parse_header(0, archive[:BLOCK_SIZE])
        assert chunks == [HeaderChunk(header), PayloadChunk(512, b"hello")]

    def test_file_object_source(self):
        archive = create_archive(create_entry(b"a.txt", b"hello"))
        chunks = list(untar(io.BytesIO(archive), read_size=100))
        assert payloads_by_entry(chunks)[0][1] == b"hello"

    def test_is_lazy(self):
        pulled = []

        def pieces():
            for piece in split_every(create_archive(create_entry(b"a", b"x" * 2000)), 512):
                pulled.append(piece)
                yield piece

        chunks = untar(pieces())
        assert isinstance(next(chunks), HeaderChunk)
        assert len(pulled) == 1


class TestUntarTarfile:
    """Cross-check against archives written by the tarfile module."""

    @pytest.mark.parametrize("size", [0, 1, 511, 512, 513, 1024, 70000])
    def test_payload_sizes(self, size):
        data = bytes(i % 251 for i in range(size))
        archive = create_tarfile_archive([("file.bin", data), ("after.txt", b"after")])

        entries = payloads_by_entry(untar(split_every(archive, 1000)))

        assert [(h.file_path, d) for h, d in entries] == [("file.bin", data), ("after.txt", b"after")]
        assert entries[0][0].payload_size == size
        assert entries[0][0].mod_time == 1700000000
        assert entries[1][0].offset % BLOCK_SIZE == 0

    def test_directory_and_symlink(self):
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w", format=tarfile.USTAR_FORMAT) as tar:
            info = tarfile.TarInfo("dir")
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
            info = tarfile.TarInfo("dir/link")
            info.type = tarfile.SYMTYPE
            info.linkname = "target"
            tar.addfile(info)

        headers = [c.header for c in untar([buf.getvalue()]) if isinstance(c, HeaderChunk)]

        assert [h.file_path for h in headers] == ["dir/", "dir/link"]
        assert headers[0].file_type.name == "DIRECTORY"
        assert headers[0].file_mode == 0o755
        assert headers[1].file_type.name == "SYMBOLIC_LINK"


class TestUntarErrors:
    """Tests for structural anomalies."""

    def test_incomplete_header(self):
        source = ByteSource([b"abc"])
        assert list(untar(source)) == [ErrorChunk(IncompleteHeader(0))]
        assert source.pending == b"abc"

    def test_incomplete_header_after_entry(self):
        stream = create_entry(b"a", b"hi") + b"\x01" * 100
        chunks = list(untar([stream]))
        assert chunks[-1] == ErrorChunk(IncompleteHeader(1024))

    def test_short_trailer(self):
        assert list(untar([ZERO_BLOCK])) == [ErrorChunk(ShortTrailer(512))]

    def test_short_trailer_partial_block(self):
        source = ByteSource([ZERO_BLOCK + b"\x00" * 10])
        assert list(untar(source)) == [ErrorChunk(ShortTrailer(512))]
        assert source.pending == b"\x00" * 10

    def test_short_trailer_after_entry(self):
        stream = create_entry(b"a.txt", b"hello") + ZERO_BLOCK
        chunks = list(untar([stream]))
        assert chunks[-1] == ErrorChunk(ShortTrailer(1536))

    def test_bad_trailer(self):
        block = create_tar_header(name=b"late.txt")
        source = ByteSource(split_every(ZERO_BLOCK + block + b"tail", 300))

        assert list(untar(source)) == [ErrorChunk(BadTrailer(512))]
        # The rejected block is handed back, followed by unread bytes
        assert source.take(BLOCK_SIZE + 4) == block + b"tail"

    def test_incomplete_payload(self):
        stream = create_tar_header(name=b"a.txt", size=10) + b"abcd"
        chunks = list(untar(split_every(stream, 514)))

        assert chunks[1:] == [
            PayloadChunk(512, b"ab"),
            PayloadChunk(514, b"cd"),
            ErrorChunk(IncompletePayload(516, 6)),
        ]

    def test_incomplete_payload_no_bytes(self):
        stream = create_tar_header(name=b"a.txt", size=5)
        chunks = list(untar([stream]))
        assert chunks[1:] == [ErrorChunk(IncompletePayload(512, 5))]

    def test_incomplete_padding(self):
        stream = create_tar_header(name=b"a.txt", size=5) + b"hello" + b"\x00" * 100
        chunks = list(untar([stream]))

        assert chunks[1:] == [
            PayloadChunk(512, b"hello"),
            ErrorChunk(IncompletePayload(617, 407)),
        ]

    def test_invalid_header(self, monkeypatch):
        from tarstream.ustar import decoder

        def reject(offset, block):
            raise InvalidHeader(offset)

        monkeypatch.setattr(decoder, "parse_header", reject)
        block = create_tar_header()
        source = ByteSource([block])

        assert list(decoder.untar(source)) == [ErrorChunk(InvalidHeader(0))]
        assert source.pending == block

    def test_error_is_last_chunk(self):
        stream = create_entry(b"a", b"x") + ZERO_BLOCK + create_tar_header(name=b"b")
        chunks = list(untar([stream, create_archive(create_entry(b"c", b"y"))]))
        assert isinstance(chunks[-1], ErrorChunk)
        assert sum(isinstance(c, ErrorChunk) for c in chunks) == 1
