"""tarstream CLI."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional

import click

from . import __version__
from .ustar import (
    ChunkStream,
    ErrorChunk,
    FileType,
    Header,
    HeaderChunk,
    PayloadChunk,
    untar,
    with_entries,
    with_entry,
)

LOG = logging.getLogger(__name__)

_TYPE_CHARS = {
    FileType.NORMAL: "-",
    FileType.HARD_LINK: "h",
    FileType.SYMBOLIC_LINK: "l",
    FileType.CHARACTER_SPECIAL: "c",
    FileType.BLOCK_SPECIAL: "b",
    FileType.DIRECTORY: "d",
    FileType.FIFO: "p",
}


def mode_string(header: Header) -> str:
    """ls-style permission string, e.g. 'drwxr-xr-x'."""
    perms = ""
    for shift in (6, 3, 0):
        bits = (header.file_mode >> shift) & 0o7
        perms += "r" if bits & 4 else "-"
        perms += "w" if bits & 2 else "-"
        perms += "x" if bits & 1 else "-"
    return _TYPE_CHARS.get(header.file_type, "?") + perms


def format_entry(header: Header) -> str:
    owner = header.owner_name.decode("utf-8", errors="replace") or str(header.owner_id)
    group = header.group_name.decode("utf-8", errors="replace") or str(header.group_id)
    if header.is_device:
        size = f"{header.device_major},{header.device_minor}"
    else:
        size = str(header.payload_size)
    try:
        mtime = datetime.fromtimestamp(header.mod_time, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        mtime = "----------------"
    return f"{mode_string(header)} {owner}/{group} {size:>10} {mtime} {header.file_path}"


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", count=True, help="Log progress (-vv for debug output)")
def main(verbose: int):
    """tarstream - Stream through ustar tar archives.

    Archives are read strictly front to back, so ARCHIVE may be "-" to
    read from standard input.
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command(name="list")
@click.argument("archive", type=click.File("rb"))
def list_entries(archive: BinaryIO):
    """List the entries of an archive."""
    count = 0

    def show(header: Header, payload) -> None:
        nonlocal count
        count += 1
        click.echo(format_entry(header))

    try:
        with_entries(untar(archive), show)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    LOG.info("Listed %d entries", count)


@main.command()
@click.argument("archive", type=click.File("rb"))
@click.argument("member")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the payload to a file instead of standard output",
)
def cat(archive: BinaryIO, member: str, output: Optional[Path]):
    """Write the payload of MEMBER to standard output.

    Stops reading the archive as soon as MEMBER has been written.
    """
    member = member.lstrip("/")

    def write_payload(header: Header, payload) -> bool:
        if header.file_path.lstrip("/") != member:
            return False
        if output is None:
            out = click.get_binary_stream("stdout")
            for data in payload:
                out.write(data)
            out.flush()
        else:
            with open(output, "wb") as f:
                for data in payload:
                    f.write(data)
        return True

    try:
        stream = ChunkStream(untar(archive))
        while stream.peek() is not None:
            if with_entry(stream, write_payload):
                return
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Error: {member} not found in archive", err=True)
    sys.exit(1)


@main.command()
@click.argument("archive", type=click.File("rb"))
def chunks(archive: BinaryIO):
    """Dump the raw decoder events of an archive.

    Useful for locating where a damaged archive goes wrong.
    """
    for chunk in untar(archive):
        if isinstance(chunk, HeaderChunk):
            header = chunk.header
            click.echo(
                f"header  {header.offset:>12} size={header.payload_size} "
                f"type={header.file_type.name} {header.file_path}"
            )
        elif isinstance(chunk, PayloadChunk):
            click.echo(f"payload {chunk.offset:>12} len={len(chunk.data)}")
        elif isinstance(chunk, ErrorChunk):
            click.echo(f"error   {chunk.error.offset:>12} {chunk.error}")
            sys.exit(1)


if __name__ == "__main__":
    main()
