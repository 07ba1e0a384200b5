# romsum/io/source.py
# ROM sources: plain files and ROMs stored inside .zip / .gz containers

from __future__ import annotations
import gzip
import io
import logging
import os
import zipfile
import zlib
from dataclasses import dataclass
from typing import BinaryIO

from romsum.errors import ReadFailure, UnknownFormat, UnopenableFile
from romsum.op.registry import is_registered

logger = logging.getLogger("romsum.source")

CONTAINERS = (".zip", ".gz")


@dataclass
class RomSource:
    """
    An open, seekable byte stream and its total length.

    ext is the extension that selects the decoder. For archive members it
    comes from the member name, not the archive path.
    """
    stream: BinaryIO
    length: int
    ext: str
    member: str | None = None

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> RomSource:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def extension(path: str) -> str:
    """Extension with its leading dot, case preserved ('' if none)."""
    return os.path.splitext(path)[1]


def from_bytes(data: bytes, ext: str, member: str | None = None) -> RomSource:
    """In-memory source; used for archive members and in tests."""
    return RomSource(stream=io.BytesIO(data), length=len(data), ext=ext, member=member)


def _open_file(path: str, ext: str) -> RomSource:
    try:
        f = open(path, "rb")
    except OSError as e:
        raise UnopenableFile(f"{path}: {e.strerror or e}") from e
    try:
        length = os.fstat(f.fileno()).st_size
    except OSError as e:
        f.close()
        raise UnopenableFile(f"{path}: {e.strerror or e}") from e
    return RomSource(stream=f, length=length, ext=ext)


def _open_zip(path: str, extra_exts: frozenset[str] = frozenset()) -> RomSource:
    try:
        zf = zipfile.ZipFile(path)
    except (OSError, zipfile.BadZipFile) as e:
        raise UnopenableFile(f"{path}: {e}") from e

    with zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            ext = extension(info.filename)
            if not is_registered(ext, extra_exts):
                continue
            # RuntimeError: encrypted member, no password given
            try:
                data = zf.read(info)
            except (OSError, EOFError, RuntimeError, zipfile.BadZipFile, zlib.error, NotImplementedError) as e:
                raise ReadFailure(f"{path}:{info.filename}: {e}") from e
            logger.debug("zip %s: using member %s", path, info.filename)
            return from_bytes(data, ext, member=info.filename)

    raise UnknownFormat(f"{path}: no known ROM inside zip")


def _open_gzip(path: str, extra_exts: frozenset[str] = frozenset()) -> RomSource:
    # game.nes.gz decodes as .nes
    inner = path[: -len(".gz")]
    ext = extension(inner)
    if not is_registered(ext, extra_exts):
        raise UnknownFormat(f"{path}: no known ROM extension under .gz")

    try:
        gz = gzip.open(path, "rb")
    except OSError as e:
        raise UnopenableFile(f"{path}: {e.strerror or e}") from e
    with gz:
        try:
            data = gz.read()
        except (OSError, EOFError, zlib.error) as e:
            raise ReadFailure(f"{path}: {e}") from e
    return from_bytes(data, ext, member=os.path.basename(inner))


def open_source(path: str, extra_exts: frozenset[str] = frozenset()) -> RomSource:
    """
    Open path as a RomSource.

    Plain files are streamed from disk. Containers are decompressed into
    memory: .zip yields its first member with a registered extension,
    .gz yields its payload under the extension left after stripping .gz.
    extra_exts count as registered when choosing a member.

    Raises:
        UnopenableFile: path missing or unreadable
        UnknownFormat: container without a usable ROM
        ReadFailure: container payload could not be decompressed
    """
    ext = extension(path)
    if ext == ".zip":
        return _open_zip(path, extra_exts)
    if ext == ".gz":
        return _open_gzip(path, extra_exts)
    return _open_file(path, ext)
