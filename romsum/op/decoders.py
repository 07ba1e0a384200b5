# romsum/op/decoders.py
# Per-platform decoders: locate the payload and pick a block transform
#
# A decoder inspects at most a small header and returns a DigestPlan.
# It never hashes by itself; the engine executes the plan.

from __future__ import annotations
import logging
from dataclasses import dataclass

from romsum.config import (
    A78_HEADER,
    A78_MAGIC,
    BLOCK_SIZE,
    LYNX_HEADER,
    LYNX_MAGIC,
    N64_HEADER,
    N64_MARKER,
    NES_CHR_BANK,
    NES_HEADER,
    NES_PRG_BANK,
    NES_TRAINER,
    SNES_COPIER_HEADER,
    SNES_SIZE_UNIT,
)
from romsum.errors import MalformedHeader, ReadFailure
from romsum.op.digest import ByteRange, DigestPlan, read_block

logger = logging.getLogger("romsum.decoders")


def read_header(source, size: int, what: str, strict: bool = True) -> bytes:
    """
    Read the first size bytes of source.

    Args:
        source: RomSource
        size: header length in bytes
        what: format name for error messages
        strict: if False, a short header is returned as is

    Raises:
        MalformedHeader: strict and fewer than size bytes available
        ReadFailure: on I/O error
    """
    try:
        source.stream.seek(0)
        head = read_block(source.stream, size)
    except OSError as e:
        raise ReadFailure(f"{what} header read failed: {e}") from e
    if strict and len(head) < size:
        raise MalformedHeader(f"{what} header needs {size} bytes, got {len(head)}")
    return bytes(head)


def decode_raw(source) -> DigestPlan:
    """Whole file, no transform."""
    return DigestPlan(ByteRange(0))


def decode_snes(source) -> DigestPlan:
    """Skip a 512-byte copier header when the size says one is present."""
    start = 0
    if source.length % SNES_SIZE_UNIT == SNES_COPIER_HEADER:
        start = SNES_COPIER_HEADER
    logger.debug("snes: length=%d start=%d", source.length, start)
    return DigestPlan(ByteRange(start))


def decode_mgd(source) -> DigestPlan:
    """Mega Drive .mgd: the whole file is one interleaved block."""
    return DigestPlan(ByteRange(0), block_size=source.length, transform="interleave")


def decode_smd(source) -> DigestPlan:
    """Mega Drive .smd: every 16 KiB block is interleaved on its own."""
    return DigestPlan(ByteRange(0), block_size=BLOCK_SIZE, transform="interleave")


def decode_lynx(source) -> DigestPlan:
    # Exactly 4 bytes are compared; no terminator is assumed
    head = read_header(source, len(LYNX_MAGIC), "lynx")
    start = LYNX_HEADER if head == LYNX_MAGIC else 0
    logger.debug("lynx: magic=%r start=%d", head, start)
    return DigestPlan(ByteRange(start))


def n64_transform(head: bytes) -> str:
    """
    Pick the word swap from the first 4 bytes of an N64 image.

    0x80 in byte 0 selects swap_b, 0x80 in byte 3 selects swap_a,
    anything else is already in canonical order.
    """
    if head[0] == N64_MARKER:
        return "swap_b"
    if head[3] == N64_MARKER:
        return "swap_a"
    return "identity"


def decode_n64(source) -> DigestPlan:
    head = read_header(source, N64_HEADER, "n64")
    transform = n64_transform(head)
    logger.debug("n64: head=%s transform=%s", head.hex(), transform)
    return DigestPlan(ByteRange(0), block_size=BLOCK_SIZE, transform=transform)


@dataclass(frozen=True)
class NesHeader:
    """Bank counts and layout flags from an iNES / NES 2.0 header."""
    prg_banks: int
    chr_banks: int
    trainer: bool
    nes2: bool

    @property
    def payload_length(self) -> int:
        return NES_PRG_BANK * self.prg_banks + NES_CHR_BANK * self.chr_banks

    @property
    def start(self) -> int:
        return NES_HEADER + (NES_TRAINER if self.trainer else 0)


def parse_nes_header(header: bytes) -> NesHeader:
    """
    Parse the 16-byte NES header.

    Byte 4 is the PRG bank count and byte 5 the CHR bank count. When
    bits 3..2 of byte 7 read 0b10 (NES 2.0), byte 9 supplies the high
    bits: low nibble for CHR, high nibble for PRG. Bit 2 of byte 6 flags
    a 512-byte trainer before the payload.

    Raises:
        MalformedHeader: if header is shorter than 16 bytes
    """
    if len(header) < NES_HEADER:
        raise MalformedHeader(f"nes header needs {NES_HEADER} bytes, got {len(header)}")

    prg = header[4]
    chr_ = header[5]
    nes2 = header[7] & 0x0C == 0x08
    if nes2:
        prg += (header[9] & 0xF0) << 4
        chr_ += (header[9] & 0x0F) << 8
    trainer = header[6] & 0x04 == 0x04
    return NesHeader(prg_banks=prg, chr_banks=chr_, trainer=trainer, nes2=nes2)


def decode_nes(source) -> DigestPlan:
    """PRG + CHR banks read in one exact-length read after header/trainer."""
    nes = parse_nes_header(read_header(source, NES_HEADER, "nes"))
    logger.debug("nes: prg=%d chr=%d trainer=%s nes2=%s",
                 nes.prg_banks, nes.chr_banks, nes.trainer, nes.nes2)
    # Checked before the engine allocates a payload-sized buffer
    if nes.start + nes.payload_length > source.length:
        raise ReadFailure(
            f"nes: header declares {nes.payload_length} payload bytes at {nes.start}, "
            f"file has {source.length}"
        )
    return DigestPlan(ByteRange(nes.start, nes.payload_length), mode="exact")


def decode_a78(source) -> DigestPlan:
    """Skip the 128-byte Atari 7800 header when its signature is present."""
    head = read_header(source, A78_HEADER, "a78", strict=False)
    start = 0
    if len(head) == A78_HEADER and head[1:1 + len(A78_MAGIC)] == A78_MAGIC:
        start = A78_HEADER
    logger.debug("a78: start=%d", start)
    return DigestPlan(ByteRange(start))
