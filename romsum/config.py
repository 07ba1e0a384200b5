# romsum/config.py
# Frozen format constants and run defaults

from __future__ import annotations
import logging

# Streaming block size for every blocked read (bytes)
BLOCK_SIZE = 16384

# Super Nintendo copier header
SNES_COPIER_HEADER = 512
SNES_SIZE_UNIT = 1024

# Atari Lynx
LYNX_MAGIC = b"LYNX"
LYNX_HEADER = 64

# Atari 7800
A78_MAGIC = b"ATARI7800"
A78_HEADER = 128

# Nintendo 64 byte-order marker
N64_HEADER = 4
N64_MARKER = 0x80

# iNES / NES 2.0
NES_HEADER = 16
NES_TRAINER = 512
NES_PRG_BANK = 16 * 1024
NES_CHR_BANK = 8 * 1024

ALGORITHMS = ("sha1", "md5", "blake3")
DEFAULT_ALGO = "sha1"


def log_level(verbose: bool = False) -> int:
    # WARNING unless -v; nothing is read from the environment
    return logging.DEBUG if verbose else logging.WARNING
