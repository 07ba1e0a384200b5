# romsum/op/registry.py
# Extension -> decoder kind table and dispatch

from __future__ import annotations
import enum
from types import MappingProxyType
from typing import Callable

from romsum.errors import UnknownFormat
from romsum.op import decoders
from romsum.op.digest import DigestPlan, execute


class DecoderKind(enum.Enum):
    UNDEFINED = "undefined"
    RAW_BINARY = "raw_binary"
    SUPER_NINTENDO = "super_nintendo"
    MEGA_DRIVE_INTERLEAVED = "mega_drive_interleaved"
    MEGA_DRIVE_BLOCK_INTERLEAVED = "mega_drive_block_interleaved"
    ATARI_LYNX = "atari_lynx"
    NINTENDO_64 = "nintendo_64"
    NES = "nes"
    ATARI_7800 = "atari_7800"


def _build_registry() -> MappingProxyType:
    table = {}
    kinds = {
        DecoderKind.RAW_BINARY: (
            ".bin", ".32x", ".a26", ".gb", ".gbc", ".gba", ".gen", ".gg", ".md",
            ".pce", ".rom", ".sms",
            ".a52", ".col", ".ngp", ".ngc", ".sg", ".int", ".vb", ".vec",
            ".gam", ".j64", ".jag", ".mgw", ".nds", ".fds",
        ),
        DecoderKind.SUPER_NINTENDO: (".fig", ".sfc", ".smc", ".swc"),
        DecoderKind.MEGA_DRIVE_INTERLEAVED: (".mgd",),
        DecoderKind.MEGA_DRIVE_BLOCK_INTERLEAVED: (".smd",),
        DecoderKind.ATARI_LYNX: (".lnx", ".lyx"),
        DecoderKind.NINTENDO_64: (".n64", ".v64", ".z64"),
        DecoderKind.NES: (".nes",),
        DecoderKind.ATARI_7800: (".a78",),
    }
    for kind, exts in kinds.items():
        for ext in exts:
            if ext in table:
                raise ValueError(f"Extension {ext} registered twice")
            table[ext] = kind
    return MappingProxyType(table)


# Read-only after import
FORMAT_REGISTRY = _build_registry()

DECODERS: dict[DecoderKind, Callable[..., DigestPlan]] = {
    DecoderKind.RAW_BINARY: decoders.decode_raw,
    DecoderKind.SUPER_NINTENDO: decoders.decode_snes,
    DecoderKind.MEGA_DRIVE_INTERLEAVED: decoders.decode_mgd,
    DecoderKind.MEGA_DRIVE_BLOCK_INTERLEAVED: decoders.decode_smd,
    DecoderKind.ATARI_LYNX: decoders.decode_lynx,
    DecoderKind.NINTENDO_64: decoders.decode_n64,
    DecoderKind.NES: decoders.decode_nes,
    DecoderKind.ATARI_7800: decoders.decode_a78,
}


def resolve_kind(ext: str, extra_exts: frozenset[str] = frozenset()) -> DecoderKind:
    """
    Decoder kind for an extension; exact, case-sensitive match.

    extra_exts are caller-supplied extensions hashed as RawBinary for one
    run. Registered extensions keep their own kind; FORMAT_REGISTRY is
    never modified.
    """
    kind = FORMAT_REGISTRY.get(ext)
    if kind is not None:
        return kind
    if ext in extra_exts:
        return DecoderKind.RAW_BINARY
    return DecoderKind.UNDEFINED


def is_registered(ext: str, extra_exts: frozenset[str] = frozenset()) -> bool:
    return ext in FORMAT_REGISTRY or ext in extra_exts


def normalize_extra_exts(exts) -> frozenset[str]:
    """'foo' and '.foo' both become '.foo'; empty names are dropped."""
    out = set()
    for ext in exts or ():
        ext = ext.strip()
        if not ext or ext == ".":
            continue
        out.add(ext if ext.startswith(".") else "." + ext)
    return frozenset(out)


def plan_for(source, kind: DecoderKind) -> DigestPlan:
    """
    Ask the kind's decoder for a plan.

    Raises:
        UnknownFormat: for DecoderKind.UNDEFINED
    """
    if kind is DecoderKind.UNDEFINED:
        raise UnknownFormat(f"no decoder for extension {source.ext!r}")
    return DECODERS[kind](source)


def hash_source(
    source,
    algo: str = "sha1",
    extra_exts: frozenset[str] = frozenset(),
) -> tuple[str, DecoderKind, DigestPlan]:
    """
    Resolve, decode and hash an open source.

    Returns:
        (digest, kind, plan)
    """
    kind = resolve_kind(source.ext, extra_exts)
    plan = plan_for(source, kind)
    return execute(source, plan, algo), kind, plan
