# romsum/runner.py
# Path -> digest end to end, one file at a time, failures contained per file

from __future__ import annotations
import logging

from romsum.errors import RomHashError
from romsum.io.source import open_source
from romsum.op.receipts import HashRc, RunRc, summarize
from romsum.op.registry import hash_source

logger = logging.getLogger("romsum.runner")


def hash_path(path: str, algo: str = "sha1", extra_exts: frozenset[str] = frozenset()) -> HashRc:
    """
    Hash one ROM file and record how it was decoded.

    The source is closed before returning, whatever happened. Any
    RomHashError is logged and stored in the receipt; the digest is
    then the empty string.

    Args:
        path: file path as given by the caller
        algo: digest algorithm name
        extra_exts: extensions hashed as RawBinary for this call only

    Returns:
        HashRc: receipt with digest ("" on failure)
    """
    rc = HashRc(path=path, algo=algo)
    try:
        with open_source(path, extra_exts) as source:
            rc.member = source.member
            digest, kind, plan = hash_source(source, algo, extra_exts)
    except RomHashError as e:
        rc.error = f"{type(e).__name__}: {e}"
        logger.warning("%s: %s", path, rc.error)
        return rc

    rc.kind = kind.value
    rc.start = plan.byte_range.start
    rc.length = plan.byte_range.length
    rc.block_size = plan.block_size
    rc.transform = plan.transform
    rc.mode = plan.mode
    rc.digest = digest
    logger.debug("%s: kind=%s digest=%s", path, rc.kind, digest)
    return rc


def hash_file(path: str, algo: str = "sha1", extra_exts: frozenset[str] = frozenset()) -> str:
    """Digest of path, or "" if it is unknown, unopenable or unreadable."""
    return hash_path(path, algo, extra_exts).digest


def hash_paths(
    paths: list[str],
    algo: str = "sha1",
    extra_exts: frozenset[str] = frozenset(),
) -> tuple[list[HashRc], RunRc]:
    """Hash paths strictly in order; one file's failure never stops the rest."""
    rcs = [hash_path(p, algo, extra_exts) for p in paths]
    return rcs, summarize(rcs, algo)
