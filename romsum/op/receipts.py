# romsum/op/receipts.py
# Per-file and per-run receipts, environment fingerprint

from __future__ import annotations
import platform
import sys
from dataclasses import dataclass, asdict
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from .hash import hash_bytes


def _dist_version(name: str) -> str:
    try:
        return version(name)
    except PackageNotFoundError:
        return "unknown"


@dataclass
class EnvRc:
    """Environment fingerprint recorded once per run."""
    platform: str
    endian: str
    py_version: str
    numpy_version: str
    blake3_version: str


def env_fingerprint() -> EnvRc:
    return EnvRc(
        platform=platform.platform(),
        endian=sys.byteorder,
        py_version=platform.python_version(),
        numpy_version=_dist_version("numpy"),
        blake3_version=_dist_version("blake3"),
    )


@dataclass
class HashRc:
    """
    One file's decoding decisions and result.

    Fields stay None when the pipeline stopped before reaching them;
    error is "<ExceptionClass>: <message>" for failed files.
    """
    path: str
    algo: str
    member: str | None = None
    kind: str | None = None
    start: int | None = None
    length: int | None = None
    block_size: int | None = None
    transform: str | None = None
    mode: str | None = None
    digest: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunRc:
    """
    Summary of one batch.

    table_hash is BLAKE3 over "<path>:<digest>" lines in input order, so
    two runs over the same files can be compared with one string.
    """
    env: EnvRc
    files: int
    failures: int
    algo: str
    table_hash: str


def table_hash(rcs: list[HashRc]) -> str:
    lines = "".join(f"{rc.path}:{rc.digest}\n" for rc in rcs)
    return hash_bytes(lines.encode("utf-8"))


def summarize(rcs: list[HashRc], algo: str) -> RunRc:
    return RunRc(
        env=env_fingerprint(),
        files=len(rcs),
        failures=sum(1 for rc in rcs if not rc.ok),
        algo=algo,
        table_hash=table_hash(rcs),
    )


def aggregate(rc: Any) -> Any:
    """
    Convert nested receipts (dataclasses or dicts) to JSON-serializable values.

    Args:
        rc: receipt dataclass, dict or list of them

    Returns:
        plain dict/list/scalar representation
    """
    def to_plain(x: Any) -> Any:
        if hasattr(x, "__dataclass_fields__"):
            return {k: to_plain(v) for k, v in asdict(x).items()}
        if isinstance(x, dict):
            return {k: to_plain(v) for k, v in x.items()}
        if isinstance(x, (list, tuple)):
            return [to_plain(v) for v in x]
        return x

    return to_plain(rc)
