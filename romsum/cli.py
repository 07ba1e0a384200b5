# romsum/cli.py
# romsum entrypoint: print "<digest> <path>" for every argument

from __future__ import annotations
import argparse
import logging
import sys

from romsum.config import ALGORITHMS, DEFAULT_ALGO, log_level
from romsum.io.save import write_jsonl
from romsum.op.receipts import aggregate
from romsum.op.registry import normalize_extra_exts
from romsum.runner import hash_paths

logger = logging.getLogger("romsum.cli")

FLAGS = ("-v", "--verbose", "-h", "--help")
VALUED = ("--algo", "--receipts", "--extra-ext")


def split_argv(argv: list[str]) -> tuple[list[str], list[str]]:
    """
    Separate option tokens from paths.

    Only the exact spellings in FLAGS and VALUED are options (VALUED also
    as --name=value). Every other token is a path, including names that
    start with '-', and paths keep their argument order. After '--' every
    token is a path.

    Returns:
        (option tokens for the parser, paths)
    """
    opts, paths = [], []
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok == "--":
            paths.extend(argv[i + 1:])
            break
        name = tok.split("=", 1)[0]
        if tok in FLAGS:
            opts.append(tok)
        elif tok in VALUED and i + 1 < len(argv):
            # Joined so a value starting with '-' is not read as an option
            opts.append(f"{tok}={argv[i + 1]}")
            i += 1
        elif "=" in tok and name in VALUED:
            opts.append(tok)
        else:
            paths.append(tok)
        i += 1
    return opts, paths


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="romsum",
        usage="romsum [options] [--] PATH...",
        description="Canonical content digests for ROM images (headers, interleave and byte order normalized).",
        epilog="Any argument that is not one of the options above is a path. Use -- before paths that look like options.",
    )
    p.add_argument("--algo", default=DEFAULT_ALGO,
                   help=f"digest algorithm: {', '.join(ALGORITHMS)} (default: {DEFAULT_ALGO})")
    p.add_argument("--receipts", metavar="PATH", help="write per-file receipts as JSONL")
    p.add_argument("--extra-ext", metavar="EXT", action="append", default=[],
                   help="also hash EXT as a raw binary for this run (repeatable)")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    return p


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    opts, paths = split_argv(argv)
    args = build_parser().parse_args(opts)

    logging.basicConfig(
        level=log_level(args.verbose),
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    algo = args.algo
    if algo not in ALGORITHMS:
        logger.warning("unknown algorithm %r, using %s", algo, DEFAULT_ALGO)
        algo = DEFAULT_ALGO
    extra_exts = normalize_extra_exts(args.extra_ext)

    rcs, run_rc = hash_paths(paths, algo, extra_exts)
    for rc in rcs:
        print(f"{rc.digest} {rc.path}")

    if args.receipts:
        records = [aggregate(rc) for rc in rcs]
        records.append({"run": aggregate(run_rc)})
        write_jsonl(args.receipts, records)

    # Per-file failures never change the exit status
    return 0


if __name__ == "__main__":
    sys.exit(main())
