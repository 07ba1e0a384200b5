#!/usr/bin/env python3
"""
Registry, source and end-to-end tests

Tests:
1. Registry is read-only and case-sensitive
2. Unknown / missing / directory paths give an empty digest, never a crash
3. Same file hashed twice gives the same digest
4. .zip and .gz containers hash like the bare ROM
5. Receipts record the decoding decisions
6. CLI line format, exit status and receipts file
7. Paths starting with a dash, and -- ending options
8. Environment never changes the algorithm; unknown --algo falls back to sha1
9. Encrypted zip member fails that file only
10. Per-run extra extensions hash as raw binary
"""

import gzip
import hashlib
import json
import zipfile

import pytest

from romsum.cli import main, split_argv
from romsum.op.registry import FORMAT_REGISTRY, DecoderKind, normalize_extra_exts, resolve_kind
from romsum.runner import hash_file, hash_path, hash_paths


def _sha1(b: bytes) -> str:
    return hashlib.sha1(b).hexdigest()


def _nes_rom() -> tuple[bytes, bytes]:
    header = b"NES\x1a" + bytes([1, 1, 0, 0]) + bytes(8)
    payload = bytes(range(256)) * 96  # 16384 + 8192
    return header + payload, payload


def _write(path, data: bytes) -> str:
    path.write_bytes(data)
    return str(path)


def test_registry_lookup():
    assert resolve_kind(".nes") is DecoderKind.NES
    assert resolve_kind(".smd") is DecoderKind.MEGA_DRIVE_BLOCK_INTERLEAVED
    assert resolve_kind(".mgd") is DecoderKind.MEGA_DRIVE_INTERLEAVED
    assert resolve_kind(".lyx") is DecoderKind.ATARI_LYNX
    assert resolve_kind(".gen") is DecoderKind.RAW_BINARY
    assert resolve_kind(".xyz") is DecoderKind.UNDEFINED
    # No case folding
    assert resolve_kind(".NES") is DecoderKind.UNDEFINED
    assert all(ext == ext.lower() and ext.startswith(".") for ext in FORMAT_REGISTRY)


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        FORMAT_REGISTRY[".xyz"] = DecoderKind.RAW_BINARY


def test_unknown_extension(tmp_path):
    p = _write(tmp_path / "notes.xyz", b"hello")
    rc = hash_path(p)
    assert rc.digest == ""
    assert rc.error.startswith("UnknownFormat")


def test_uppercase_extension_is_unknown(tmp_path):
    p = _write(tmp_path / "GAME.NES", _nes_rom()[0])
    assert hash_file(p) == ""


def test_missing_file(tmp_path):
    rc = hash_path(str(tmp_path / "nope.nes"))
    assert rc.digest == ""
    assert rc.error.startswith("UnopenableFile")


def test_directory_is_unopenable(tmp_path):
    d = tmp_path / "roms.bin"
    d.mkdir()
    rc = hash_path(str(d))
    assert rc.digest == ""
    assert rc.error.startswith("UnopenableFile")


def test_empty_raw_file(tmp_path):
    p = _write(tmp_path / "empty.bin", b"")
    assert hash_file(p) == _sha1(b"") == "da39a3ee5e6b4b0d3255bfef95601890afd80709"


def test_file_digest_and_receipt(tmp_path):
    rom, payload = _nes_rom()
    p = _write(tmp_path / "game.nes", rom)

    rc = hash_path(p)
    assert rc.ok
    assert rc.digest == _sha1(payload)
    assert rc.kind == "nes"
    assert (rc.start, rc.length, rc.mode) == (16, 24576, "exact")
    assert rc.member is None


def test_determinism(tmp_path):
    data = bytes(range(256)) * 300
    for ext in (".bin", ".smc", ".mgd", ".smd", ".lnx", ".z64", ".a78"):
        p = _write(tmp_path / f"rom{ext}", data)
        assert hash_file(p) == hash_file(p), ext
        assert len(hash_file(p)) == 40, ext


def test_zip_container(tmp_path):
    rom, payload = _nes_rom()
    z = tmp_path / "game.zip"
    with zipfile.ZipFile(z, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("readme.txt", "not a rom")
        zf.writestr("game.nes", rom)

    rc = hash_path(str(z))
    assert rc.digest == _sha1(payload)
    assert rc.member == "game.nes"


def test_zip_without_rom(tmp_path):
    z = tmp_path / "docs.zip"
    with zipfile.ZipFile(z, "w") as zf:
        zf.writestr("readme.txt", "not a rom")
    rc = hash_path(str(z))
    assert rc.digest == ""
    assert rc.error.startswith("UnknownFormat")


def test_corrupt_zip(tmp_path):
    p = _write(tmp_path / "broken.zip", b"PK\x03\x04 not really")
    rc = hash_path(p)
    assert rc.digest == ""
    assert rc.error.startswith("UnopenableFile")


def test_gzip_container(tmp_path):
    payload = bytes(range(256)) * 8
    copier = b"\x00" * 512
    gz = tmp_path / "game.sfc.gz"
    with gzip.open(gz, "wb") as f:
        f.write(copier + payload)

    rc = hash_path(str(gz))
    assert rc.digest == _sha1(payload)
    assert rc.member == "game.sfc"
    assert rc.start == 512


def test_gzip_unknown_inner_extension(tmp_path):
    gz = tmp_path / "notes.txt.gz"
    with gzip.open(gz, "wb") as f:
        f.write(b"hello")
    assert hash_file(str(gz)) == ""


def test_batch_continues_after_failures(tmp_path):
    good = _write(tmp_path / "a.bin", b"abc")
    paths = [str(tmp_path / "missing.bin"), _write(tmp_path / "b.xyz", b"x"), good]
    rcs, run_rc = hash_paths(paths)

    assert [rc.path for rc in rcs] == paths
    assert [rc.digest for rc in rcs] == ["", "", _sha1(b"abc")]
    assert run_rc.files == 3
    assert run_rc.failures == 2
    assert len(run_rc.table_hash) == 64


def test_cli_output(tmp_path, capsys):
    rom = _write(tmp_path / "a.bin", b"abc")
    unknown = _write(tmp_path / "b.xyz", b"abc")
    missing = str(tmp_path / "c.nes")

    code = main([rom, unknown, missing])
    out = capsys.readouterr().out

    assert code == 0
    assert out == f"{_sha1(b'abc')} {rom}\n {unknown}\n {missing}\n"


def test_cli_receipts_and_algo(tmp_path, capsys):
    rom = _write(tmp_path / "a.bin", b"abc")
    receipts = tmp_path / "out" / "receipts.jsonl"

    code = main(["--algo", "md5", "--receipts", str(receipts), rom])
    out = capsys.readouterr().out
    assert code == 0
    assert out == f"{hashlib.md5(b'abc').hexdigest()} {rom}\n"

    lines = [json.loads(line) for line in receipts.read_text().splitlines()]
    assert len(lines) == 2
    assert lines[0]["path"] == rom
    assert lines[0]["kind"] == "raw_binary"
    assert lines[0]["transform"] == "identity"
    assert lines[0]["algo"] == "md5"
    assert lines[1]["run"]["files"] == 1
    assert lines[1]["run"]["failures"] == 0


def test_cli_ignores_environment(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("ROMSUM_ALGO", "blake3")
    rom = _write(tmp_path / "a.bin", b"abc")
    assert main([rom]) == 0
    digest, path = capsys.readouterr().out.rstrip("\n").split(" ", 1)
    assert len(digest) == 40
    assert digest == _sha1(b"abc")
    assert path == rom


def test_cli_unknown_algo_falls_back(tmp_path, capsys):
    rom = _write(tmp_path / "a.bin", b"abc")
    assert main(["--algo", "sha256", rom]) == 0
    assert capsys.readouterr().out == f"{_sha1(b'abc')} {rom}\n"


def test_cli_dash_prefixed_paths(tmp_path, capsys, monkeypatch):
    print("Testing dash-prefixed paths...")

    monkeypatch.chdir(tmp_path)
    (tmp_path / "-v.bin").write_bytes(b"dash")
    (tmp_path / "a.bin").write_bytes(b"abc")

    code = main(["-v.bin", "a.bin"])
    out = capsys.readouterr().out

    assert code == 0
    assert out == f"{_sha1(b'dash')} -v.bin\n{_sha1(b'abc')} a.bin\n"

    print("  ✓ -v.bin hashed as a file")


def test_cli_double_dash_ends_options(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "-v").write_bytes(b"no extension")
    (tmp_path / "--algo.bin").write_bytes(b"abc")

    code = main(["a.missing", "--", "-v", "--algo.bin"])
    out = capsys.readouterr().out

    assert code == 0
    assert out == f" a.missing\n -v\n{_sha1(b'abc')} --algo.bin\n"


def test_split_argv_keeps_path_order():
    opts, paths = split_argv(["x.nes", "--algo", "md5", "-v.bin", "-v", "--receipts=r.jsonl", "y.sfc", "--algo"])
    assert opts == ["--algo=md5", "-v", "--receipts=r.jsonl"]
    # A trailing option with no value is a path
    assert paths == ["x.nes", "-v.bin", "y.sfc", "--algo"]


def _encrypted_zip(path, name: str, data: bytes) -> str:
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr(name, data)
    raw = bytearray(path.read_bytes())
    # Set bit 0 (encrypted) of the general purpose flags in both headers
    raw[6] |= 0x01
    central = raw.rfind(b"PK\x01\x02")
    raw[central + 8] |= 0x01
    path.write_bytes(bytes(raw))
    return str(path)


def test_encrypted_zip_member_does_not_stop_batch(tmp_path):
    print("Testing encrypted zip member...")

    rom, payload = _nes_rom()
    enc = _encrypted_zip(tmp_path / "locked.zip", "game.nes", rom)
    good = _write(tmp_path / "a.bin", b"abc")

    rcs, run_rc = hash_paths([enc, good])

    assert rcs[0].digest == ""
    assert rcs[0].error.startswith("ReadFailure")
    assert rcs[1].digest == _sha1(b"abc")
    assert run_rc.failures == 1

    print("  ✓ encrypted member reported, batch continued")


def test_extra_extensions_hash_raw(tmp_path):
    data = bytes(range(256)) * 10
    p = _write(tmp_path / "dump.dat", data)

    assert hash_file(p) == ""
    rc = hash_path(p, extra_exts=frozenset({".dat"}))
    assert rc.digest == _sha1(data)
    assert rc.kind == "raw_binary"
    # Per call only; the shared table is untouched
    assert ".dat" not in FORMAT_REGISTRY
    assert hash_file(p) == ""


def test_extra_extensions_keep_registered_kinds():
    extra = frozenset({".nes", ".dat"})
    assert resolve_kind(".nes", extra) is DecoderKind.NES
    assert resolve_kind(".dat", extra) is DecoderKind.RAW_BINARY
    assert resolve_kind(".dat") is DecoderKind.UNDEFINED


def test_normalize_extra_exts():
    assert normalize_extra_exts(["dat", ".ROM2", "", " .x ", "."]) == frozenset({".dat", ".ROM2", ".x"})
    assert normalize_extra_exts(None) == frozenset()


def test_extra_extension_inside_zip(tmp_path):
    z = tmp_path / "dump.zip"
    with zipfile.ZipFile(z, "w") as zf:
        zf.writestr("readme.txt", "not a rom")
        zf.writestr("dump.dat", b"payload")

    assert hash_file(str(z)) == ""
    rc = hash_path(str(z), extra_exts=frozenset({".dat"}))
    assert rc.digest == _sha1(b"payload")
    assert rc.member == "dump.dat"


def test_cli_extra_ext(tmp_path, capsys):
    a = _write(tmp_path / "a.dat", b"abc")
    b = _write(tmp_path / "b.img", b"xyz")

    assert main(["--extra-ext", "dat", "--extra-ext=.img", a, b]) == 0
    assert capsys.readouterr().out == f"{_sha1(b'abc')} {a}\n{_sha1(b'xyz')} {b}\n"

    assert main([a]) == 0
    assert capsys.readouterr().out == f" {a}\n"
