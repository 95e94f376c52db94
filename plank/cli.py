from __future__ import annotations

import os
import sys
import time
import argparse

from pathlib import Path
from typing import List, Optional

from plank.config import Options, EXISTS_POLICIES
from plank.constants import DEFAULT_LEVEL
from plank.errors import (
    PlankError,
    FormatMismatch,
    ManifestCorrupt,
    KeyMaterialError,
    DecryptionFailure,
    IntegrityMismatch,
)
from plank.reader import decode, inspect
from plank.writer import encode


def _hexdump(data: bytes) -> str:
    """Canonical hex+ASCII dump, 16 bytes per line."""
    lines = []
    for off in range(0, len(data), 16):
        chunk = data[off : off + 16]
        left = " ".join(f"{b:02x}" for b in chunk[:8])
        right = " ".join(f"{b:02x}" for b in chunk[8:])
        hexpart = f"{left:<23}  {right:<23}"
        text = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append(f"{off:08x}  {hexpart}  |{text}|")
    return "\n".join(lines) + ("\n" if lines else "")


def _safe_name(name: str) -> str:
    """Reduce an archive filename to a single safe path component.

    Rules:
    - Convert backslashes to slashes and keep the last segment
    - Reject empty, '.' and '..' results
    """
    leaf = name.replace("\\", "/").rstrip("/").split("/")[-1]
    if leaf in ("", ".", ".."):
        raise ValueError(f"Unsafe filename in archive: {name!r}")
    return leaf


def _next_nonconflicting_path(path: str, taken=()) -> str:
    if not os.path.lexists(path) and path not in taken:
        return path
    base_dir = os.path.dirname(path)
    root, ext = os.path.splitext(os.path.basename(path))
    i = 1
    while True:
        candidate = os.path.join(base_dir, f"{root} ({i}){ext}")
        if not os.path.lexists(candidate) and candidate not in taken:
            return candidate
        i += 1


def _read_archive(archive: str) -> bytes:
    with open(archive, "rb") as fh:
        return fh.read()


def cmd_pack(inputs: List[str], opts: Options) -> bool:
    """Pack files into a new archive.

    Args:
        inputs: Paths of the files to store; only their base names are kept.
        opts: Run options; ``opts.output`` is the archive path.
    """
    if not opts.output:
        raise ValueError("an output path is required (-o/--output)")
    files: List[bytes] = []
    names: List[str] = []
    for i, p in enumerate(inputs):
        path = Path(p)
        with open(path, "rb") as fh:
            data = fh.read()
        if opts.verbose:
            print(f"File: {i + 1}\tItem: {path.name}\tSize: 0x{len(data):x}")
        files.append(data)
        names.append(path.name)

    t0 = time.time()
    res = encode(
        files,
        names,
        encrypt=opts.encrypt,
        compress=opts.compress,
        digests=opts.digests,
        password_digest=opts.password_digest,
        key=opts.key,
        level=opts.level,
        verbose=opts.verbose,
    )
    if opts.verbose:
        info = inspect(res.data)
        print("Encoded header and manifest:")
        print(_hexdump(res.data[: info.payload_offset]), end="")

    print(f"Writing to {opts.output}")
    with open(opts.output, "wb") as fh:
        fh.write(res.data)
    if res.generated_key is not None:
        # Nothing else can decrypt this archive.
        print(f"Generated key: {res.generated_key_hex}")
        print("Keep this key; pass it with --key to unpack.", file=sys.stderr)
    dt = max(0.000001, time.time() - t0)
    total = sum(len(f) for f in files)
    print(f"Done: {len(files)} files, {total} bytes -> {len(res.data)} bytes in {dt:.2f}s")
    return True


def _plan_destinations(outdir: str, files, exists: str):
    """Resolve every destination before anything is written.

    Returns a list of (file, path) pairs; path is None for skipped files.
    """
    leaves = [_safe_name(f.filename) for f in files]
    seen = set()
    for f, leaf in zip(files, leaves):
        if leaf in seen:
            raise ValueError(f"Duplicate filename in archive after reducing to a base name: {leaf!r} ({f.filename!r})")
        seen.add(leaf)

    taken = set()
    plan = []
    for f, leaf in zip(files, leaves):
        dst = os.path.join(outdir, leaf)
        if os.path.lexists(dst):
            if exists == "overwrite":
                if os.path.isdir(dst) and not os.path.islink(dst):
                    raise RuntimeError(f"Cannot overwrite directory with file: {dst}")
            elif exists == "skip":
                plan.append((f, None))
                continue
            elif exists == "rename":
                dst = _next_nonconflicting_path(dst, taken)
            else:
                raise RuntimeError(f"Destination exists: {dst}")
        taken.add(dst)
        plan.append((f, dst))
    return plan


def cmd_unpack(archive: str, opts: Options) -> bool:
    """Decode an archive and write every file into ``opts.outdir``.

    Nothing is written unless the whole archive decodes and every
    destination resolves under the ``exists`` policy.
    """
    data = _read_archive(archive)
    if opts.verbose:
        print("Magic:")
        print(_hexdump(data[:5]), end="")
    out = decode(data, verbose=opts.verbose, verify=opts.verify, key=opts.decode_key)
    if opts.verbose:
        print("Finished constructing file(s)")

    outdir = opts.outdir or "."
    plan = _plan_destinations(outdir, out.files, opts.exists)
    os.makedirs(outdir, exist_ok=True)
    written = 0
    skipped = 0
    for f, dst in plan:
        if dst is None:
            print(f"    skipping: {f.filename} (exists)")
            skipped += 1
            continue
        print(f"Writing to {dst}")
        with open(dst, "wb") as fh:
            fh.write(f.data)
        written += 1
    verified = sum(1 for f in out.files if f.digest_verified)
    print(f"Done: wrote {written}/{len(out.files)} files; verified={verified} skipped={skipped}")
    return True


def cmd_list(archive: str) -> bool:
    """Print the header and manifest of an archive without decoding blocks."""
    info = inspect(_read_archive(archive))
    h = info.header
    print(
        f"version={h.version} files={h.file_count} compressed={h.compressed} "
        f"encrypted={h.encrypted} verifiable={h.verifiable}"
    )
    for i, rec in enumerate(info.records):
        name = rec.filename if rec.filename else f"({i})"
        print(f"{i}\t{rec.original_size}\t{rec.stored_size}\t{name}")
    return True


def cmd_verify(archive: str, opts: Options) -> bool:
    """Decode with digest checks.

    Prints:
        "OK" on success, "FAIL" on a digest mismatch.
    """
    data = _read_archive(archive)
    if not inspect(data).header.verifiable:
        print("Archive carries no digests; nothing to verify", file=sys.stderr)
    try:
        decode(data, verbose=opts.verbose, verify=True, key=opts.decode_key)
    except IntegrityMismatch as exc:
        print(f"FAIL: {exc}")
        return False
    print("OK")
    return True


def _add_key_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("-p", "--password", help="Password; the key is SHA-256 of it")
    p.add_argument("-k", "--key", help="Key as hex (64 characters)")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="plank", description="Pack files into a .plank archive and restore them")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Pack files into an archive")
    ap_pack.add_argument("inputs", nargs="+", help="Files to store")
    ap_pack.add_argument("-o", "--output", required=True, help="Output .plank path")
    ap_pack.add_argument("-c", "--compress", action="store_true", help="Compress with deflate")
    ap_pack.add_argument(
        "-e",
        "--encrypt",
        action="store_true",
        help="Encrypt; without --password or --key a random key is generated and printed",
    )
    _add_key_args(ap_pack)
    ap_pack.add_argument("--no-digests", action="store_true", help="Do not record SHA-256 digests")
    ap_pack.add_argument("--level", type=int, default=DEFAULT_LEVEL, help=f"Compression level 0-9 (default {DEFAULT_LEVEL})")
    ap_pack.add_argument("-v", "--verbose", action="store_true", help="Print more info")

    ap_unpack = sub.add_parser("unpack", help="Extract every file from an archive")
    ap_unpack.add_argument("archive", help="Archive path")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    _add_key_args(ap_unpack)
    ap_unpack.add_argument("-s", "--verify", action="store_true", help="Verify files against their SHA-256 digests")
    ap_unpack.add_argument(
        "--exists",
        choices=list(EXISTS_POLICIES),
        default="rename",
        help=(
            "What to do if a destination file exists: overwrite, skip, "
            "rename (append ' (n)' before extension), or fail. Default: rename"
        ),
    )
    ap_unpack.add_argument("-v", "--verbose", action="store_true", help="Print more info")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")

    ap_verify = sub.add_parser("verify", help="Verify archive integrity")
    ap_verify.add_argument("archive", help="Archive path")
    _add_key_args(ap_verify)
    ap_verify.add_argument("-v", "--verbose", action="store_true", help="Print more info")

    args = ap.parse_args(argv)
    try:
        opts = Options.from_args(args)
        if opts.verbose:
            print("Running in verbose")
        if args.cmd == "pack":
            cmd_pack(args.inputs, opts)
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, opts)
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "verify":
            if not cmd_verify(args.archive, opts):
                sys.exit(1)
        else:
            raise RuntimeError("Unknown command")
    except FormatMismatch as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (ManifestCorrupt, DecryptionFailure) as e:
        print(f"Error: archive is damaged: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyMaterialError as e:
        print(f"Error: {e}. Check --password/--key.", file=sys.stderr)
        sys.exit(2)
    except IntegrityMismatch as e:
        print(f"Error: {e} (damaged archive or wrong --password/--key)", file=sys.stderr)
        sys.exit(1)
    except (PlankError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
