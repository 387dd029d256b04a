from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
import sys
from typing import TypedDict

from pbs_console.config import get_settings
from pbs_console.console import build_console
from pbs_console.fingerprint import fingerprint, fingerprint_file, format_fingerprint
from pbs_console.log import configure_logging


class FingerprintResult(TypedDict):
    fingerprint: str
    display: str


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pbs-console",
        description="Backup console helpers: key fingerprints and the key catalog",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fingerprint_parser = subparsers.add_parser(
        "fingerprint",
        help="Print the SHA-256 fingerprint of a key file",
    )
    fingerprint_parser.add_argument("path", help="Key file to hash, or '-' for stdin")

    subparsers.add_parser("keys", help="Load the encryption key catalog and print it")
    return parser


def run_fingerprint(path: str) -> FingerprintResult:
    if path == "-":
        digest = fingerprint(sys.stdin.buffer.read())
    else:
        digest = fingerprint_file(Path(path))
    return {"fingerprint": digest, "display": format_fingerprint(digest)}


async def run_keys() -> list[dict[str, str]]:
    console = build_console(get_settings())
    try:
        await console.catalog.load()
        return [
            {"hint": record.hint, "fingerprint": record.fingerprint}
            for record in console.catalog.list()
        ]
    finally:
        await console.aclose()


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(get_settings().log_level)

    try:
        if args.command == "fingerprint":
            result: object = run_fingerprint(args.path)
        else:
            result = asyncio.run(run_keys())
    except Exception as exc:
        print(f"[pbs-console] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc

    print(json.dumps(result), flush=True)


if __name__ == "__main__":
    main()
