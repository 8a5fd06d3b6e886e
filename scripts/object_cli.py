#!/usr/bin/env python3
"""Read, write and probe objects in the configured bucket from the shell.

Usage:
  python scripts/object_cli.py put report-42.pdf ./report.pdf
  python scripts/object_cli.py get report-42.pdf ./copy.pdf
  python scripts/object_cli.py exists report-42.pdf

Connection settings come from the same S3_* environment variables as the
service. Exit status is 0 on success, 1 when the object is missing, 2 when
the store is unavailable and 3 when a local file cannot be read or written.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from objstore.infra.storage.client import (
    ObjectNotFoundError,
    StorageInitError,
    TransferError,
)
from objstore.infra.storage.provider import StoreProvider, get_store_provider

EXIT_OK = 0
EXIT_MISSING = 1
EXIT_UNAVAILABLE = 2
EXIT_LOCAL_FILE = 3


def run(args: argparse.Namespace, provider: StoreProvider) -> int:
    try:
        obj = provider.new_object(args.key)
    except StorageInitError as exc:
        print(f"storage unavailable: {exc}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    if args.command == "exists":
        found = obj.exists()
        print("present" if found else "absent")
        return EXIT_OK if found else EXIT_MISSING

    try:
        if args.command == "put":
            data = args.source.read_bytes()
            obj.write(data)
            print(f"wrote {len(data)} bytes to {obj.file_name}")
        else:
            data = obj.read()
            if args.target is None:
                sys.stdout.buffer.write(data)
            else:
                args.target.write_bytes(data)
                print(f"read {len(data)} bytes from {obj.file_name}")
    except ObjectNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_MISSING
    except TransferError as exc:
        print(f"transfer failed: {exc}", file=sys.stderr)
        return EXIT_UNAVAILABLE
    except OSError as exc:
        print(f"local file error: {exc}", file=sys.stderr)
        return EXIT_LOCAL_FILE
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Object store command line client")
    sub = parser.add_subparsers(dest="command", required=True)

    put = sub.add_parser("put", help="Upload a local file under KEY")
    put.add_argument("key")
    put.add_argument("source", type=Path)

    get = sub.add_parser("get", help="Download KEY to a file or stdout")
    get.add_argument("key")
    get.add_argument("target", type=Path, nargs="?", default=None)

    exists = sub.add_parser("exists", help="Check whether KEY is present")
    exists.add_argument("key")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args, get_store_provider())


if __name__ == "__main__":
    sys.exit(main())
