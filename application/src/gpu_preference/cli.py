"""Command line interface for the GPU preference store."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterable, Iterator, List, Optional

from .errors import GpuPreferenceError
from .log import set_console_level
from .manager import BatchResult, RegistryManager
from .preference import LABELS, Entry, Pref
from .registry import PreferenceStore, WinRegistryStore


def _pref_arg(text: str) -> Pref:
    try:
        return Pref.from_label(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _iter_paths(values: Iterable[str]) -> Iterator[str]:
    # "-" pulls newline separated paths from stdin, one at a time.
    for v in values:
        if v == "-":
            for line in sys.stdin:
                line = line.rstrip("\r\n")
                if line:
                    yield line
        else:
            yield v


def _print_entries(entries: List[Entry], as_json: bool) -> None:
    records = [e.to_record() for e in entries]
    if as_json:
        print(json.dumps(records, indent=2))
        return
    if not records:
        return
    width = max(len("Path"), *(len(r["Path"]) for r in records))
    print(f"{'Path':<{width}}  GraphicsProfile")
    print(f"{'-' * width}  {'-' * len('GraphicsProfile')}")
    for r in records:
        print(f"{r['Path']:<{width}}  {r['GraphicsProfile']}")


def _report_failures(result: BatchResult) -> None:
    for _, err in result.failures:
        print(f"error: {err}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    labels = ", ".join(f"'{label}'" for label in LABELS.values())
    ap = argparse.ArgumentParser(
        prog="gpu-preference",
        description="Read and write per-application GPU preferences.",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = ap.add_subparsers(dest="command", required=True)

    p_set = sub.add_parser("set", help="Set the GPU preference for one or more executables")
    p_set.add_argument("paths", nargs="+", metavar="PATH",
                       help="Executable path; '-' reads one path per line from stdin")
    p_set.add_argument("--pref", type=_pref_arg, required=True, help=f"One of {labels}")
    p_set.add_argument("--json", action="store_true", help="Print records as JSON")

    p_get = sub.add_parser("get", help="List stored GPU preferences")
    p_get.add_argument("paths", nargs="*", metavar="PATH",
                       help="Only show these executables; '-' reads paths from stdin")
    p_get.add_argument("--pref", type=_pref_arg, default=None, help=f"Only show {labels}")
    p_get.add_argument("--json", action="store_true", help="Print records as JSON")

    p_backup = sub.add_parser("backup", help="Save all preferences to a JSON file")
    p_backup.add_argument("file")

    p_restore = sub.add_parser("restore", help="Apply preferences from a JSON backup")
    p_restore.add_argument("file")
    return ap


def main(argv: Optional[List[str]] = None, store: Optional[PreferenceStore] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_console_level(logging.DEBUG)

    try:
        manager = RegistryManager(store if store is not None else WinRegistryStore())

        if args.command == "set":
            result = manager.set_preferences(_iter_paths(args.paths), args.pref)
            _print_entries(result.entries, args.json)
            _report_failures(result)
            return 0 if result.ok else 1

        if args.command == "get":
            if args.paths:
                entries: List[Entry] = []
                for p in _iter_paths(args.paths):
                    entries.extend(manager.list_preferences(p, args.pref))
            else:
                entries = manager.list_preferences(pref=args.pref)
            _print_entries(entries, args.json)
            return 0

        if args.command == "backup":
            n = manager.backup(args.file)
            print(f"Saved {n} entries to {args.file}")
            return 0

        if args.command == "restore":
            result = manager.restore(args.file)
            print(f"Restored {len(result.entries)} entries from {args.file}")
            _report_failures(result)
            return 0 if result.ok else 1
    except (GpuPreferenceError, OSError, json.JSONDecodeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
