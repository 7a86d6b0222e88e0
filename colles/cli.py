"""
CLI (Command Line Interface).

This module provides quick terminal commands, e.g.:

    colles build
    colles show <name>
    colles export <name> <file.ics>
    colles interactive

Note:
- The interactive viewer lives in colles/interactive.py
- This CLI is intentionally simple and prints plain text (no rich formatting)
"""

from __future__ import annotations

import argparse
from datetime import datetime
from pathlib import Path

from colles.export_ics import export_program_to_ics
from colles.interactive import DATA_ERRORS, DAYS, GENERIC_ERROR, LOAD_ERRORS, run_interactive
from colles.model import Dataset, Week
from colles.normalize import CLASSES_DIR, OUTPUT_PATH, build_dataset, load_class_records, normalize_classes
from colles.query import compute_program
from colles.search import resolve
from colles.storage import dataset_digest, default_data_url, dump_dataset, fetch_dataset, load_dataset


def _load(args: argparse.Namespace) -> Dataset:
    """
    Load the dataset from --url (or $COLLES_DATA_URL) if given, else from --data.
    """
    url = args.url or default_data_url()
    if url:
        return fetch_dataset(url)
    return load_dataset(args.data)


def _now(args: argparse.Namespace) -> datetime:
    at = getattr(args, "at", None)
    return at if at is not None else datetime.now()


def _cmd_build(args: argparse.Namespace) -> int:
    """
    Normalize all class files into data.json. With --check, only verify that
    the existing data.json is what the current class files produce.
    """
    try:
        if args.check:
            dataset = normalize_classes(load_class_records(args.data_dir), school_year=args.school_year)
            expected = dump_dataset(dataset)
            current = args.out.read_bytes() if args.out.exists() else b""
            if current != expected:
                print(f"{args.out} is out of date (expected sha256 {dataset_digest(expected)}).")
                return 1
            print(f"{args.out} is up to date (sha256 {dataset_digest(expected)}).")
            return 0

        digest = build_dataset(data_dir=args.data_dir, out_path=args.out, school_year=args.school_year)
    except (OSError, ValueError, KeyError) as e:
        print(f"Build failed: {e}")
        return 1

    print(f"Wrote {args.out} (sha256 {digest})")
    return 0


def _week_lines(week: Week) -> list[str]:
    lines = [f"Week {week.position + 1} ({week.day:02d}/{week.month:02d}/{week.year})"]
    for c in week.colles:
        bits = [f"{DAYS[c.day]} {c.time}", c.subject, c.teacher]
        if c.room:
            bits.append(f"room {c.room}")
        bits.append(c.state)
        lines.append("  - " + " | ".join(bits))
    return lines


def _resolve_student(args: argparse.Namespace) -> tuple[Dataset, int] | int:
    """
    Load the data and resolve the query. Returns an exit code on failure.
    """
    query = (args.query or "").strip()
    if not query:
        print("Please provide a student name.")
        return 1

    try:
        dataset = _load(args)
        index = resolve(query, dataset)
    except LOAD_ERRORS + DATA_ERRORS as e:
        print(f"{GENERIC_ERROR} ({e})")
        return 1

    if index is None:
        print("No match.")
        return 0
    return dataset, index


def _cmd_show(args: argparse.Namespace) -> int:
    """
    Print the upcoming colles of the student best matching the query.
    """
    found = _resolve_student(args)
    if isinstance(found, int):
        return found
    dataset, index = found

    try:
        weeks = compute_program(dataset, index, _now(args))
    except DATA_ERRORS as e:
        print(f"{GENERIC_ERROR} ({e})")
        return 1

    student = dataset.students[index]
    group = dataset.groups[student.group_index]
    print(f"{student.name} | {dataset.classes[group.class_index].name} | group {group.number}")

    if not weeks:
        print("No upcoming colles.")
        return 0
    for week in weeks:
        for line in _week_lines(week):
            print(line)
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    """
    Export the upcoming colles of a student into an iCalendar (.ics) file.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .ics path.")
        return 1

    found = _resolve_student(args)
    if isinstance(found, int):
        return found
    dataset, index = found

    try:
        weeks = compute_program(dataset, index, _now(args))
    except DATA_ERRORS as e:
        print(f"{GENERIC_ERROR} ({e})")
        return 1

    name = dataset.students[index].name
    n = export_program_to_ics(name, weeks, out_path)
    print(f"Exported {n} colles of {name} to: {out_path}")
    return 0


def _add_source_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--data", type=Path, default=OUTPUT_PATH, help="Path of data.json")
    p.add_argument("--url", type=str, default=None, help="Fetch data.json from this URL instead")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="colles", description="Colles schedule CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    p_build = sub.add_parser("build", help="Build data.json from the class files")
    p_build.add_argument("--data-dir", type=Path, default=CLASSES_DIR, help="Directory of class JSON files")
    p_build.add_argument("--out", type=Path, default=OUTPUT_PATH, help="Output data.json path")
    p_build.add_argument("--school-year", type=int, default=None, help="Year the school year starts in")
    p_build.add_argument("--check", action="store_true", help="Only check that --out is up to date")

    p_show = sub.add_parser("show", help="Show the colles of a student")
    p_show.add_argument("query", type=str, help="Student name (or part of it)")
    p_show.add_argument("--at", type=datetime.fromisoformat, default=None, help="Reference time (ISO format), default now")
    _add_source_args(p_show)

    p_export = sub.add_parser("export", help="Export the colles of a student to .ics")
    p_export.add_argument("query", type=str, help="Student name (or part of it)")
    p_export.add_argument("out", type=str, help="Output file path (e.g. colles.ics)")
    _add_source_args(p_export)

    p_interactive = sub.add_parser("interactive", help="Interactive search mode")
    _add_source_args(p_interactive)

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "build":
        raise SystemExit(_cmd_build(args))
    if args.command == "show":
        raise SystemExit(_cmd_show(args))
    if args.command == "export":
        raise SystemExit(_cmd_export(args))

    if args.command == "interactive":
        raise SystemExit(run_interactive(lambda: _load(args)))

    raise SystemExit(2)
