from __future__ import annotations

import json
import math
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

import requests
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from colles.model import DONE, SOON, Dataset, Week
from colles.query import ScheduleSession
from colles.storage import load_last_query, save_last_query

console = Console()

DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

STATE_STYLES = {DONE: "dim", SOON: "bold yellow"}

# Everything that can go wrong while getting or reading the data
LOAD_ERRORS = (OSError, json.JSONDecodeError, ValueError, requests.RequestException)

# Broken cross references only show up while computing a program
DATA_ERRORS = (ValueError, IndexError, KeyError, TypeError, AttributeError)

GENERIC_ERROR = "Something went wrong while loading the schedule data."


# ---------------------------------------------------------------------------
# Relative time
# ---------------------------------------------------------------------------


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _time_of_day(dt: datetime) -> timedelta:
    return timedelta(hours=dt.hour, minutes=dt.minute, seconds=dt.second)


def _plural(value: int, label: str) -> str:
    n = abs(value)
    text = f"{n} {label}" + ("s" if n > 1 else "")
    return f"in {text}" if value > 0 else f"{text} ago"


def format_relative_time(from_: datetime, to: datetime) -> str:
    """
    Human readable distance from `from_` to `to`, e.g. "in 5 minutes",
    "tomorrow", "3 days ago".

    Day distances count midnights, not 24h periods: from 22:00 to 08:00 the
    next morning is "tomorrow".
    """
    diff = to - from_
    if abs(diff) < timedelta(minutes=1):
        return "now"
    if abs(diff) < timedelta(hours=2):
        return _plural(_round_half_up(diff / timedelta(minutes=1)), "minute")

    days = int(diff / timedelta(days=1))
    if diff > timedelta(0) and _time_of_day(to) < _time_of_day(from_):
        days += 1
    elif diff < timedelta(0) and _time_of_day(from_) < _time_of_day(to):
        days -= 1

    if days == 0:
        return _plural(_round_half_up(diff / timedelta(hours=1)), "hour")
    if days == -2:
        return "the day before yesterday"
    if days == -1:
        return "yesterday"
    if days == 1:
        return "tomorrow"
    if days == 2:
        return "the day after tomorrow"
    return _plural(days, "day")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _week_table(week: Week, now: datetime) -> Table:
    table = Table(title=f"Week {week.position + 1} ({week.day:02d}/{week.month:02d})", box=box.SIMPLE)
    table.add_column("Subject")
    table.add_column("Teacher")
    table.add_column("Room")
    table.add_column("When")

    for colle in week.colles:
        subject = escape(colle.subject)
        if colle.subject_url:
            subject = f"{subject} ([link={colle.subject_url}]program[/link])"
        when = f"{DAYS[colle.day]} {colle.time} ({format_relative_time(now, colle.start)})"
        table.add_row(subject, escape(colle.teacher), escape(colle.room or ""), when, style=STATE_STYLES.get(colle.state, ""))
    return table


def render_program(dataset: Dataset, student_index: int, weeks: list[Week], now: datetime) -> None:
    student = dataset.students[student_index]
    group = dataset.groups[student.group_index]
    clazz = dataset.classes[group.class_index]

    console.print(f"\n[bold cyan]{escape(student.name)}[/] | {escape(clazz.name)} | group [magenta]{group.number}[/]")
    if not weeks:
        console.print("No upcoming colles.")
        return
    for week in weeks:
        console.print(_week_table(week, now))


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------


def _show(session: ScheduleSession, query: str, now: datetime) -> bool:
    """
    Run one search and print the result. Returns False if the data is broken.
    """
    try:
        changed = session.update(query, now)
    except DATA_ERRORS as e:
        console.print(f"[bold red]{GENERIC_ERROR}[/] ({escape(str(e))})")
        return False

    if session.student_index is None:
        console.print("No match.")
    elif not changed:
        # same student, same states: nothing to redraw
        name = session.dataset.students[session.student_index].name
        console.print(f"Still showing: [bold cyan]{escape(name)}[/]")
    else:
        render_program(session.dataset, session.student_index, session.weeks, now)
    return True


def run_interactive(
    load_dataset_fn: Callable[[], Dataset],
    query_path: Optional[Path] = None,
    now_fn: Callable[[], datetime] = datetime.now,
) -> int:
    """
    Ask for names until a blank line and show the matching student's colles.
    The last query is remembered between runs and shown right away.
    """
    try:
        dataset = load_dataset_fn()
    except LOAD_ERRORS as e:
        console.print(f"[bold red]{GENERIC_ERROR}[/] ({escape(str(e))})")
        return 1

    session = ScheduleSession(dataset)

    query = load_last_query(query_path)
    if query:
        console.print(f"Last search: {escape(query)}")
        if not _show(session, query, now_fn()):
            return 1

    while True:
        query = console.input("\nStudent name [blank = exit]: ").strip()
        if not query:
            console.print("Bye.")
            return 0

        save_last_query(query, query_path)
        if not _show(session, query, now_fn()):
            return 1
