"""
Program computation (dataset + student -> weeks of colles).

For one student:
- resolve group -> class
- decode the class templates, the class weeks and the group program
- patch each week with the student's overrides
- resolve every template into a Colle with its start time and state
- drop weeks where every colle is done

Everything here is pure: same dataset, student and time -> same result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence

from colles.codec import decode_integers, decode_sequences
from colles.model import DONE, NORMAL, SOON, Colle, Dataset, Override, Week
from colles.search import resolve

# Colles are "soon" from one hour before they start, "done" one hour after
STATE_WINDOW = timedelta(hours=1)


def classify(start: datetime, now: datetime) -> str:
    if now - start >= STATE_WINDOW:
        return DONE
    if start - now <= STATE_WINDOW:
        return SOON
    return NORMAL


def apply_overrides(base: List[int], overrides: Optional[Iterable[Override]], week: int) -> List[int]:
    """
    Apply the overrides targeting `week` to a week of the group program.

    `base` is never modified. It is returned as-is when no override targets
    the week, and copied once otherwise.
    """
    if not overrides:
        return base

    program = base
    copied = False
    for o in overrides:
        if o.week != week:
            continue
        if not copied:
            program = list(base)
            copied = True

        if o.position == -1:
            program.append(o.template)
        elif o.template == -1:
            del program[o.position]
        else:
            program[o.position] = o.template
    return program


def _resolve_colle(
    dataset: Dataset,
    template: Sequence[int],
    subject_urls_of: Callable[[int], Optional[str]],
    week_start: datetime,
    now: datetime,
) -> Colle:
    subject_index, teacher_index, day, time_index = template[:4]
    time = dataset.times[time_index]
    # times are normalized to HH:MM at build time
    clock = datetime.strptime(time, "%H:%M")
    start = week_start + timedelta(days=day, hours=clock.hour, minutes=clock.minute)
    return Colle(
        subject_index=subject_index,
        subject=dataset.subjects[subject_index],
        subject_url=subject_urls_of(subject_index),
        teacher=dataset.teachers[teacher_index],
        day=day,
        time=time,
        room=dataset.rooms[template[4]] if len(template) > 4 else None,
        start=start,
        state=classify(start, now),
    )


def compute_program(dataset: Dataset, student_index: int, now: datetime) -> List[Week]:
    """
    Return the upcoming weeks of a student's program, in program order.
    """
    student = dataset.students[student_index]
    group = dataset.groups[student.group_index]
    clazz = dataset.classes[group.class_index]

    templates = decode_sequences(clazz.colles)
    class_weeks = decode_integers(clazz.weeks)
    program = decode_sequences(group.program) if group.program else []

    result: List[Week] = []
    for position, base in enumerate(program):
        week_start = datetime.strptime(dataset.weeks[class_weeks[position]], "%Y-%m-%d")
        colles = [
            _resolve_colle(dataset, templates[t], clazz.subject_url, week_start, now)
            for t in apply_overrides(base, student.overrides, position)
        ]
        # weeks where everything is over are not interesting anymore
        if not any(c.state != DONE for c in colles):
            continue
        result.append(
            Week(
                position=position,
                year=week_start.year,
                month=week_start.month,
                day=week_start.day,
                colles=colles,
            )
        )
    return result


@dataclass
class ScheduleSession:
    """
    Keeps the last resolved student so that callers re-running the search on
    every keystroke can skip redrawing when the match did not change.
    """

    dataset: Dataset
    student_index: Optional[int] = None
    weeks: List[Week] = field(default_factory=list)

    def update(self, query: str, now: datetime) -> bool:
        """
        Resolve `query` and recompute the program. Returns True when the
        resolved student or their weeks (states move with `now`) differ from
        the previous call.
        """
        index = resolve(query, self.dataset)
        weeks = [] if index is None else compute_program(self.dataset, index, now)
        changed = index != self.student_index or weeks != self.weeks
        self.student_index = index
        self.weeks = weeks
        return changed
