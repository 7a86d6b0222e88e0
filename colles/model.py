"""
Central data model definitions used across the project.

The dataset shipped to clients is one JSON array with nine positional tables:

    [classes, groups, students, subjects, teachers, rooms, times, weeks, search_index]

Cross references between tables are plain integer indices. This module defines
the in-memory counterpart of every table entry so that:
- the normalizer and the query engine share the same field names
- the wire layout lives in exactly one place (to_wire / from_wire)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional


# Positions of the tables inside the wire array
CLASSES = 0
GROUPS = 1
STUDENTS = 2
SUBJECTS = 3
TEACHERS = 4
ROOMS = 5
TIMES = 6
WEEKS = 7
SEARCH_INDEX = 8
WIRE_LENGTH = 9

# Colle states relative to a reference time
DONE = "done"
SOON = "soon"
NORMAL = "normal"

SearchIndex = Dict[str, Dict[str, List[int]]]


class DatasetError(ValueError):
    """Raised when a payload does not have the shape of a dataset."""


@dataclass
class ClassEntry:
    """
    One class: its name, packed colle templates, packed week indices and
    the optional program URL of some subjects.
    """

    name: str
    colles: str
    weeks: str
    subject_urls: Dict[int, str] = field(default_factory=dict)

    def has_subject_url(self, subject_index: int) -> bool:
        return subject_index in self.subject_urls

    def subject_url(self, subject_index: int) -> Optional[str]:
        return self.subject_urls.get(subject_index)

    def to_wire(self) -> list[Any]:
        out: list[Any] = [self.name, self.colles, self.weeks]
        # URL map only travels when it has entries
        if self.subject_urls:
            out.append({str(k): v for k, v in sorted(self.subject_urls.items())})
        return out

    @classmethod
    def from_wire(cls, raw: list[Any]) -> "ClassEntry":
        urls: Dict[int, str] = {}
        if len(raw) > 3 and raw[3]:
            urls = {int(k): v for k, v in raw[3].items()}
        return cls(name=raw[0], colles=raw[1], weeks=raw[2], subject_urls=urls)


@dataclass
class GroupEntry:
    class_index: int
    number: int
    program: str

    def to_wire(self) -> list[Any]:
        return [self.class_index, self.number, self.program]

    @classmethod
    def from_wire(cls, raw: list[Any]) -> "GroupEntry":
        return cls(class_index=raw[0], number=raw[1], program=raw[2])


class Override(NamedTuple):
    """
    Per-student patch of one week of the group program.

    position == -1 appends, template == -1 removes the colle at position.
    """

    week: int
    position: int
    template: int


@dataclass
class StudentEntry:
    group_index: int
    name: str
    overrides: Optional[List[Override]] = None

    def to_wire(self) -> list[Any]:
        out: list[Any] = [self.group_index, self.name]
        if self.overrides:
            out.append([list(o) for o in self.overrides])
        return out

    @classmethod
    def from_wire(cls, raw: list[Any]) -> "StudentEntry":
        overrides = None
        if len(raw) > 2 and raw[2]:
            overrides = [Override(*o) for o in raw[2]]
        return cls(group_index=raw[0], name=raw[1], overrides=overrides)


@dataclass
class Dataset:
    """
    The normalized, deduplicated dataset. Immutable once built.
    """

    classes: List[ClassEntry]
    groups: List[GroupEntry]
    students: List[StudentEntry]
    subjects: List[str]
    teachers: List[str]
    rooms: List[str]
    times: List[str]
    weeks: List[str]
    search_index: SearchIndex

    def to_wire(self) -> list[Any]:
        return [
            [c.to_wire() for c in self.classes],
            [g.to_wire() for g in self.groups],
            [s.to_wire() for s in self.students],
            list(self.subjects),
            list(self.teachers),
            list(self.rooms),
            list(self.times),
            list(self.weeks),
            self.search_index,
        ]

    @classmethod
    def from_wire(cls, raw: Any) -> "Dataset":
        if not isinstance(raw, list) or len(raw) != WIRE_LENGTH:
            raise DatasetError("dataset must be an array of 9 tables")
        if not isinstance(raw[SEARCH_INDEX], dict):
            raise DatasetError("search index must be an object")
        try:
            return cls(
                classes=[ClassEntry.from_wire(x) for x in raw[CLASSES]],
                groups=[GroupEntry.from_wire(x) for x in raw[GROUPS]],
                students=[StudentEntry.from_wire(x) for x in raw[STUDENTS]],
                subjects=list(raw[SUBJECTS]),
                teachers=list(raw[TEACHERS]),
                rooms=list(raw[ROOMS]),
                times=list(raw[TIMES]),
                weeks=list(raw[WEEKS]),
                search_index=raw[SEARCH_INDEX],
            )
        except (IndexError, KeyError, TypeError, AttributeError) as e:
            raise DatasetError(f"malformed dataset row: {e}") from e


@dataclass
class Colle:
    """
    One resolved colle of a student, ready to be displayed.
    """

    subject_index: int
    subject: str
    subject_url: Optional[str]
    teacher: str
    day: int
    time: str
    room: Optional[str]
    start: datetime
    state: str


@dataclass
class Week:
    """
    One week of a student's program. `position` is the week's index in the
    class week list (0-based), year/month/day its first calendar day.
    """

    position: int
    year: int
    month: int
    day: int
    colles: List[Colle]
