"""
Normalizing (per-class JSON -> one dataset).

- Reads one source JSON file per class from data/classes/
- Deduplicates subjects, teachers, rooms, times and weeks across ALL classes
- Packs colle templates, weeks and group programs with the integer codec
- Writes data/processed/data.json (compact, one opaque file for the client)

Important rules (DO NOT CHANGE):
- Classes are processed in a stable order (file name order)
- First occurrence of a value wins its index in a shared table
- Same input must always produce byte-identical output
"""

from __future__ import annotations

import argparse
import json
import re
from pathlib import Path
from typing import Any, Dict, Generic, Hashable, Iterable, List, Optional, TypeVar

from colles.codec import encode_integers, encode_sequences
from colles.model import ClassEntry, Dataset, GroupEntry, Override, StudentEntry
from colles.search import build_search_index, strip_accents
from colles.storage import save_dataset


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PACKAGE_DIR = Path(__file__).resolve().parent
CLASSES_DIR = PACKAGE_DIR / "data" / "classes"
OUTPUT_PATH = PACKAGE_DIR / "data" / "processed" / "data.json"

# School years start in September
FIRST_MONTH_OF_SCHOOL_YEAR = 9

T = TypeVar("T", bound=Hashable)


# ---------------------------------------------------------------------------
# Interning
# ---------------------------------------------------------------------------


class InternTable(Generic[T]):
    """
    Content-addressed table: every distinct value gets the index of its
    first insertion.
    """

    def __init__(self) -> None:
        self.values: List[T] = []
        self._index: Dict[T, int] = {}

    def intern(self, value: T) -> int:
        i = self._index.get(value)
        if i is None:
            i = len(self.values)
            self.values.append(value)
            self._index[value] = i
        return i

    def __len__(self) -> int:
        return len(self.values)


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

_ISO_WEEK = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SHORT_WEEK = re.compile(r"^(\d{1,2})-(\d{1,2})$")


def normalize_week(week: str, school_year: Optional[int] = None) -> str:
    """
    Return the week start as 'YYYY-MM-DD'.

    Legacy 'MM-DD' values need the year the school year starts in:
    September..December belong to that year, the other months to the next.
    """
    week = week.strip()
    if _ISO_WEEK.match(week):
        return week

    m = _SHORT_WEEK.match(week)
    if not m:
        raise ValueError(f"Invalid week format: {week!r}")
    if school_year is None:
        raise ValueError(f"Week {week!r} has no year and no school year was given")

    month, day = int(m.group(1)), int(m.group(2))
    if not (1 <= month <= 12 and 1 <= day <= 31):
        raise ValueError(f"Invalid week value: {week!r}")
    year = school_year if month >= FIRST_MONTH_OF_SCHOOL_YEAR else school_year + 1
    return f"{year:04d}-{month:02d}-{day:02d}"


def normalize_time(time: Any) -> str:
    """
    Return a colle start time as 'HH:MM'. Integer hours are accepted.
    """
    if isinstance(time, int) and not isinstance(time, bool):
        if not 0 <= time <= 23:
            raise ValueError(f"Invalid time value: {time!r}")
        return f"{time:02d}:00"
    if isinstance(time, str) and ":" in time:
        return time.strip()
    raise ValueError(f"Invalid time format: {time!r}")


def _subject_name_and_url(subject: Any) -> tuple[str, Optional[str]]:
    if isinstance(subject, dict):
        return subject["name"], subject.get("url")
    return subject, None


def _override_value(x: Optional[int]) -> int:
    return -1 if x is None else x


def _student_overrides(group: Dict[str, Any], position: int) -> Optional[List[Override]]:
    """
    Read the overrides of the student at `position` in the group, if any.

    perStudentProgram may be a list (null = none) or an object keyed by the
    position as a string.
    """
    per_student = group.get("perStudentProgram")
    if per_student is None:
        return None

    if isinstance(per_student, dict):
        deltas = per_student.get(str(position))
    else:
        deltas = per_student[position] if position < len(per_student) else None
    if deltas is None:
        return None

    return [
        Override(d["week"], _override_value(d.get("index")), _override_value(d.get("newColle")))
        for d in deltas
    ]


def collation_key(name: str) -> tuple[str, str]:
    """
    Sort key for student names: accents and case are ignored first, the raw
    name breaks ties so the order is total.
    """
    return (strip_accents(name).casefold(), name)


# ---------------------------------------------------------------------------
# Normalizer (CORE LOGIC)
# ---------------------------------------------------------------------------


class Normalizer:
    """
    Accumulates classes into shared tables. One instance = one build.
    """

    def __init__(self, school_year: Optional[int] = None) -> None:
        self.school_year = school_year
        self.subjects: InternTable[str] = InternTable()
        self.teachers: InternTable[str] = InternTable()
        self.rooms: InternTable[str] = InternTable()
        self.times: InternTable[str] = InternTable()
        self.weeks: InternTable[str] = InternTable()

        self.classes: List[ClassEntry] = []
        self.groups: List[GroupEntry] = []
        self.students: List[StudentEntry] = []

    def add_class(self, data: Dict[str, Any]) -> int:
        """
        Add one source class record and return its class index.
        """
        # Local (per file) index -> global table index
        subject_map: List[int] = []
        subject_urls: Dict[int, str] = {}
        for subject in data.get("subjects", []):
            name, url = _subject_name_and_url(subject)
            i = self.subjects.intern(name)
            subject_map.append(i)
            if url is not None:
                subject_urls[i] = url

        teacher_map = [self.teachers.intern(t) for t in data.get("teachers", [])]
        week_map = [
            self.weeks.intern(normalize_week(w, self.school_year)) for w in data.get("weeks", [])
        ]

        templates: List[List[int]] = []
        for colle in data.get("colles", []):
            template = [
                subject_map[colle["subject"]],
                teacher_map[colle["teacher"]],
                colle["day"],
                self.times.intern(normalize_time(colle["time"])),
            ]
            room = colle.get("room")
            if room:
                template.append(self.rooms.intern(room))
            templates.append(template)

        class_index = len(self.classes)
        self.classes.append(
            ClassEntry(
                name=data["name"],
                colles=encode_sequences(templates),
                weeks=encode_integers(week_map),
                subject_urls=subject_urls,
            )
        )

        first_group = data.get("firstGroup", 1)
        for i, group in enumerate(data.get("groups", [])):
            group_index = len(self.groups)
            self.groups.append(
                GroupEntry(
                    class_index=class_index,
                    number=i + first_group,
                    program=encode_sequences(group.get("program", [])),
                )
            )
            for j, name in enumerate(group.get("students", [])):
                self.students.append(
                    StudentEntry(
                        group_index=group_index,
                        name=name,
                        overrides=_student_overrides(group, j),
                    )
                )

        return class_index

    def finish(self) -> Dataset:
        """
        Sort the students and build the search index over the final order.
        """
        students = sorted(self.students, key=lambda s: collation_key(s.name))
        return Dataset(
            classes=list(self.classes),
            groups=list(self.groups),
            students=students,
            subjects=list(self.subjects.values),
            teachers=list(self.teachers.values),
            rooms=list(self.rooms.values),
            times=list(self.times.values),
            weeks=list(self.weeks.values),
            search_index=build_search_index(s.name for s in students),
        )


def normalize_classes(records: Iterable[Dict[str, Any]], school_year: Optional[int] = None) -> Dataset:
    """
    Normalize source class records, in the given order, into one dataset.
    """
    normalizer = Normalizer(school_year=school_year)
    for record in records:
        normalizer.add_class(record)
    return normalizer.finish()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_class_records(data_dir: Path = CLASSES_DIR) -> List[Dict[str, Any]]:
    """
    Read every *.json class file, sorted by file name for reproducible builds.
    """
    records: List[Dict[str, Any]] = []
    for path in sorted(Path(data_dir).glob("*.json")):
        records.append(json.loads(path.read_text(encoding="utf-8")))
    return records


def build_dataset(
    data_dir: Path = CLASSES_DIR,
    out_path: Path = OUTPUT_PATH,
    school_year: Optional[int] = None,
) -> str:
    """
    Normalize all class files and write the dataset. Returns its digest.
    """
    data_path = Path(data_dir).resolve()
    out = Path(out_path).resolve()

    print("DATA_DIR:", data_path)
    print("FILES   :", [p.name for p in sorted(data_path.glob("*.json"))])

    dataset = normalize_classes(load_class_records(data_path), school_year=school_year)
    digest = save_dataset(dataset, out)

    print(
        f"classes={len(dataset.classes)} groups={len(dataset.groups)} "
        f"students={len(dataset.students)}"
    )
    return digest


# ---------------------------------------------------------------------------
# CLI connection
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="colles.normalize", description="Build data.json from class files")
    p.add_argument("--data-dir", type=Path, default=CLASSES_DIR)
    p.add_argument("--out", type=Path, default=OUTPUT_PATH)
    p.add_argument("--school-year", type=int, default=None, help="Year the school year starts in")
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    digest = build_dataset(data_dir=args.data_dir, out_path=args.out, school_year=args.school_year)
    print(f"Build finished. {args.out.resolve()} (sha256 {digest})")


if __name__ == "__main__":
    main()
