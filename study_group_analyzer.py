#!/usr/bin/env python3
"""
Study Group Analyzer
=====================================================
Aggregates study group CSV records into per-group statistics:

- Row parsing into typed student records (malformed numbers rejected)
- Group aggregation (member roster, course set, report/time totals)
- Course index with per-member averages for a requested course
- Group statistics table (members and courses per group)
- ZIP archives: every archived CSV is analyzed on its own

Input columns: Group,MemberID,MemberName,Friends,Subjects,Reports,Times

Usage:
    python study_group_analyzer.py -f data/groups.csv -s
    python study_group_analyzer.py -f data/groups.csv -n Math
    python study_group_analyzer.py -f data/archive.zip -n Math --output-dir ./reports
    python study_group_analyzer.py -f data/archive.zip -e spring.csv -s -v
"""

from __future__ import annotations

import argparse
import csv
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterable, Sequence

__all__ = [
    "Student",
    "StudyGroup",
    "CourseReportRow",
    "Dataset",
    "GroupAggregator",
    "StudyGroupError",
    "MalformedRecordError",
    "CourseNotFoundError",
    "DatasetLoadError",
    "parse_student",
    "parse_students",
    "aggregate_groups",
    "build_course_index",
    "groups_for_course",
    "format_average",
    "build_course_report",
    "report_output_path",
    "write_course_report",
    "print_course_report",
    "run_course_query",
    "summarize_groups",
    "print_group_statistics",
    "load_csv",
    "load_archive",
    "load_datasets",
    "list_archive_csv_files",
    "analyze_dataset",
]

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# CONFIGURATION
# ──────────────────────────────────────────────────────────────────────────────

FIELD_NAMES: tuple[str, ...] = (
    "Group", "MemberID", "MemberName", "Friends", "Subjects", "Reports", "Times",
)
REPORT_HEADER: tuple[str, ...] = ("Group", "MemberIDs", "MemberNames", "Reports", "Times")

OUTPUT_DIR = "output"
UNKNOWN_MEMBER = "Unknown"
LIST_SEPARATOR = ", "

# Column positions in a raw row (Friends at 3 is never read)
_GROUP, _MEMBER_ID, _MEMBER_NAME, _SUBJECTS, _REPORTS, _TIMES = 0, 1, 2, 4, 5, 6

_ARCHIVE_SUFFIX = ".zip"
_CSV_SUFFIX = ".csv"
_MACOS_METADATA = "__MACOSX"

# Optional sign plus ASCII digits; no underscores or non-ASCII numerals
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_PATH_SEPARATORS = re.compile(r"[\\/]")


# ──────────────────────────────────────────────────────────────────────────────
# ERRORS
# ──────────────────────────────────────────────────────────────────────────────

class StudyGroupError(Exception):
    """Base class for analyzer failures."""


class MalformedRecordError(StudyGroupError, ValueError):
    """A numeric column could not be parsed as an integer."""

    def __init__(self, field_name: str, row_number: int, value: str):
        self.field = field_name
        self.row_number = row_number
        self.value = value
        super().__init__(
            f"Row {row_number}: field {field_name!r} is not an integer: {value!r}"
        )


class CourseNotFoundError(StudyGroupError, LookupError):
    """No group in the dataset studies the requested course."""

    def __init__(self, course_name: str):
        self.course_name = course_name
        super().__init__(f"No course name ({course_name}) found!")


class DatasetLoadError(StudyGroupError):
    """A data file or archive could not be read."""


# ──────────────────────────────────────────────────────────────────────────────
# DATA MODELS
# ──────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Student:
    """One parsed input row."""
    group_number: int
    member_id: int
    member_name: str
    courses: tuple[str, ...] = ()
    reports: int = 0
    study_minutes: int = 0


@dataclass(eq=False)
class StudyGroup:
    """Running aggregate for one group number.

    Totals are sums over every contributing row, not per-member values.
    Equality is identity so a group can be looked up in plain lists.
    """
    group_number: int
    roster: dict[int, str] = field(default_factory=dict)
    course_names: list[str] = field(default_factory=list)
    total_reports: int = 0
    total_minutes: int = 0

    def add_member(self, member_id: int, member_name: str) -> None:
        # Re-used ID keeps its roster position; the latest name wins
        if member_id in self.roster and self.roster[member_id] != member_name:
            logger.debug(
                "Group %d: member %d renamed %r -> %r",
                self.group_number, member_id, self.roster[member_id], member_name,
            )
        self.roster[member_id] = member_name

    def add_course(self, course_name: str) -> None:
        if course_name and course_name not in self.course_names:
            self.course_names.append(course_name)

    def accumulate(self, reports: int, minutes: int) -> None:
        self.total_reports += reports
        self.total_minutes += minutes

    @property
    def member_ids(self) -> list[int]:
        return list(self.roster)

    @property
    def member_names(self) -> list[str]:
        return [self.roster[member_id] or UNKNOWN_MEMBER for member_id in self.roster]

    @property
    def member_count(self) -> int:
        return len(self.roster)

    @property
    def course_count(self) -> int:
        return len(self.course_names)

    @property
    def average_reports(self) -> float:
        return self.total_reports / self.member_count if self.member_count else 0.0

    @property
    def average_minutes(self) -> float:
        return self.total_minutes / self.member_count if self.member_count else 0.0


def _quoted(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


@dataclass(frozen=True)
class CourseReportRow:
    """One formatted line of a course report."""
    group_number: int
    member_ids: str
    member_names: str
    avg_reports: str
    avg_minutes: str

    def to_csv_row(self) -> list[str | int]:
        return [
            self.group_number, self.member_ids, self.member_names,
            self.avg_reports, self.avg_minutes,
        ]

    def to_console_line(self) -> str:
        return (
            f"{self.group_number},{_quoted(self.member_ids)},{_quoted(self.member_names)},"
            f"{self.avg_reports},{self.avg_minutes}"
        )


@dataclass(frozen=True)
class Dataset:
    """Raw rows of one CSV file (or one archived CSV entry)."""
    name: str
    rows: list[list[str]]


# ──────────────────────────────────────────────────────────────────────────────
# RECORD PARSER
# ──────────────────────────────────────────────────────────────────────────────

def _parse_int(row: Sequence[str], index: int, row_number: int) -> int:
    raw = row[index]
    text = raw.strip() if isinstance(raw, str) else ""
    if not _INTEGER_PATTERN.fullmatch(text):
        raise MalformedRecordError(FIELD_NAMES[index], row_number, raw)
    return int(text)


def _split_courses(subjects: str) -> tuple[str, ...]:
    """Comma-separated subjects -> trimmed, de-duplicated, order kept."""
    courses = (part.strip() for part in subjects.split(","))
    return tuple(dict.fromkeys(c for c in courses if c))


def parse_student(row: Sequence[str], row_number: int = 0) -> Student:
    """Convert one raw 7-field row into a Student.

    Raises MalformedRecordError when Group, MemberID, Reports or Times
    is not an integer.
    """
    return Student(
        group_number=_parse_int(row, _GROUP, row_number),
        member_id=_parse_int(row, _MEMBER_ID, row_number),
        member_name=row[_MEMBER_NAME].strip(),
        courses=_split_courses(row[_SUBJECTS]),
        reports=_parse_int(row, _REPORTS, row_number),
        study_minutes=_parse_int(row, _TIMES, row_number),
    )


def parse_students(rows: Iterable[Sequence[str]]) -> list[Student]:
    """Parse every usable row.

    Short rows are skipped with a warning. A malformed numeric field
    propagates and aborts the whole dataset. Row numbers are 1-based
    and count data rows (the header is not included).
    """
    students: list[Student] = []
    for row_number, row in enumerate(rows, start=1):
        if not any(cell.strip() for cell in row):
            continue
        if len(row) < len(FIELD_NAMES):
            logger.warning(
                "Skipping row %d: expected %d fields, got %d",
                row_number, len(FIELD_NAMES), len(row),
            )
            continue
        students.append(parse_student(row, row_number))
    return students


# ──────────────────────────────────────────────────────────────────────────────
# GROUP AGGREGATION
# ──────────────────────────────────────────────────────────────────────────────

class GroupAggregator:
    """Folds students into StudyGroups keyed by group number.

    Groups iterate in first-appearance order and are never removed.
    Adding the same students twice doubles the totals, so build one
    aggregator per dataset.
    """

    def __init__(self):
        self.groups: dict[int, StudyGroup] = {}
        self.student_count = 0

    def add(self, student: Student) -> StudyGroup:
        group = self.groups.get(student.group_number)
        if group is None:
            group = StudyGroup(student.group_number)
            self.groups[student.group_number] = group

        group.add_member(student.member_id, student.member_name)
        for course in student.courses:
            group.add_course(course)
        group.accumulate(student.reports, student.study_minutes)
        self.student_count += 1
        return group

    def add_all(self, students: Iterable[Student]) -> dict[int, StudyGroup]:
        for student in students:
            self.add(student)
        logger.info(
            "Aggregated %d students into %d groups",
            self.student_count, len(self.groups),
        )
        return self.groups


def aggregate_groups(students: Iterable[Student]) -> dict[int, StudyGroup]:
    """Aggregate with a fresh GroupAggregator."""
    return GroupAggregator().add_all(students)


# ──────────────────────────────────────────────────────────────────────────────
# COURSE INDEX
# ──────────────────────────────────────────────────────────────────────────────

def build_course_index(groups: dict[int, StudyGroup]) -> dict[str, list[StudyGroup]]:
    """Invert the group map into course name -> groups studying it."""
    index: dict[str, list[StudyGroup]] = {}
    for group in groups.values():
        for course in group.course_names:
            course_groups = index.setdefault(course, [])
            if group not in course_groups:
                course_groups.append(group)
    return index


def groups_for_course(
    index: dict[str, list[StudyGroup]],
    course_name: str,
) -> list[StudyGroup]:
    """Look up a course; a miss raises CourseNotFoundError."""
    try:
        return index[course_name]
    except KeyError:
        raise CourseNotFoundError(course_name) from None


# ──────────────────────────────────────────────────────────────────────────────
# REPORT FORMATTER
# ──────────────────────────────────────────────────────────────────────────────

def format_average(value: float) -> str:
    """Whole numbers print bare ("4"), anything else with two decimals ("4.50")."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def build_course_report(groups: Iterable[StudyGroup]) -> list[CourseReportRow]:
    """Format one report row per group, with per-member averages."""
    return [
        CourseReportRow(
            group_number=group.group_number,
            member_ids=LIST_SEPARATOR.join(str(i) for i in group.member_ids),
            member_names=LIST_SEPARATOR.join(group.member_names),
            avg_reports=format_average(group.average_reports),
            avg_minutes=format_average(group.average_minutes),
        )
        for group in groups
    ]


def report_output_path(
    source_name: str,
    course_name: str,
    output_dir: str | Path = OUTPUT_DIR,
) -> Path:
    """<output_dir>/<source base name without .csv/.zip>-<course>.csv"""
    base = Path(source_name).name
    for suffix in (_CSV_SUFFIX, _ARCHIVE_SUFFIX):
        if base.lower().endswith(suffix):
            base = base[: -len(suffix)]
            break
    course = _PATH_SEPARATORS.sub("_", course_name)
    return Path(output_dir) / f"{base}-{course}.csv"


def write_course_report(rows: Iterable[CourseReportRow], path: str | Path) -> Path:
    """Write a course report CSV (UTF-8, fixed header)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(REPORT_HEADER)
        for row in rows:
            writer.writerow(row.to_csv_row())
    logger.info("Wrote course report %s", path)
    return path


def print_course_report(rows: Iterable[CourseReportRow]) -> None:
    print(",".join(REPORT_HEADER))
    for row in rows:
        print(row.to_console_line())


def run_course_query(
    dataset_name: str,
    groups: dict[int, StudyGroup],
    course_name: str,
    output_dir: str | Path = OUTPUT_DIR,
) -> Path:
    """Report on one course: save the CSV, then echo it to stdout.

    Raises CourseNotFoundError before anything is written when no
    group studies the course.
    """
    course_groups = groups_for_course(build_course_index(groups), course_name)
    rows = build_course_report(course_groups)

    path = write_course_report(rows, report_output_path(dataset_name, course_name, output_dir))
    print(f"The output file, {path}, is saved!!")
    print_course_report(rows)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# STATISTICS
# ──────────────────────────────────────────────────────────────────────────────

def summarize_groups(groups: dict[int, StudyGroup]) -> list[dict[str, int]]:
    return [
        {
            "group": group.group_number,
            "students": group.member_count,
            "courses": group.course_count,
        }
        for group in groups.values()
    ]


def print_group_statistics(groups: dict[int, StudyGroup]) -> None:
    """Fixed-width table: one line per group, in group-map order."""
    print(f"  {'Group':<10} {'Students':>10} {'Courses':>10}")
    print(f"  {'─' * 32}")
    for stats in summarize_groups(groups):
        print(f"  {stats['group']:<10} {stats['students']:>10} {stats['courses']:>10}")


# ──────────────────────────────────────────────────────────────────────────────
# DATASET LOADING
# ──────────────────────────────────────────────────────────────────────────────

def read_csv_rows(stream: IO[str]) -> list[list[str]]:
    """All records after the header line."""
    reader = csv.reader(stream)
    next(reader, None)
    return [row for row in reader]


def load_csv(path: str | Path) -> Dataset:
    path = Path(path)
    if not path.exists():
        raise DatasetLoadError(f"File not found: {path}")
    try:
        with open(path, newline="", encoding="utf-8") as f:
            rows = read_csv_rows(f)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise DatasetLoadError(f"Error reading CSV file {path}: {exc}") from exc
    return Dataset(name=str(path), rows=rows)


def _is_csv_entry(entry_name: str) -> bool:
    return entry_name.lower().endswith(_CSV_SUFFIX) and _MACOS_METADATA not in entry_name


def list_archive_csv_files(path: str | Path) -> list[str]:
    """CSV entry names in a ZIP archive, skipping macOS metadata."""
    try:
        with zipfile.ZipFile(path) as archive:
            names = [n for n in archive.namelist() if _is_csv_entry(n)]
    except (OSError, zipfile.BadZipFile) as exc:
        raise DatasetLoadError(f"Error processing ZIP file {path}: {exc}") from exc
    if not names:
        raise DatasetLoadError(f"No CSV files found in the ZIP archive: {path}")
    return names


def load_archive(path: str | Path, entry: str | None = None) -> list[Dataset]:
    """One Dataset per archived CSV, or only the entry named by `entry`.

    `entry` matches the end of the entry path, ignoring case.
    """
    path = Path(path)
    if not path.exists():
        raise DatasetLoadError(f"File not found: {path}")

    names = list_archive_csv_files(path)
    if entry is not None:
        names = [n for n in names if n.lower().endswith(entry.lower())][:1]
        if not names:
            raise DatasetLoadError(f"CSV file {entry!r} not found in the ZIP archive: {path}")

    datasets = []
    try:
        with zipfile.ZipFile(path) as archive:
            for name in names:
                with archive.open(name) as raw:
                    text = io.TextIOWrapper(raw, encoding="utf-8", newline="")
                    datasets.append(Dataset(name=name, rows=read_csv_rows(text)))
    except (OSError, zipfile.BadZipFile, UnicodeDecodeError, csv.Error) as exc:
        raise DatasetLoadError(f"Error reading CSV files from ZIP {path}: {exc}") from exc

    logger.debug("Loaded %d CSV entries from %s", len(datasets), path)
    return datasets


def load_datasets(path: str | Path, entry: str | None = None) -> list[Dataset]:
    if str(path).lower().endswith(_ARCHIVE_SUFFIX):
        return load_archive(path, entry)
    return [load_csv(path)]


# ──────────────────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────────────────

def analyze_dataset(
    dataset: Dataset,
    course_name: str | None = None,
    show_statistics: bool = False,
    output_dir: str | Path = OUTPUT_DIR,
) -> dict[int, StudyGroup] | None:
    """Run the pipeline over one dataset and print the requested output.

    Returns the group map, or None when a malformed row aborted the parse.
    """
    print(f"Loading the study group data file, {dataset.name}...")
    try:
        students = parse_students(dataset.rows)
    except MalformedRecordError as exc:
        logger.error("Skipping %s: %s", dataset.name, exc)
        return None

    groups = aggregate_groups(students)
    print("The data file is loaded...")
    print(f"The number of groups: {len(groups)}")
    print(f"The number of students: {len(students)}")

    if show_statistics:
        print("\n==== Statistics ====")
        print_group_statistics(groups)

    if course_name is not None:
        print()
        try:
            run_course_query(dataset.name, groups, course_name, output_dir)
        except CourseNotFoundError as exc:
            print(exc)

    return groups


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-group-analyzer",
        description="Study group analysis program",
        epilog="Please report issues at the issue report system.",
    )
    parser.add_argument(
        "-f", "--filepath", required=True, metavar="FILE_PATH",
        help="Set the data file path (.csv or .zip).",
    )
    parser.add_argument(
        "-n", "--cname", metavar="COURSE_NAME",
        help="Print group information for a course name and save it as a CSV file.",
    )
    parser.add_argument(
        "-s", "--statistics", action="store_true",
        help="Print out the statistics of the study group data.",
    )
    parser.add_argument(
        "-e", "--entry", metavar="CSV_NAME",
        help="Only analyze this CSV file inside a ZIP archive.",
    )
    parser.add_argument("--output-dir", default=OUTPUT_DIR, help="Output directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        datasets = load_datasets(args.filepath, args.entry)
    except DatasetLoadError as exc:
        logger.error("%s", exc)
        return 1

    for i, dataset in enumerate(datasets):
        if i:
            print()
        analyze_dataset(
            dataset,
            course_name=args.cname,
            show_statistics=args.statistics,
            output_dir=args.output_dir,
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
