"""
Aggregation Engine - attendance, marks and combined class reports.

The reducers at the top of this module are pure: they take already
fetched rows and return statistics. The report builders below them
fetch one snapshot per source table and call the reducers. Nothing here
writes to the store, so every report is safe to re-run.

Two different day counts are in play and are named apart:
- ``class_session_days``: distinct dates on which the class has any
  attendance row (denominator of the class average)
- ``student_recorded_days``: number of rows a single student has in the
  range (denominator of that student's percentage)

Rounding is half-up, so 62.5% reports as 63.
"""

import math
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy
from school_admin.errors import MissingField, NoStudentsInClass, NoDataFound, NotFound
from school_admin.models.attendance import AttendanceRecord
from school_admin.models.marks import MarksRecord
from school_admin.models.student import Student
from school_admin.models.user_account import UserAccount
from school_admin.services.dates import parse_date_range, iso_date
from school_admin.services.students import count_in_class
from school_admin.logging_config import get_logger, log_with_context

logger = get_logger("reports")


def round_half_up(value: float, digits: int = 0):
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5)
    return int(rounded) if digits == 0 else rounded / factor


def percentage(part: int, whole: int) -> int:
    return round_half_up(100 * part / whole) if whole else 0


# ── Result models ────────────────────────────────────────────

class AttendanceStatistics(BaseModel):
    total_students: int
    class_session_days: int
    average_attendance: int


class SubjectStatistics(BaseModel):
    count: int
    total: float
    average: float
    max: float
    min: float
    pass_count: int
    fail_count: int
    pass_percentage: int


class StudentAttendance(BaseModel):
    student_recorded_days: int = 0
    present_days: int = 0
    attendance_percentage: int = 0


class StudentSummary(BaseModel):
    student_name: str
    attendance: StudentAttendance
    marks: Dict[str, float]


# ── Pure reducers ────────────────────────────────────────────

def summarize_attendance(records: Iterable, total_students: int) -> AttendanceStatistics:
    """
    Class-wide attendance statistics.

    average_attendance = 100 * present / (total_students * class_session_days),
    counting only days that have at least one record.
    """
    records = list(records)
    session_days = len({iso_date(r.date) for r in records})
    present = sum(1 for r in records if r.status == "present")
    average = percentage(present, total_students * session_days) if session_days else 0
    return AttendanceStatistics(
        total_students=total_students,
        class_session_days=session_days,
        average_attendance=average
    )


def summarize_marks(records: Iterable, policy: ReportPolicy) -> Dict[str, SubjectStatistics]:
    """Per-subject count, average, extremes and pass rate."""
    totals: Dict[str, dict] = {}
    for record in records:
        stats = totals.setdefault(record.subject, {
            "total": 0.0, "count": 0, "max": -math.inf, "min": math.inf,
            "pass_count": 0, "fail_count": 0
        })
        stats["total"] += record.score
        stats["count"] += 1
        stats["max"] = max(stats["max"], record.score)
        stats["min"] = min(stats["min"], record.score)
        if policy.passed(record.score):
            stats["pass_count"] += 1
        else:
            stats["fail_count"] += 1

    return {
        subject: SubjectStatistics(
            average=round_half_up(stats["total"] / stats["count"], 2),
            pass_percentage=percentage(stats["pass_count"], stats["count"]),
            **stats
        )
        for subject, stats in totals.items()
    }


def combine_by_student(attendance: Iterable, marks: Iterable) -> List[StudentSummary]:
    """
    Join attendance and marks on student name.

    Every name that appears in either input gets a row; a student with
    no attendance rows gets zeros, one with no marks gets an empty map.
    """
    attendance_by_student: Dict[str, StudentAttendance] = {}
    for record in attendance:
        entry = attendance_by_student.setdefault(record.student_name, StudentAttendance())
        entry.student_recorded_days += 1
        if record.status == "present":
            entry.present_days += 1

    marks_by_student: Dict[str, Dict[str, float]] = {}
    for record in marks:
        marks_by_student.setdefault(record.student_name, {})[record.subject] = record.score

    rows = []
    for name in sorted(set(attendance_by_student) | set(marks_by_student)):
        entry = attendance_by_student.get(name, StudentAttendance())
        entry.attendance_percentage = percentage(entry.present_days, entry.student_recorded_days)
        rows.append(StudentSummary(
            student_name=name,
            attendance=entry,
            marks=marks_by_student.get(name, {})
        ))
    return rows


# ── Store snapshots ──────────────────────────────────────────

def _require_students(db: Session, class_label: str) -> int:
    total = count_in_class(db, class_label)
    if not total:
        raise NoStudentsInClass(class_label)
    return total


def _fetch_attendance(db: Session, class_label: str, start: datetime, end: datetime, order) -> List[AttendanceRecord]:
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.class_label == class_label,
        AttendanceRecord.date >= start,
        AttendanceRecord.date <= end
    ).order_by(*order).all()


def _fetch_marks(db: Session, class_label: str, exam_type: str, order) -> List[MarksRecord]:
    return db.query(MarksRecord).filter(
        MarksRecord.class_label == class_label,
        MarksRecord.exam_type == exam_type
    ).order_by(*order).all()


def _require(**params):
    missing = [name for name, value in params.items() if not value]
    if missing:
        raise MissingField(missing)


# ── Report builders ──────────────────────────────────────────

def attendance_report(db: Session, class_label: Optional[str], start_date: Optional[str],
                      end_date: Optional[str]) -> dict:
    """Attendance rows for a class in a date range, with class statistics."""
    start_time = time.time()
    _require(class_label=class_label, start_date=start_date, end_date=end_date)
    start, end = parse_date_range(start_date, end_date)
    total_students = _require_students(db, class_label)

    records = _fetch_attendance(db, class_label, start, end,
                                (AttendanceRecord.date, AttendanceRecord.student_name))
    statistics = summarize_attendance(records, total_students)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Attendance report: {} rows over {} days".format(
        len(records), statistics.class_session_days),
        context={"class_label": class_label},
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {
        "records": [
            {
                "student_name": r.student_name,
                "roll_number": r.roll_number,
                "date": iso_date(r.date),
                "status": r.status,
                "class_label": r.class_label
            }
            for r in records
        ],
        "statistics": statistics.model_dump()
    }


def marks_report(db: Session, policy: ReportPolicy, class_label: Optional[str],
                 exam_type: Optional[str]) -> dict:
    """
    Marks for a class and exam type with per-subject statistics.

    An exam with no marks yet is not an error: the result carries empty
    records and statistics plus a message.
    """
    start_time = time.time()
    _require(class_label=class_label, exam_type=exam_type)
    _require_students(db, class_label)

    records = _fetch_marks(db, class_label, exam_type, (MarksRecord.subject, MarksRecord.student_name))
    if not records:
        log_with_context(logger, "INFO", "Marks report: no marks recorded yet",
                         context={"class_label": class_label, "exam_type": exam_type})
        return {
            "records": [],
            "statistics": {},
            "message": "No marks found for class {} and exam type {}".format(class_label, exam_type)
        }

    statistics = summarize_marks(records, policy)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Marks report: {} rows across {} subjects".format(
        len(records), len(statistics)),
        context={"class_label": class_label, "exam_type": exam_type},
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {
        "records": [r.to_dict() for r in records],
        "statistics": {subject: stats.model_dump() for subject, stats in statistics.items()}
    }


def combined_report(db: Session, class_label: Optional[str], exam_type: Optional[str],
                    start_date: Optional[str], end_date: Optional[str]) -> dict:
    """
    One row per student combining attendance in the range with marks for
    the exam type. The two tables are read as separate snapshots.
    """
    start_time = time.time()
    _require(class_label=class_label, exam_type=exam_type, start_date=start_date, end_date=end_date)
    start, end = parse_date_range(start_date, end_date)
    total_students = _require_students(db, class_label)

    attendance = _fetch_attendance(db, class_label, start, end,
                                   (AttendanceRecord.student_name, AttendanceRecord.date))
    marks = _fetch_marks(db, class_label, exam_type, (MarksRecord.student_name, MarksRecord.subject))
    if not attendance and not marks:
        raise NoDataFound(class_label)

    rows = combine_by_student(attendance, marks)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Combined report: {} students with data".format(len(rows)),
                     context={"class_label": class_label, "exam_type": exam_type},
                     extra_data={"duration_ms": round(duration_ms, 2),
                                 "attendance_rows": len(attendance), "marks_rows": len(marks)})

    return {
        "records": [row.model_dump() for row in rows],
        "summary": {
            "total_students": total_students,
            "students_with_data": len(rows),
            "date_range": {"start": start_date, "end": end_date},
            "exam_type": exam_type
        }
    }


# ── Student self-view ────────────────────────────────────────

def linked_student(db: Session, account: UserAccount) -> Optional[Student]:
    """Find the Student matching an account by roll number, then by email."""
    if account.roll_number:
        student = db.query(Student).filter(Student.roll_number == account.roll_number).first()
        if student:
            return student
    if account.email:
        return db.query(Student).filter(Student.email == account.email.lower()).first()
    return None


def student_record(db: Session, account: UserAccount) -> dict:
    """
    The signed-in student's own profile, attendance and marks.

    Accounts without a matching Student raise NotFound.
    """
    student = linked_student(db, account)
    if not student:
        log_with_context(logger, "WARNING", "Account has no linked student record",
                         context={"user_id": account.id})
        raise NotFound("Student", message="No student record is linked to this account")

    attendance = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id == student.roll_number
    ).order_by(AttendanceRecord.date).all()
    marks = db.query(MarksRecord).filter(
        MarksRecord.student_name == student.name,
        MarksRecord.class_label == student.class_label
    ).order_by(MarksRecord.exam_type, MarksRecord.subject).all()

    present = sum(1 for r in attendance if r.status == "present")
    marks_by_exam: Dict[str, Dict[str, float]] = {}
    for record in marks:
        marks_by_exam.setdefault(record.exam_type, {})[record.subject] = record.score

    return {
        "student": student.to_dict(),
        "attendance": {
            "records": [{"date": iso_date(r.date), "status": r.status} for r in attendance],
            "summary": StudentAttendance(
                student_recorded_days=len(attendance),
                present_days=present,
                attendance_percentage=percentage(present, len(attendance))
            ).model_dump()
        },
        "marks": marks_by_exam
    }
