"""
Attendance Ingestion - single and batched attendance writes.

At most one record exists per (roll number, date). The pre-write checks
below only produce clearer errors; the store's unique constraint is what
actually guarantees it, so every commit also translates IntegrityError
into DuplicateRecord.

The batch path is all-or-nothing: a missing student or an existing
record for any entry rejects the whole batch before anything is written.
"""

import time
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy, ATTENDANCE_STATUSES
from school_admin.errors import (
    MissingField, InvalidChoice, DuplicateRecord, NotFound,
    NoStudentsFound, StudentsNotFound, duplicate_from_integrity
)
from school_admin.models.attendance import AttendanceRecord
from school_admin.models.student import Student
from school_admin.services.batches import AllOrNothingResult
from school_admin.services.dates import normalize_date, iso_date
from school_admin.services.students import find_by_roll_numbers
from school_admin.logging_config import get_logger, log_with_context

logger = get_logger("ingest")

BATCH_ENTRY_FIELDS = ("roll_number", "name", "status")


def _check_status(status: str):
    if status not in ATTENDANCE_STATUSES:
        raise InvalidChoice("status", status, ATTENDANCE_STATUSES)


def mark_attendance(db: Session, policy: ReportPolicy, roll_number: Optional[str], date: Optional[str],
                    status: Optional[str] = "present", student_name: Optional[str] = None,
                    class_label: Optional[str] = None) -> AttendanceRecord:
    """
    Record one student's attendance for one day.

    The student's name and class are looked up by roll number when not
    supplied.
    """
    missing = [name for name, value in (("roll_number", roll_number), ("date", date)) if not value]
    if missing:
        raise MissingField(missing)

    attendance_date = normalize_date(date)
    status = status or "present"
    _check_status(status)

    existing = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id == roll_number,
        AttendanceRecord.date == attendance_date
    ).first()
    if existing:
        raise DuplicateRecord(
            "Attendance record already exists for this roll number on the specified date",
            {"conflicts": [{"roll_number": roll_number, "date": iso_date(attendance_date)}]}
        )

    if not student_name or not class_label:
        student = db.query(Student).filter(Student.roll_number == roll_number).first()
        if not student:
            raise NotFound("Student", roll_number,
                           "No student with roll number {}".format(roll_number))
        student_name = student_name or student.name
        class_label = class_label or student.class_label

    if not policy.is_known_class(class_label):
        raise InvalidChoice("class_label", class_label, policy.class_labels)

    record = AttendanceRecord(
        id=str(uuid.uuid4()),
        student_id=roll_number,
        student_name=student_name,
        roll_number=roll_number,
        date=attendance_date,
        status=status,
        class_label=class_label
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise duplicate_from_integrity(
            e, "Attendance record already exists for this roll number on the specified date",
            [{"roll_number": roll_number, "date": iso_date(attendance_date)}])
    db.refresh(record)

    log_with_context(logger, "INFO", "Attendance marked: {} {} {}".format(
        roll_number, iso_date(attendance_date), status),
        context={"roll_number": roll_number, "class_label": class_label})
    return record


def _validate_entries(records) -> List[dict]:
    if not isinstance(records, list) or not records:
        raise MissingField("records")

    entries = []
    invalid = []
    for index, record in enumerate(records):
        record = record or {}
        absent = [name for name in BATCH_ENTRY_FIELDS if not record.get(name)]
        if absent:
            invalid.append({"index": index, "missing": absent})
        entries.append(record)
    if invalid:
        raise MissingField(
            list(BATCH_ENTRY_FIELDS),
            "Some records are missing required fields (roll_number, name, status)",
            {"invalid_records": invalid}
        )
    return entries


def _existing_conflicts(db: Session, roll_numbers, attendance_date: datetime) -> List[AttendanceRecord]:
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id.in_(list(roll_numbers)),
        AttendanceRecord.date == attendance_date
    ).order_by(AttendanceRecord.roll_number).all()


def mark_attendance_batch(db: Session, policy: ReportPolicy, date: Optional[str],
                          class_label: Optional[str], records) -> AllOrNothingResult:
    """
    Record attendance for a list of students on one date.

    Processing steps:
    1. Validate that every entry carries roll_number, name and status
    2. Normalize the date once
    3. Resolve all distinct roll numbers in one query; any unresolved
       roll number rejects the batch
    4. Reject the batch if any (roll number, date) already exists
    5. Insert all rows in a single commit; a constraint violation from a
       concurrent writer rolls the whole batch back
    """
    start_time = time.time()

    missing = [name for name, value in (("date", date), ("class_label", class_label)) if not value]
    if missing:
        raise MissingField(missing)
    entries = _validate_entries(records)

    attendance_date = normalize_date(date)
    day = iso_date(attendance_date)
    if not policy.is_known_class(class_label):
        raise InvalidChoice("class_label", class_label, policy.class_labels)
    for entry in entries:
        _check_status(entry["status"])

    roll_numbers = list(dict.fromkeys(entry["roll_number"] for entry in entries))
    if len(roll_numbers) != len(entries):
        counts = Counter(entry["roll_number"] for entry in entries)
        repeated = sorted(roll for roll, count in counts.items() if count > 1)
        raise DuplicateRecord("A roll number appears more than once in the batch",
                              {"conflicts": [{"roll_number": roll, "date": day} for roll in repeated]})

    students = find_by_roll_numbers(db, roll_numbers)
    if not students:
        raise NoStudentsFound(roll_numbers)

    names_by_roll = {student.roll_number: student.name for student in students}
    unresolved = [roll for roll in roll_numbers if roll not in names_by_roll]
    if unresolved:
        log_with_context(logger, "WARNING", "Batch rejected: {} unknown roll numbers".format(len(unresolved)),
                         context={"class_label": class_label},
                         extra_data={"missing_roll_numbers": unresolved})
        raise StudentsNotFound(unresolved)

    existing = _existing_conflicts(db, roll_numbers, attendance_date)
    if existing:
        conflicts = [{"roll_number": r.roll_number, "name": r.student_name, "date": day} for r in existing]
        log_with_context(logger, "WARNING", "Batch rejected: {} records already exist".format(len(conflicts)),
                         context={"class_label": class_label}, extra_data={"date": day})
        raise DuplicateRecord("Some attendance records already exist for the selected date",
                              {"conflicts": conflicts})

    now = datetime.now(timezone.utc)
    rows = [
        AttendanceRecord(
            id=str(uuid.uuid4()),
            student_id=entry["roll_number"],
            student_name=names_by_roll[entry["roll_number"]],
            roll_number=entry["roll_number"],
            date=attendance_date,
            status=entry["status"],
            class_label=class_label,
            created_at=now,
            updated_at=now
        )
        for entry in entries
    ]
    db.add_all(rows)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # Another writer got in between the check and the commit
        conflicts = [{"roll_number": r.roll_number, "date": day}
                     for r in _existing_conflicts(db, roll_numbers, attendance_date)]
        log_with_context(logger, "WARNING", "Batch write hit a uniqueness conflict",
                         context={"class_label": class_label},
                         extra_data={"date": day, "conflicts": len(conflicts)})
        raise duplicate_from_integrity(
            e, "Attendance records already exist for {}. Update the existing records instead.".format(day),
            conflicts or [{"date": day}])

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Bulk attendance recorded: {} rows for class {} on {}".format(
        len(rows), class_label, day),
        context={"class_label": class_label},
        extra_data={"duration_ms": round(duration_ms, 2), "rows": len(rows)})

    return AllOrNothingResult(
        written=len(rows),
        date=day,
        class_label=class_label,
        record_ids=[row.id for row in rows]
    )


def update_attendance_status(db: Session, record_id: str, status: Optional[str]) -> AttendanceRecord:
    """Change the status of an existing record; nothing else is editable."""
    if not status:
        raise MissingField("status")
    _check_status(status)

    record = db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()
    if not record:
        raise NotFound("AttendanceRecord", record_id)

    record.status = status
    db.commit()
    db.refresh(record)

    log_with_context(logger, "INFO", "Attendance status updated to {}".format(status),
                     context={"record_id": record_id, "roll_number": record.roll_number})
    return record


def list_attendance(db: Session, date: Optional[str], class_label: Optional[str]) -> List[AttendanceRecord]:
    """All records for one class on one day, ordered by student name."""
    missing = [name for name, value in (("date", date), ("class_label", class_label)) if not value]
    if missing:
        raise MissingField(missing)
    attendance_date = normalize_date(date)
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.date == attendance_date,
        AttendanceRecord.class_label == class_label
    ).order_by(AttendanceRecord.student_name).all()
