"""
Marks Ingestion - single, batched and corrective writes of exam scores.

At most one record exists per (student name, subject, class, exam type),
enforced by the store. Unlike attendance, the batch path is per-item:
every row is inserted inside its own SAVEPOINT, so one duplicate or bad
score is reported for that row and the others are still written.
"""

import time
import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy, EXAM_TYPES
from school_admin.errors import (
    SchoolAdminError, MissingField, OutOfRange, InvalidChoice, NotFound,
    duplicate_from_integrity
)
from school_admin.models.marks import MarksRecord
from school_admin.services.batches import PerItemResult, ItemSuccess, ItemFailure
from school_admin.logging_config import get_logger, log_with_context

logger = get_logger("ingest")

MIN_SCORE = 0
MAX_SCORE = 100
EDITABLE_FIELDS = ("score", "subject", "exam_type")
DUPLICATE_MESSAGE = "Marks already recorded for this student, subject, class and exam type"


def check_score(score) -> float:
    """Return ``score`` as a float, raising OutOfRange unless 0 <= score <= 100."""
    if score is None:
        raise MissingField("score")
    try:
        value = float(score)
    except (TypeError, ValueError):
        raise OutOfRange("score", score, MIN_SCORE, MAX_SCORE)
    if isinstance(score, bool) or not MIN_SCORE <= value <= MAX_SCORE:
        raise OutOfRange("score", score, MIN_SCORE, MAX_SCORE)
    return value


def _check_exam_type(exam_type: str):
    if exam_type not in EXAM_TYPES:
        raise InvalidChoice("exam_type", exam_type, EXAM_TYPES)


def _build_record(policy: ReportPolicy, student_name, subject, score, class_label, exam_type) -> MarksRecord:
    fields = (("student_name", student_name), ("subject", subject), ("score", score),
              ("class_label", class_label), ("exam_type", exam_type))
    # A score of 0 is a value, not an absence
    missing = [name for name, value in fields
               if value is None or (isinstance(value, str) and not value.strip())]
    if missing:
        raise MissingField(missing)

    value = check_score(score)
    _check_exam_type(exam_type)
    if not policy.is_known_class(class_label):
        raise InvalidChoice("class_label", class_label, policy.class_labels)

    return MarksRecord(
        id=str(uuid.uuid4()),
        student_name=student_name.strip(),
        subject=subject.strip(),
        score=value,
        class_label=class_label,
        exam_type=exam_type
    )


def add_marks(db: Session, policy: ReportPolicy, student_name: Optional[str], subject: Optional[str],
              score, class_label: Optional[str], exam_type: Optional[str]) -> MarksRecord:
    """Record a single score."""
    record = _build_record(policy, student_name, subject, score, class_label, exam_type)
    db.add(record)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise duplicate_from_integrity(e, DUPLICATE_MESSAGE, [{
            "student_name": record.student_name, "subject": record.subject,
            "class_label": record.class_label, "exam_type": record.exam_type
        }])
    db.refresh(record)

    log_with_context(logger, "INFO", "Marks recorded: {} {} = {}".format(
        record.student_name, record.subject, record.score),
        context={"class_label": record.class_label, "exam_type": record.exam_type})
    return record


def add_marks_batch(db: Session, policy: ReportPolicy, subject: Optional[str], class_label: Optional[str],
                    exam_type: Optional[str], records) -> PerItemResult:
    """
    Record scores for many students in one subject and exam.

    Each entry is ``{"name": ..., "score": ...}``. Failures are collected
    per entry with the error code and message; successful rows are
    committed together at the end.
    """
    start_time = time.time()

    missing = [name for name, value in (("subject", subject), ("class_label", class_label),
                                        ("exam_type", exam_type)) if not value]
    if not isinstance(records, list) or not records:
        missing.append("records")
    if missing:
        raise MissingField(missing)

    succeeded: List[ItemSuccess] = []
    failed: List[ItemFailure] = []

    for index, entry in enumerate(records):
        entry = entry or {}
        name = entry.get("name")
        try:
            record = _build_record(policy, name, subject, entry.get("score"), class_label, exam_type)
            with db.begin_nested():
                db.add(record)
            succeeded.append(ItemSuccess(index=index, student_name=record.student_name, record_id=record.id))
        except IntegrityError as e:
            error = duplicate_from_integrity(e, DUPLICATE_MESSAGE)
            failed.append(ItemFailure(index=index, student_name=name, error=error.code, message=error.message))
        except SchoolAdminError as e:
            failed.append(ItemFailure(index=index, student_name=name, error=e.code, message=e.message))

    db.commit()

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Bulk marks processed: {} written, {} failed".format(
        len(succeeded), len(failed)),
        context={"class_label": class_label, "exam_type": exam_type},
        extra_data={"duration_ms": round(duration_ms, 2), "subject": subject})

    return PerItemResult(succeeded=succeeded, failed=failed)


def update_marks(db: Session, record_id: str, changes: dict) -> MarksRecord:
    """Correct the score, subject or exam type of an existing record."""
    updates = {key: value for key, value in changes.items()
               if key in EDITABLE_FIELDS and value is not None}
    if not updates:
        raise MissingField(list(EDITABLE_FIELDS), "No valid fields to update")

    record = db.query(MarksRecord).filter(MarksRecord.id == record_id).first()
    if not record:
        raise NotFound("MarksRecord", record_id)

    if "score" in updates:
        updates["score"] = check_score(updates["score"])
    if "exam_type" in updates:
        _check_exam_type(updates["exam_type"])
    if "subject" in updates:
        updates["subject"] = str(updates["subject"]).strip()
        if not updates["subject"]:
            raise MissingField("subject")

    for key, value in updates.items():
        setattr(record, key, value)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise duplicate_from_integrity(e, DUPLICATE_MESSAGE, [{
            "student_name": record.student_name, "subject": updates.get("subject", record.subject),
            "class_label": record.class_label, "exam_type": updates.get("exam_type", record.exam_type)
        }])
    db.refresh(record)

    log_with_context(logger, "INFO", "Marks record updated",
                     context={"record_id": record_id},
                     extra_data={"fields": sorted(updates)})
    return record


def list_marks(db: Session, class_label: Optional[str], exam_type: Optional[str]) -> List[MarksRecord]:
    missing = [name for name, value in (("class_label", class_label), ("exam_type", exam_type)) if not value]
    if missing:
        raise MissingField(missing)
    return db.query(MarksRecord).filter(
        MarksRecord.class_label == class_label,
        MarksRecord.exam_type == exam_type
    ).order_by(MarksRecord.student_name, MarksRecord.subject).all()
