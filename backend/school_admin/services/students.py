"""
Student roster operations: registration, lookups, profile edits and removal.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy
from school_admin.errors import MissingField, InvalidChoice, NotFound, duplicate_from_integrity
from school_admin.models.student import Student
from school_admin.logging_config import get_logger, log_with_context

logger = get_logger("db")

REQUIRED_FIELDS = ("name", "roll_number", "class_label", "email")
# roll_number and email stay fixed after registration
EDITABLE_FIELDS = ("name", "class_label", "phone", "address", "parent_name", "parent_contact")


def _clean(value):
    return value.strip() if isinstance(value, str) else value


def register_student(db: Session, policy: ReportPolicy, **fields) -> Student:
    """Create a student; roll number and email must be unused."""
    fields = {key: _clean(value) for key, value in fields.items()}
    missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
    if missing:
        raise MissingField(missing)
    if not policy.is_known_class(fields["class_label"]):
        raise InvalidChoice("class_label", fields["class_label"], policy.class_labels)

    student = Student(
        id=str(uuid.uuid4()),
        name=fields["name"],
        roll_number=fields["roll_number"],
        class_label=fields["class_label"],
        email=fields["email"].lower(),
        phone=fields.get("phone"),
        address=fields.get("address"),
        parent_name=fields.get("parent_name"),
        parent_contact=fields.get("parent_contact"),
        created_at=datetime.now(timezone.utc)
    )
    db.add(student)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise duplicate_from_integrity(
            e, "A student with this roll number or email already exists",
            {"roll_number": student.roll_number, "email": student.email})
    db.refresh(student)

    log_with_context(logger, "INFO", "Registered student {}".format(student.roll_number),
                     context={"student_id": student.id, "class_label": student.class_label})
    return student


def list_students(db: Session, class_label: Optional[str] = None) -> List[Student]:
    query = db.query(Student)
    if class_label:
        query = query.filter(Student.class_label == class_label)
    return query.order_by(Student.name).all()


def get_student(db: Session, student_id: str) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise NotFound("Student", student_id)
    return student


def update_student(db: Session, policy: ReportPolicy, student_id: str, changes: dict) -> Student:
    """
    Apply profile edits. Roll number and email are ignored; cached names on
    existing attendance rows are left as they were.
    """
    student = get_student(db, student_id)
    updates = {key: _clean(value) for key, value in changes.items()
               if key in EDITABLE_FIELDS and value is not None}
    if not updates:
        raise MissingField(list(EDITABLE_FIELDS), "No editable fields supplied")
    if "class_label" in updates and not policy.is_known_class(updates["class_label"]):
        raise InvalidChoice("class_label", updates["class_label"], policy.class_labels)

    for key, value in updates.items():
        setattr(student, key, value)
    db.commit()
    db.refresh(student)

    log_with_context(logger, "INFO", "Updated student {}".format(student.roll_number),
                     context={"student_id": student.id},
                     extra_data={"fields": sorted(updates)})
    return student


def delete_student(db: Session, student_id: str) -> None:
    """Remove a student from the roster. Attendance and marks rows keep their cached names."""
    student = get_student(db, student_id)
    roll_number = student.roll_number
    db.delete(student)
    db.commit()

    log_with_context(logger, "INFO", "Deleted student {}".format(roll_number),
                     context={"student_id": student_id})


def count_in_class(db: Session, class_label: str) -> int:
    return db.query(Student).filter(Student.class_label == class_label).count()


def find_by_roll_numbers(db: Session, roll_numbers: Iterable[str]) -> List[Student]:
    """Resolve a set of roll numbers with a single IN query."""
    roll_numbers = list(roll_numbers)
    if not roll_numbers:
        return []
    return db.query(Student).filter(Student.roll_number.in_(roll_numbers)).all()
