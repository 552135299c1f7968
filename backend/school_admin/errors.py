"""
Error taxonomy for the school records service.

Services raise these; ``main.py`` renders them as
``{"success": false, "error": <code>, "message": ..., "details": ...}``
with the class's HTTP status.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError


class SchoolAdminError(Exception):
    """Base class for every error reported to API callers."""
    status_code = 400

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class MissingField(SchoolAdminError):
    def __init__(self, fields, message: Optional[str] = None, details: Optional[dict] = None):
        fields = [fields] if isinstance(fields, str) else list(fields)
        super().__init__(
            message or "Missing required field(s): {}".format(", ".join(fields)),
            {"fields": fields, **(details or {})}
        )


class InvalidDateFormat(SchoolAdminError):
    def __init__(self, value):
        super().__init__(
            "Invalid date format. Please use either DD-MM-YYYY or YYYY-MM-DD format",
            {"received": value}
        )


class InvalidDateValue(SchoolAdminError):
    def __init__(self, value):
        super().__init__("Invalid date value: {} is not a calendar date".format(value),
                         {"received": value})


class InvalidRange(SchoolAdminError):
    def __init__(self, start, end):
        super().__init__("End date must not be before start date",
                         {"start_date": start, "end_date": end})


class OutOfRange(SchoolAdminError):
    def __init__(self, field: str, value, low, high):
        super().__init__(
            "{} must be between {} and {} (got {})".format(field, low, high, value),
            {"field": field, "value": value, "min": low, "max": high}
        )


class InvalidChoice(SchoolAdminError):
    def __init__(self, field: str, value, choices):
        super().__init__(
            "Invalid {}: {!r}".format(field, value),
            {"field": field, "value": value, "allowed": list(choices)}
        )


class DuplicateRecord(SchoolAdminError):
    status_code = 409


class NotFound(SchoolAdminError):
    status_code = 404

    def __init__(self, entity: str, identifier=None, message: Optional[str] = None):
        super().__init__(message or "{} not found".format(entity),
                         {"entity": entity, "id": identifier} if identifier is not None else {"entity": entity})


class NoStudentsInClass(SchoolAdminError):
    status_code = 404

    def __init__(self, class_label: str):
        super().__init__("No students found in class {}".format(class_label),
                         {"class_label": class_label})


class NoStudentsFound(SchoolAdminError):
    def __init__(self, roll_numbers):
        super().__init__("No students found for the provided roll numbers",
                         {"roll_numbers": list(roll_numbers)})


class StudentsNotFound(SchoolAdminError):
    def __init__(self, missing):
        super().__init__("Some students not found",
                         {"missing_roll_numbers": list(missing)})


class NoDataFound(SchoolAdminError):
    status_code = 404

    def __init__(self, class_label: str):
        super().__init__("No data found for class {}".format(class_label),
                         {"class_label": class_label})


class Unauthenticated(SchoolAdminError):
    status_code = 401


class Forbidden(SchoolAdminError):
    status_code = 403


class StoreUnavailable(SchoolAdminError):
    status_code = 503


# ──────────────────────────────────────────────────────────────
# Store constraint translation
# ──────────────────────────────────────────────────────────────
# Named constraints and the columns SQLite reports for them
# ("UNIQUE constraint failed: students.email").
CONSTRAINT_COLUMNS = {
    "uq_students_email": ("students.email",),
    "uq_students_roll_number": ("students.roll_number",),
    "uq_attendance_student_date": ("attendance_records.student_id", "attendance_records.date"),
    "uq_marks_student_subject_class_exam": (
        "marks_records.student_name", "marks_records.subject",
        "marks_records.class_label", "marks_records.exam_type",
    ),
    "uq_user_accounts_username": ("user_accounts.username",),
    "uq_user_accounts_email": ("user_accounts.email",),
}


def violated_constraint(exc: IntegrityError) -> Optional[str]:
    """Name the uniqueness constraint behind an IntegrityError, if recognisable."""
    text = str(exc.orig)
    for name, columns in CONSTRAINT_COLUMNS.items():
        if name in text or all(column in text for column in columns):
            return name
    return None


def duplicate_from_integrity(exc: IntegrityError, message: str, conflicts=None) -> SchoolAdminError:
    """
    Translate a store constraint violation into DuplicateRecord.

    Violations of anything other than a known uniqueness constraint
    (NOT NULL, foreign keys) are reported as StoreUnavailable instead,
    without the raw driver text.
    """
    constraint = violated_constraint(exc)
    if constraint is None:
        return StoreUnavailable("The record could not be written",
                                {"reason": "constraint_violation"})
    details = {"constraint": constraint}
    if conflicts:
        details["conflicts"] = conflicts
    return DuplicateRecord(message, details)
