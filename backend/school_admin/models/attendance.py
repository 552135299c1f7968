"""
AttendanceRecord model - one student's presence or absence on one day.

``student_id`` holds the roll number rather than ``students.id``; the
student's name is cached in ``student_name`` when the row is written.
Renaming a student does not rewrite the cached names of older rows.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Index, UniqueConstraint, CheckConstraint
from school_admin.database import Base


class AttendanceRecord(Base):
    """
    SQLAlchemy model for the attendance_records table.

    ``date`` is always midnight UTC (naive), so it can be used directly
    as an equality key. At most one row exists per (student_id, date).
    """
    __tablename__ = "attendance_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(64), nullable=False,
                        doc="Roll number of the student")
    student_name = Column(Text, nullable=False,
                          doc="Display name cached at write time")
    roll_number = Column(String(64), nullable=False)
    date = Column(DateTime, nullable=False,
                  doc="Calendar date at 00:00 UTC")
    status = Column(String(16), nullable=False, default="present",
                    doc="present | absent")
    class_label = Column(String(16), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),
        CheckConstraint("status IN ('present', 'absent')", name="ck_attendance_status"),
        Index("ix_attendance_class_date", "class_label", "date"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "roll_number": self.roll_number,
            "date": self.date.strftime("%Y-%m-%d"),
            "status": self.status,
            "class_label": self.class_label,
        }

    def __repr__(self):
        return f"<AttendanceRecord(student={self.student_id}, date={self.date:%Y-%m-%d}, status='{self.status}')>"
