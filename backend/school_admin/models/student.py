"""
Student model - the academic identity of a pupil.

Roll number and email are unique and are not changed after registration.
Attendance rows reference students by roll number; marks rows by name.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Index, UniqueConstraint
from school_admin.database import Base


class Student(Base):
    """
    SQLAlchemy model for the students table.

    Students are never hard-deleted by the reporting path; removal is an
    administrative operation outside this service.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    name = Column(Text, nullable=False,
                  doc="Student's full name")
    roll_number = Column(String(64), nullable=False,
                         doc="Human-assigned unique identifier, used as the attendance join key")
    class_label = Column(String(16), nullable=False,
                         doc="Grade the student belongs to")
    email = Column(String(255), nullable=False,
                   doc="Lower-cased contact email")
    phone = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    parent_name = Column(Text, nullable=True)
    parent_contact = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when the student was registered")

    __table_args__ = (
        UniqueConstraint("roll_number", name="uq_students_roll_number"),
        UniqueConstraint("email", name="uq_students_email"),
        Index("ix_students_class_label", "class_label"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "roll_number": self.roll_number,
            "class_label": self.class_label,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "parent_name": self.parent_name,
            "parent_contact": self.parent_contact,
        }

    def __repr__(self):
        return f"<Student(id={self.id}, roll_number='{self.roll_number}', class='{self.class_label}')>"
