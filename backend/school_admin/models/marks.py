"""
MarksRecord model - one student's score in one subject for one exam.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Float, Index, UniqueConstraint, CheckConstraint
from school_admin.database import Base


class MarksRecord(Base):
    """
    SQLAlchemy model for the marks_records table.

    Unique per (student_name, subject, class_label, exam_type). Only
    score, subject and exam_type are editable after creation.
    """
    __tablename__ = "marks_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_name = Column(Text, nullable=False)
    subject = Column(Text, nullable=False)
    score = Column(Float, nullable=False,
                   doc="Score between 0 and 100 inclusive")
    class_label = Column(String(16), nullable=False)
    exam_type = Column(String(16), nullable=False,
                       doc="midterm | final | assignment | quiz")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("student_name", "subject", "class_label", "exam_type",
                         name="uq_marks_student_subject_class_exam"),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_marks_score_range"),
        Index("ix_marks_class_exam", "class_label", "exam_type"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "student_name": self.student_name,
            "subject": self.subject,
            "score": self.score,
            "class_label": self.class_label,
            "exam_type": self.exam_type,
        }

    def __repr__(self):
        return f"<MarksRecord(student='{self.student_name}', subject='{self.subject}', score={self.score})>"
