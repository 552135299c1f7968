"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2024-03-01

Creates all database tables for the School Records Service:
- students: Academic identity with unique roll number and email
- attendance_records: One row per (roll number, date)
- marks_records: One row per (student name, subject, class, exam type)
- user_accounts: Login identities, linked to students by roll number/email

Also creates indexes for the report query patterns.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('roll_number', sa.String(64), nullable=False),
        sa.Column('class_label', sa.String(16), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('parent_name', sa.Text(), nullable=True),
        sa.Column('parent_contact', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('roll_number', name='uq_students_roll_number'),
        sa.UniqueConstraint('email', name='uq_students_email'),
    )
    op.create_index('ix_students_class_label', 'students', ['class_label'])

    # ── Attendance Table ──────────────────────────────────────
    op.create_table(
        'attendance_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('student_name', sa.Text(), nullable=False),
        sa.Column('roll_number', sa.String(64), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='present'),
        sa.Column('class_label', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('student_id', 'date', name='uq_attendance_student_date'),
        sa.CheckConstraint("status IN ('present', 'absent')", name='ck_attendance_status'),
    )
    op.create_index('ix_attendance_class_date', 'attendance_records', ['class_label', 'date'])

    # ── Marks Table ───────────────────────────────────────────
    op.create_table(
        'marks_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_name', sa.Text(), nullable=False),
        sa.Column('subject', sa.Text(), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('class_label', sa.String(16), nullable=False),
        sa.Column('exam_type', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('student_name', 'subject', 'class_label', 'exam_type',
                            name='uq_marks_student_subject_class_exam'),
        sa.CheckConstraint('score >= 0 AND score <= 100', name='ck_marks_score_range'),
    )
    op.create_index('ix_marks_class_exam', 'marks_records', ['class_label', 'exam_type'])

    # ── User Accounts Table ───────────────────────────────────
    op.create_table(
        'user_accounts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(150), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False, server_default='student'),
        sa.Column('roll_number', sa.String(64), nullable=True),
        sa.Column('class_label', sa.String(16), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('username', name='uq_user_accounts_username'),
        sa.UniqueConstraint('email', name='uq_user_accounts_email'),
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table('user_accounts')
    op.drop_index('ix_marks_class_exam', table_name='marks_records')
    op.drop_table('marks_records')
    op.drop_index('ix_attendance_class_date', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_index('ix_students_class_label', table_name='students')
    op.drop_table('students')
