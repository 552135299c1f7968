"""
UserAccount model - login identity, kept apart from the Student record.

An account is linked to a student only by a matching roll number or
email. Accounts whose student cannot be found are allowed.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, UniqueConstraint
from school_admin.database import Base


class UserAccount(Base):
    __tablename__ = "user_accounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(150), nullable=False)
    password_hash = Column(Text, nullable=False,
                           doc="Hash produced by the authentication service")
    name = Column(Text, nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="student",
                  doc="student | admin")
    roll_number = Column(String(64), nullable=True)
    class_label = Column(String(16), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("username", name="uq_user_accounts_username"),
        UniqueConstraint("email", name="uq_user_accounts_email"),
    )

    def __repr__(self):
        return f"<UserAccount(username='{self.username}', role='{self.role}')>"
