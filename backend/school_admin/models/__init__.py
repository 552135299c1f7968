from school_admin.models.student import Student
from school_admin.models.attendance import AttendanceRecord
from school_admin.models.marks import MarksRecord
from school_admin.models.user_account import UserAccount

__all__ = ["Student", "AttendanceRecord", "MarksRecord", "UserAccount"]
