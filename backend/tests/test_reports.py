from datetime import datetime
from types import SimpleNamespace

import pytest

from school_admin.config import ReportPolicy
from school_admin.errors import NoStudentsInClass, NoDataFound, InvalidRange, NotFound
from school_admin.models.user_account import UserAccount
from school_admin.services.attendance import mark_attendance
from school_admin.services.marks import add_marks
from school_admin.services.reports import (
    round_half_up, summarize_attendance, summarize_marks, combine_by_student,
    attendance_report, marks_report, combined_report, student_record
)


def att(name, day, status):
    return SimpleNamespace(student_name=name, date=datetime(2024, 3, day), status=status)


def mark(name, subject, score):
    return SimpleNamespace(student_name=name, subject=subject, score=score)


# ── Reducers ─────────────────────────────────────────────────

def test_round_half_up():
    assert round_half_up(62.5) == 63
    assert round_half_up(74.4) == 74
    assert round_half_up(50.125, 2) == 50.13


def test_class_average_over_session_days():
    records = [att("X", 4, "present"), att("X", 5, "present"),
               att("Y", 4, "present"), att("Y", 5, "absent")]
    stats = summarize_attendance(records, total_students=2)
    assert stats.total_students == 2
    assert stats.class_session_days == 2
    assert stats.average_attendance == 75


def test_days_without_records_do_not_count():
    stats = summarize_attendance([att("X", 1, "present"), att("X", 9, "absent")], total_students=4)
    assert stats.class_session_days == 2
    assert stats.average_attendance == round_half_up(100 * 1 / 8)


def test_no_attendance_gives_zero_average():
    stats = summarize_attendance([], total_students=3)
    assert stats.class_session_days == 0
    assert stats.average_attendance == 0


def test_subject_statistics():
    stats = summarize_marks([mark("A", "Math", 40), mark("B", "Math", 50), mark("C", "Math", 60)],
                            ReportPolicy())["Math"]
    assert stats.count == 3
    assert stats.average == 50.00
    assert stats.max == 60
    assert stats.min == 40
    assert stats.pass_count == 2
    assert stats.fail_count == 1
    assert stats.pass_percentage == 67


def test_pass_mark_is_inclusive_and_configurable():
    records = [mark("A", "Art", 45), mark("B", "Art", 49)]
    assert summarize_marks(records, ReportPolicy())["Art"].pass_count == 2
    assert summarize_marks(records, ReportPolicy(pass_mark=50))["Art"].pass_count == 0


def test_combined_rows_cover_either_source():
    rows = combine_by_student(
        [att("Xavier", 4, "present"), att("Xavier", 5, "absent")],
        [mark("Yara", "Math", 88), mark("Xavier", "Math", 70)],
    )
    by_name = {row.student_name: row for row in rows}

    assert [row.student_name for row in rows] == ["Xavier", "Yara"]
    assert by_name["Xavier"].attendance.student_recorded_days == 2
    assert by_name["Xavier"].attendance.attendance_percentage == 50
    assert by_name["Xavier"].marks == {"Math": 70}
    assert by_name["Yara"].marks == {"Math": 88}
    assert by_name["Yara"].attendance.model_dump() == {
        "student_recorded_days": 0, "present_days": 0, "attendance_percentage": 0
    }


# ── Report builders ──────────────────────────────────────────

@pytest.fixture
def class_three(add_student):
    add_student("Xavier", "X1")
    add_student("Yara", "Y1")


def test_attendance_report(db, policy, class_three):
    mark_attendance(db, policy, "X1", "2024-03-04", "present")
    mark_attendance(db, policy, "Y1", "2024-03-04", "present")
    mark_attendance(db, policy, "X1", "05-03-2024", "present")
    mark_attendance(db, policy, "Y1", "05-03-2024", "absent")
    mark_attendance(db, policy, "Y1", "2024-03-09", "present")  # outside the range

    data = attendance_report(db, "3", "04-03-2024", "2024-03-05")

    assert data["statistics"] == {"total_students": 2, "class_session_days": 2, "average_attendance": 75}
    assert [(r["date"], r["student_name"]) for r in data["records"]] == [
        ("2024-03-04", "Xavier"), ("2024-03-04", "Yara"),
        ("2024-03-05", "Xavier"), ("2024-03-05", "Yara"),
    ]


def test_same_day_range_includes_that_day(db, policy, class_three):
    mark_attendance(db, policy, "X1", "2024-03-05", "present")
    data = attendance_report(db, "3", "2024-03-05", "05-03-2024")
    assert len(data["records"]) == 1


def test_reports_require_students_in_class(db, policy):
    with pytest.raises(NoStudentsInClass):
        attendance_report(db, "4", "2024-03-01", "2024-03-05")
    with pytest.raises(NoStudentsInClass):
        marks_report(db, policy, "4", "midterm")
    with pytest.raises(NoStudentsInClass):
        combined_report(db, "4", "midterm", "2024-03-01", "2024-03-05")


def test_attendance_report_rejects_reversed_range(db, class_three):
    with pytest.raises(InvalidRange):
        attendance_report(db, "3", "2024-03-05", "2024-03-04")


def test_marks_report_statistics_and_order(db, policy, class_three):
    add_marks(db, policy, "Yara", "Science", 80, "3", "midterm")
    add_marks(db, policy, "Yara", "Math", 40, "3", "midterm")
    add_marks(db, policy, "Xavier", "Math", 60, "3", "midterm")

    data = marks_report(db, policy, "3", "midterm")

    assert [(r["subject"], r["student_name"]) for r in data["records"]] == [
        ("Math", "Xavier"), ("Math", "Yara"), ("Science", "Yara")
    ]
    assert data["statistics"]["Math"]["average"] == 50.0
    assert data["statistics"]["Math"]["pass_percentage"] == 50
    assert data["statistics"]["Science"]["count"] == 1


def test_marks_report_without_marks_is_not_an_error(db, policy, class_three):
    data = marks_report(db, policy, "3", "final")
    assert data["records"] == []
    assert data["statistics"] == {}
    assert "No marks found" in data["message"]


def test_combined_report(db, policy, class_three):
    mark_attendance(db, policy, "X1", "2024-03-04", "present")
    mark_attendance(db, policy, "X1", "2024-03-05", "absent")
    add_marks(db, policy, "Yara", "Math", 91, "3", "midterm")

    data = combined_report(db, "3", "midterm", "04-03-2024", "05-03-2024")

    rows = {row["student_name"]: row for row in data["records"]}
    assert rows["Xavier"]["attendance"]["attendance_percentage"] == 50
    assert rows["Xavier"]["marks"] == {}
    assert rows["Yara"]["marks"] == {"Math": 91}
    assert rows["Yara"]["attendance"] == {
        "student_recorded_days": 0, "present_days": 0, "attendance_percentage": 0
    }
    assert data["summary"] == {
        "total_students": 2,
        "students_with_data": 2,
        "date_range": {"start": "04-03-2024", "end": "05-03-2024"},
        "exam_type": "midterm",
    }


def test_combined_report_with_no_data(db, class_three):
    with pytest.raises(NoDataFound):
        combined_report(db, "3", "midterm", "2024-03-01", "2024-03-05")


def test_report_keeps_cached_name_after_rename(db, policy, class_three):
    from school_admin.services.students import update_student, list_students

    mark_attendance(db, policy, "X1", "2024-03-04", "present")
    xavier = [s for s in list_students(db, "3") if s.roll_number == "X1"][0]
    update_student(db, policy, xavier.id, {"name": "Xavier Rao"})

    data = attendance_report(db, "3", "2024-03-04", "2024-03-04")
    assert data["records"][0]["student_name"] == "Xavier"


# ── Student self-view ────────────────────────────────────────

def _account(db, **fields):
    account = UserAccount(username=fields.pop("username", "user"), password_hash="x",
                          name="Someone", email=fields.pop("email", "someone@school.test"),
                          role="student", **fields)
    db.add(account)
    db.commit()
    return account


def test_student_record_linked_by_roll_number(db, policy, class_three):
    mark_attendance(db, policy, "Y1", "2024-03-04", "present")
    mark_attendance(db, policy, "Y1", "2024-03-05", "absent")
    add_marks(db, policy, "Yara", "Math", 77, "3", "quiz")
    account = _account(db, roll_number="Y1")

    data = student_record(db, account)

    assert data["student"]["roll_number"] == "Y1"
    assert data["attendance"]["summary"]["attendance_percentage"] == 50
    assert data["marks"] == {"quiz": {"Math": 77}}


def test_student_record_linked_by_email(db, class_three):
    account = _account(db, email="X1@school.test")
    assert student_record(db, account)["student"]["name"] == "Xavier"


def test_orphaned_account_has_no_record(db, class_three):
    account = _account(db, roll_number="NOPE", email="ghost@school.test")
    with pytest.raises(NotFound):
        student_record(db, account)
