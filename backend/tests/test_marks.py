import pytest

from school_admin.errors import DuplicateRecord, MissingField, OutOfRange, InvalidChoice, NotFound
from school_admin.models.marks import MarksRecord
from school_admin.services.batches import PerItemResult
from school_admin.services.marks import add_marks, add_marks_batch, update_marks, list_marks


@pytest.mark.parametrize("score", [101, -1, 100.5])
def test_scores_outside_range_are_rejected(db, policy, score):
    with pytest.raises(OutOfRange):
        add_marks(db, policy, "Alice", "Math", score, "3", "midterm")
    assert db.query(MarksRecord).count() == 0


@pytest.mark.parametrize("score", [0, 100])
def test_boundary_scores_are_accepted(db, policy, score):
    record = add_marks(db, policy, "Alice", "Math", score, "3", "midterm")
    assert record.score == score


def test_missing_fields_are_listed(db, policy):
    with pytest.raises(MissingField) as exc:
        add_marks(db, policy, "Alice", "", None, "3", None)
    assert exc.value.details["fields"] == ["subject", "score", "exam_type"]


def test_unknown_exam_type(db, policy):
    with pytest.raises(InvalidChoice):
        add_marks(db, policy, "Alice", "Math", 50, "3", "viva")


def test_duplicate_tuple_is_rejected(db, policy):
    add_marks(db, policy, "Alice", "Math", 50, "3", "midterm")

    with pytest.raises(DuplicateRecord) as exc:
        add_marks(db, policy, "Alice", "Math", 70, "3", "midterm")

    assert exc.value.details["constraint"] == "uq_marks_student_subject_class_exam"
    # a different exam type is a different record
    add_marks(db, policy, "Alice", "Math", 70, "3", "final")
    assert db.query(MarksRecord).count() == 2


def test_batch_failures_do_not_block_other_rows(db, policy):
    add_marks(db, policy, "Alice", "Math", 50, "3", "midterm")

    result = add_marks_batch(db, policy, "Math", "3", "midterm", [
        {"name": "Alice", "score": 60},
        {"name": "Bob", "score": 101},
        {"name": "Chitra", "score": 45},
        {"score": 80},
    ])

    assert isinstance(result, PerItemResult)
    assert [s.student_name for s in result.succeeded] == ["Chitra"]
    assert [(f.index, f.error) for f in result.failed] == [
        (0, "DuplicateRecord"), (1, "OutOfRange"), (3, "MissingField")
    ]
    scores = {r.student_name: r.score for r in db.query(MarksRecord).all()}
    assert scores == {"Alice": 50, "Chitra": 45}


def test_batch_duplicate_within_the_same_batch(db, policy):
    result = add_marks_batch(db, policy, "Math", "3", "quiz", [
        {"name": "Alice", "score": 60},
        {"name": "Alice", "score": 65},
    ])
    assert len(result.succeeded) == 1
    assert result.failed[0].index == 1
    assert db.query(MarksRecord).one().score == 60


def test_batch_requires_shared_fields(db, policy):
    with pytest.raises(MissingField):
        add_marks_batch(db, policy, "Math", "3", "midterm", [])


def test_update_only_touches_allowed_fields(db, policy):
    record = add_marks(db, policy, "Alice", "Math", 50, "3", "midterm")
    updated = update_marks(db, record.id, {"score": 75, "student_name": "Mallory", "class_label": "5"})
    assert updated.score == 75
    assert updated.student_name == "Alice"
    assert updated.class_label == "3"


def test_update_validates_new_score(db, policy):
    record = add_marks(db, policy, "Alice", "Math", 50, "3", "midterm")
    with pytest.raises(OutOfRange):
        update_marks(db, record.id, {"score": 120})


def test_update_requires_an_allowed_field(db, policy):
    record = add_marks(db, policy, "Alice", "Math", 50, "3", "midterm")
    with pytest.raises(MissingField):
        update_marks(db, record.id, {"student_name": "Mallory"})


def test_update_into_an_existing_key(db, policy):
    add_marks(db, policy, "Alice", "Math", 50, "3", "final")
    record = add_marks(db, policy, "Alice", "Math", 50, "3", "midterm")
    with pytest.raises(DuplicateRecord):
        update_marks(db, record.id, {"exam_type": "final"})


def test_update_missing_record(db):
    with pytest.raises(NotFound):
        update_marks(db, "nope", {"score": 10})


def test_list_marks_ordering(db, policy):
    add_marks(db, policy, "Bob", "Math", 50, "3", "midterm")
    add_marks(db, policy, "Alice", "Science", 50, "3", "midterm")
    add_marks(db, policy, "Alice", "Math", 50, "3", "midterm")
    rows = list_marks(db, "3", "midterm")
    assert [(r.student_name, r.subject) for r in rows] == [
        ("Alice", "Math"), ("Alice", "Science"), ("Bob", "Math")
    ]
