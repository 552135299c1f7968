"""
Result types for the two batch-write paths.

Attendance batches are all-or-nothing: either every row is written or
an error is raised and nothing is. Marks batches are per-item: each row
succeeds or fails on its own. The types are kept separate so a caller
cannot read one as the other.
"""

from typing import List, Optional

from pydantic import BaseModel


class AllOrNothingResult(BaseModel):
    """Outcome of a batch that was written in full."""
    written: int
    date: str
    class_label: str
    record_ids: List[str]


class ItemFailure(BaseModel):
    index: int
    student_name: Optional[str] = None
    error: str
    message: str


class ItemSuccess(BaseModel):
    index: int
    student_name: str
    record_id: str


class PerItemResult(BaseModel):
    """Outcome of a batch whose rows were inserted independently."""
    succeeded: List[ItemSuccess]
    failed: List[ItemFailure]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
