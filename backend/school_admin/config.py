"""
Runtime configuration read from the environment.

Reporting rules that used to be literals (the pass mark and the set of
class labels) live in ``ReportPolicy`` so routes receive them through a
FastAPI dependency and tests can swap them out.
"""

import os
from typing import Tuple

from pydantic import BaseModel, ConfigDict, field_validator

APP_ENV = os.getenv("APP_ENV", "production").lower()

DEFAULT_PASS_MARK = 45.0
DEFAULT_CLASS_LABELS = ("1", "2", "3", "4", "5")

ATTENDANCE_STATUSES = ("present", "absent")
EXAM_TYPES = ("midterm", "final", "assignment", "quiz")
ROLES = ("student", "admin")


def is_development() -> bool:
    return APP_ENV in ("dev", "development")


class ReportPolicy(BaseModel):
    """Grading and roster rules shared by ingestion and reporting."""
    model_config = ConfigDict(frozen=True)

    pass_mark: float = DEFAULT_PASS_MARK
    class_labels: Tuple[str, ...] = DEFAULT_CLASS_LABELS

    @field_validator("class_labels", mode="before")
    @classmethod
    def _split_labels(cls, v):
        # "1, 2,3" -> ("1", "2", "3")
        if isinstance(v, str):
            return tuple(s.strip() for s in v.split(",") if s.strip())
        return v

    def is_known_class(self, class_label: str) -> bool:
        return class_label in self.class_labels

    def passed(self, score: float) -> bool:
        return score >= self.pass_mark


def load_policy() -> ReportPolicy:
    """Build the policy from PASS_MARK / CLASS_LABELS, falling back to defaults."""
    values = {}
    if os.getenv("PASS_MARK"):
        values["pass_mark"] = float(os.environ["PASS_MARK"])
    if os.getenv("CLASS_LABELS"):
        values["class_labels"] = os.environ["CLASS_LABELS"]
    return ReportPolicy(**values)


_policy = load_policy()


def get_policy() -> ReportPolicy:
    """FastAPI dependency returning the process-wide policy."""
    return _policy
