"""
Marks API routes - single and bulk score entry, corrections and listing.
Administrators only.

Scores are accepted untyped here and checked by the marks service, so a
bad score in one bulk entry fails that entry alone.
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy, get_policy
from school_admin.database import get_db
from school_admin.dependencies import require_admin
from school_admin.services import marks as marks_service

router = APIRouter(dependencies=[Depends(require_admin)])


class MarksCreate(BaseModel):
    student_name: Optional[str] = None
    subject: Optional[str] = None
    score: Any = None
    class_label: Optional[str] = None
    exam_type: Optional[str] = None


class BulkMarksEntry(BaseModel):
    name: Optional[str] = None
    score: Any = None


class BulkMarksRequest(BaseModel):
    subject: Optional[str] = None
    class_label: Optional[str] = None
    exam_type: Optional[str] = None
    records: Optional[List[BulkMarksEntry]] = None


class MarksUpdate(BaseModel):
    score: Any = None
    subject: Optional[str] = None
    exam_type: Optional[str] = None


@router.post("/api/marks", status_code=201)
def add_marks(request: MarksCreate, db: Session = Depends(get_db),
              policy: ReportPolicy = Depends(get_policy)):
    record = marks_service.add_marks(
        db, policy, request.student_name, request.subject, request.score,
        request.class_label, request.exam_type
    )
    return {"success": True, "data": record.to_dict()}


@router.post("/api/marks/bulk")
def add_marks_bulk(request: BulkMarksRequest, db: Session = Depends(get_db),
                   policy: ReportPolicy = Depends(get_policy)):
    """
    Insert every entry independently. The response lists which entries
    were written and which failed; ``success`` is true only when none failed.
    """
    records = [entry.model_dump() for entry in request.records] if request.records else request.records
    result = marks_service.add_marks_batch(
        db, policy, request.subject, request.class_label, request.exam_type, records
    )
    return {
        "success": result.all_succeeded,
        "message": "{} written, {} failed".format(len(result.succeeded), len(result.failed)),
        "data": result.model_dump()
    }


@router.patch("/api/marks/{record_id}")
def update_marks(record_id: str, request: MarksUpdate, db: Session = Depends(get_db)):
    record = marks_service.update_marks(db, record_id, request.model_dump(exclude_unset=True))
    return {"success": True, "data": record.to_dict()}


@router.get("/api/marks")
def list_marks(class_label: Optional[str] = Query(None),
               exam_type: Optional[str] = Query(None),
               db: Session = Depends(get_db)):
    records = marks_service.list_marks(db, class_label, exam_type)
    return {"success": True, "data": [r.to_dict() for r in records]}
