"""
Attendance API routes - single marks, bulk marks, status corrections
and per-day listing. Administrators only.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy, get_policy
from school_admin.database import get_db
from school_admin.dependencies import require_admin
from school_admin.services import attendance as attendance_service

router = APIRouter(dependencies=[Depends(require_admin)])


# ── Pydantic schemas ─────────────────────────────────────────
# Fields are optional so that absent values surface as MissingField
# rather than a generic validation error.

class AttendanceCreate(BaseModel):
    roll_number: Optional[str] = None
    date: Optional[str] = Field(None, description="YYYY-MM-DD or DD-MM-YYYY")
    status: Optional[str] = "present"
    student_name: Optional[str] = None
    class_label: Optional[str] = None


class BulkAttendanceEntry(BaseModel):
    roll_number: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None


class BulkAttendanceRequest(BaseModel):
    date: Optional[str] = None
    class_label: Optional[str] = None
    records: Optional[List[BulkAttendanceEntry]] = None


class AttendanceStatusUpdate(BaseModel):
    status: Optional[str] = None


@router.post("/api/attendance", status_code=201)
def mark_attendance(request: AttendanceCreate, db: Session = Depends(get_db),
                    policy: ReportPolicy = Depends(get_policy)):
    record = attendance_service.mark_attendance(
        db, policy, request.roll_number, request.date, request.status,
        request.student_name, request.class_label
    )
    return {"success": True, "data": record.to_dict()}


@router.post("/api/attendance/bulk")
def mark_attendance_bulk(request: BulkAttendanceRequest, db: Session = Depends(get_db),
                         policy: ReportPolicy = Depends(get_policy)):
    records = [entry.model_dump() for entry in request.records] if request.records else request.records
    result = attendance_service.mark_attendance_batch(db, policy, request.date, request.class_label, records)
    return {"success": True, "message": "Bulk attendance recorded successfully", "data": result.model_dump()}


@router.patch("/api/attendance/{record_id}")
def update_attendance(record_id: str, request: AttendanceStatusUpdate, db: Session = Depends(get_db)):
    record = attendance_service.update_attendance_status(db, record_id, request.status)
    return {"success": True, "data": record.to_dict()}


@router.get("/api/attendance")
def list_attendance(date: Optional[str] = Query(None, description="YYYY-MM-DD or DD-MM-YYYY"),
                    class_label: Optional[str] = Query(None),
                    db: Session = Depends(get_db)):
    records = attendance_service.list_attendance(db, date, class_label)
    return {"success": True, "data": [r.to_dict() for r in records]}
