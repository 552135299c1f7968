"""
Report routes - attendance, marks and combined class reports, plus the
signed-in student's own record.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy, get_policy
from school_admin.database import get_db
from school_admin.dependencies import Principal, get_principal, require_admin
from school_admin.errors import NotFound
from school_admin.models.user_account import UserAccount
from school_admin.services import reports as report_service

router = APIRouter()

DATE_HELP = "YYYY-MM-DD or DD-MM-YYYY"


@router.get("/api/reports/attendance", dependencies=[Depends(require_admin)])
def attendance_report(class_label: Optional[str] = Query(None),
                      start_date: Optional[str] = Query(None, description=DATE_HELP),
                      end_date: Optional[str] = Query(None, description=DATE_HELP),
                      db: Session = Depends(get_db)):
    data = report_service.attendance_report(db, class_label, start_date, end_date)
    return {"success": True, "data": data}


@router.get("/api/reports/marks", dependencies=[Depends(require_admin)])
def marks_report(class_label: Optional[str] = Query(None),
                 exam_type: Optional[str] = Query(None),
                 db: Session = Depends(get_db),
                 policy: ReportPolicy = Depends(get_policy)):
    data = report_service.marks_report(db, policy, class_label, exam_type)
    return {"success": True, "data": data}


@router.get("/api/reports/combined", dependencies=[Depends(require_admin)])
def combined_report(class_label: Optional[str] = Query(None),
                    exam_type: Optional[str] = Query(None),
                    start_date: Optional[str] = Query(None, description=DATE_HELP),
                    end_date: Optional[str] = Query(None, description=DATE_HELP),
                    db: Session = Depends(get_db)):
    data = report_service.combined_report(db, class_label, exam_type, start_date, end_date)
    return {"success": True, "data": data}


@router.get("/api/me/record")
def my_record(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    """The caller's own profile, attendance and marks."""
    account = db.query(UserAccount).filter(UserAccount.id == principal.user_id).first()
    if not account:
        raise NotFound("UserAccount", principal.user_id)
    return {"success": True, "data": report_service.student_record(db, account)}
