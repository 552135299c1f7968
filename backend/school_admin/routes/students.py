"""
Student roster routes (administrators only).
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from school_admin.config import ReportPolicy, get_policy
from school_admin.database import get_db
from school_admin.dependencies import require_admin
from school_admin.services import students as student_service

router = APIRouter(dependencies=[Depends(require_admin)])


class StudentCreate(BaseModel):
    name: Optional[str] = None
    roll_number: Optional[str] = None
    class_label: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None


class StudentUpdate(BaseModel):
    name: Optional[str] = None
    class_label: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None


@router.post("/api/students", status_code=201)
def register_student(request: StudentCreate, db: Session = Depends(get_db),
                     policy: ReportPolicy = Depends(get_policy)):
    student = student_service.register_student(db, policy, **request.model_dump())
    return {"success": True, "message": "Student registration successful", "data": student.to_dict()}


@router.get("/api/students")
def list_students(class_label: Optional[str] = Query(None, description="Only students in this class"),
                  db: Session = Depends(get_db)):
    students = student_service.list_students(db, class_label)
    return {"success": True, "data": [s.to_dict() for s in students]}


@router.get("/api/students/{student_id}")
def get_student(student_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": student_service.get_student(db, student_id).to_dict()}


@router.patch("/api/students/{student_id}")
def update_student(student_id: str, request: StudentUpdate, db: Session = Depends(get_db),
                   policy: ReportPolicy = Depends(get_policy)):
    student = student_service.update_student(db, policy, student_id, request.model_dump(exclude_unset=True))
    return {"success": True, "data": student.to_dict()}


@router.delete("/api/students/{student_id}")
def delete_student(student_id: str, db: Session = Depends(get_db)):
    student_service.delete_student(db, student_id)
    return {"success": True, "message": "Student deleted successfully"}
