from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from unilibrary.api.deps import current_student
from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.schemas import schemas
from unilibrary.services.students import StudentService

router = APIRouter(prefix="/students", tags=["students"])


@router.get("/", response_model=List[schemas.StudentOut], dependencies=[Depends(require("students:read"))])
def list_students(q: Optional[str] = Query(None, description="search name, email or student ID"),
                  department: Optional[str] = None, skip: int = 0, limit: int = 50,
                  db: Session = Depends(get_db)):
    return StudentService(db).search(q=q, department=department, skip=skip, limit=limit)


@router.get("/me", response_model=schemas.StudentOut)
def read_me(principal: Principal = Depends(require("self:read")), db: Session = Depends(get_db)):
    return current_student(principal, db)


@router.get("/student-id/{student_id}", response_model=schemas.StudentOut,
            dependencies=[Depends(require("students:read"))])
def read_student_by_number(student_id: str, db: Session = Depends(get_db)):
    return StudentService(db).get_by_student_id(student_id)


@router.get("/rfid/{rfid_uid}", response_model=schemas.StudentOut, dependencies=[Depends(require("students:read"))])
def read_student_by_rfid(rfid_uid: str, db: Session = Depends(get_db)):
    return StudentService(db).get_by_rfid(rfid_uid)


@router.get("/{student_pk}", response_model=schemas.StudentOut, dependencies=[Depends(require("students:read"))])
def read_student(student_pk: int, db: Session = Depends(get_db)):
    return StudentService(db).get(student_pk)


@router.put("/{student_pk}", response_model=schemas.StudentOut, dependencies=[Depends(require("students:write"))])
def update_student(student_pk: int, student_upd: schemas.StudentUpdate, db: Session = Depends(get_db)):
    return StudentService(db).update(student_pk, student_upd.model_dump(exclude_unset=True))


@router.delete("/{student_pk}", response_model=schemas.StudentOut, dependencies=[Depends(require("students:write"))])
def deactivate_student(student_pk: int, db: Session = Depends(get_db)):
    return StudentService(db).deactivate(student_pk)
