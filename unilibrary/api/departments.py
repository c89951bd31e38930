from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.api.deps import ensure_student_access
from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.schemas import schemas
from unilibrary.services.departments import DepartmentService

router = APIRouter(tags=["departments"])


@router.post("/departments", response_model=schemas.DepartmentOut, dependencies=[Depends(require("students:write"))])
def create_department(payload: schemas.DepartmentIn, db: Session = Depends(get_db)):
    return DepartmentService(db).create(payload.name, payload.description)


@router.get("/departments", response_model=List[schemas.DepartmentOut],
            dependencies=[Depends(require("catalog:read"))])
def list_departments(db: Session = Depends(get_db)):
    return DepartmentService(db).all()


@router.get("/departments/{department_id}", response_model=schemas.DepartmentOut,
            dependencies=[Depends(require("catalog:read"))])
def read_department(department_id: int, db: Session = Depends(get_db)):
    return DepartmentService(db).get(department_id)


@router.put("/departments/{department_id}", response_model=schemas.DepartmentOut,
            dependencies=[Depends(require("students:write"))])
def update_department(department_id: int, payload: schemas.DepartmentUpdate, db: Session = Depends(get_db)):
    return DepartmentService(db).update(department_id, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.delete("/departments/{department_id}", dependencies=[Depends(require("students:write"))])
def delete_department(department_id: int, db: Session = Depends(get_db)):
    DepartmentService(db).delete(department_id)
    return {"ok": True}


@router.get("/students/{student_pk}/major-minor", response_model=schemas.MajorMinorOut)
def read_major_minor(student_pk: int, principal: Principal = Depends(require("self:read")),
                     db: Session = Depends(get_db)):
    ensure_student_access(principal, student_pk, db)
    return DepartmentService(db).major_minor(student_pk)


@router.put("/students/{student_pk}/major-minor", response_model=schemas.MajorMinorOut,
            dependencies=[Depends(require("students:write"))])
def assign_major_minor(student_pk: int, payload: schemas.MajorMinorIn, db: Session = Depends(get_db)):
    return DepartmentService(db).assign_major_minor(student_pk, payload.major_department_id,
                                                    payload.minor_department_id)
