from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.api.deps import ensure_student_access
from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.schemas import schemas
from unilibrary.services.borrowing import BorrowService, loan_days_until

router = APIRouter(prefix="/borrow-records", tags=["borrow-records"])


@router.post("/borrow", response_model=schemas.BorrowRecordOut)
def borrow_book(payload: schemas.BorrowRequest, principal: Principal = Depends(require("borrows:manage")),
                db: Session = Depends(get_db)):
    return BorrowService(db).borrow_book(payload.student_id, payload.book_id,
                                         loan_days_until(payload.due_date),
                                         processed_by=principal.subject)


@router.put("/{record_id}/return", response_model=schemas.BorrowRecordOut)
def return_book(record_id: int, principal: Principal = Depends(require("borrows:manage")),
                db: Session = Depends(get_db)):
    return BorrowService(db).return_book(record_id, processed_by=principal.subject)


@router.get("/overdue", response_model=List[schemas.BorrowRecordOut], dependencies=[Depends(require("borrows:manage"))])
def overdue_records(skip: int = 0, limit: int = 50, db: Session = Depends(get_db)):
    return BorrowService(db).overdue(skip=skip, limit=limit)


@router.get("/fines", response_model=List[schemas.BorrowRecordOut], dependencies=[Depends(require("fines:manage"))])
def records_with_fines(db: Session = Depends(get_db)):
    return BorrowService(db).with_fines()


@router.get("/student/{student_pk}", response_model=List[schemas.BorrowRecordOut])
def records_for_student(student_pk: int, skip: int = 0, limit: int = 50,
                        principal: Principal = Depends(require("self:read")), db: Session = Depends(get_db)):
    ensure_student_access(principal, student_pk, db)
    return BorrowService(db).list_by_student(student_pk, skip=skip, limit=limit)


@router.get("/student/{student_pk}/active", response_model=List[schemas.BorrowRecordOut])
def active_records_for_student(student_pk: int, principal: Principal = Depends(require("self:read")),
                               db: Session = Depends(get_db)):
    ensure_student_access(principal, student_pk, db)
    return BorrowService(db).active_by_student(student_pk)


@router.get("/book/{book_id}/active", response_model=Optional[schemas.BorrowRecordOut],
            dependencies=[Depends(require("borrows:manage"))])
def active_record_for_book(book_id: int, db: Session = Depends(get_db)):
    return BorrowService(db).active_for_book(book_id)


@router.get("/{record_id}", response_model=schemas.BorrowRecordOut)
def read_record(record_id: int, principal: Principal = Depends(require("self:read")), db: Session = Depends(get_db)):
    record = BorrowService(db).get(record_id)
    ensure_student_access(principal, record.student_id, db)
    return record


@router.put("/{record_id}/fine", response_model=schemas.BorrowRecordOut, dependencies=[Depends(require("fines:manage"))])
def apply_manual_fine(record_id: int, payload: schemas.ManualFineRequest, db: Session = Depends(get_db)):
    return BorrowService(db).apply_manual_fine(record_id, payload.fine_amount, payload.reason)


@router.put("/{record_id}/fine/paid", response_model=schemas.BorrowRecordOut,
            dependencies=[Depends(require("fines:manage"))])
def mark_fine_paid(record_id: int, db: Session = Depends(get_db)):
    return BorrowService(db).mark_fine_paid(record_id)
