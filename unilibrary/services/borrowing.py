"""Borrow/return ledger.

Book availability is only ever changed from here. Borrowing takes a copy
with a single conditional UPDATE (``available_copies > 0`` in the WHERE
clause) so two requests racing for the last copy cannot both win; returning
puts the copy back clamped to ``total_copies``.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from unilibrary.core import clock
from unilibrary.core.config import settings
from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.models.models import Book, BorrowRecord, BorrowStatus, Student

logger = logging.getLogger(__name__)


def loan_days_until(due_date: Optional[date], today: Optional[date] = None,
                    default_days: Optional[int] = None) -> int:
    """Day span from today to a requested due date, floored at one day."""
    if due_date is None:
        days = settings.default_loan_days if default_days is None else default_days
    else:
        today = today or clock.now().date()
        days = (due_date - today).days
    return max(1, days)


def days_late(due_date: datetime, returned_at: datetime) -> int:
    """Whole days between due date and return, at least 1 once late."""
    if returned_at <= due_date:
        return 0
    return max(1, (returned_at - due_date).days)


def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing} | {note}" if existing else note


class BorrowService:
    def __init__(self, db: Session, fine_per_day: Optional[float] = None) -> None:
        self.db = db
        self.fine_per_day = settings.fine_per_day if fine_per_day is None else fine_per_day

    def get(self, record_id: int) -> BorrowRecord:
        record = self.db.query(BorrowRecord).filter(BorrowRecord.id == record_id).first()
        if not record:
            raise NotFoundError(f"BorrowRecord not found: {record_id}")
        return record

    def borrow_book(self, student_id: int, book_id: int, loan_days: int,
                    now: Optional[datetime] = None, processed_by: Optional[str] = None) -> BorrowRecord:
        now = now or clock.now()
        student = self.db.query(Student).filter(Student.id == student_id).first()
        if not student:
            raise NotFoundError("Student not found")
        book = self.db.query(Book).filter(Book.id == book_id).first()
        if not book:
            raise NotFoundError("Book not found")

        taken = (
            self.db.query(Book)
            .filter(Book.id == book.id, Book.available_copies > 0)
            .update(
                {
                    Book.available_copies: Book.available_copies - 1,
                    Book.total_borrows: Book.total_borrows + 1,
                },
                synchronize_session=False,
            )
        )
        if taken != 1:
            self.db.rollback()
            raise InvalidStateError(f"No copies available for book: {book.id}")

        record = BorrowRecord(
            book_id=book.id,
            student_id=student.id,
            borrow_date=now,
            due_date=now + timedelta(days=max(1, loan_days)),
            fine_amount=0.0,
            status=BorrowStatus.BORROWED,
            processed_by=processed_by,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        self.db.refresh(book)
        logger.info(f"Student {student.student_id} borrowed book {book.id} record {record.id} "
                    f"due {record.due_date:%Y-%m-%d}")
        return record

    def return_book(self, record_id: int, now: Optional[datetime] = None,
                    processed_by: Optional[str] = None) -> BorrowRecord:
        record = self.get(record_id)
        if record.return_date is not None:
            return record

        now = now or clock.now()
        record.return_date = now
        late = days_late(record.due_date, now)
        if late:
            record.fine_amount = late * self.fine_per_day
            record.status = BorrowStatus.OVERDUE
        else:
            record.fine_amount = 0.0
            record.status = BorrowStatus.RETURNED
        if processed_by:
            record.processed_by = processed_by

        self.db.query(Book).filter(Book.id == record.book_id).update(
            {
                Book.available_copies: case(
                    (Book.available_copies < Book.total_copies, Book.available_copies + 1),
                    else_=Book.total_copies,
                )
            },
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(record)
        self.db.refresh(record.book)
        logger.info(f"Borrow record {record.id} returned status={record.status.value} "
                    f"fine={record.fine_amount:.2f}")
        return record

    def apply_manual_fine(self, record_id: int, amount: float, reason: Optional[str] = None) -> BorrowRecord:
        if amount < 0:
            raise InvalidStateError("Fine amount must be zero or greater")
        record = self.get(record_id)
        record.fine_amount = amount
        if reason and reason.strip():
            record.notes = _append_note(record.notes, reason.strip())
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Manual fine {amount:.2f} applied to borrow record {record.id}")
        return record

    def mark_fine_paid(self, record_id: int) -> BorrowRecord:
        record = self.get(record_id)
        record.fine_amount = 0.0
        record.notes = _append_note(record.notes, "Fine paid")
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Fine paid on borrow record {record.id}")
        return record

    def list_by_student(self, student_id: int, skip: int = 0, limit: int = 50) -> List[BorrowRecord]:
        return (
            self.db.query(BorrowRecord)
            .filter(BorrowRecord.student_id == student_id)
            .order_by(BorrowRecord.borrow_date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def active_by_student(self, student_id: int) -> List[BorrowRecord]:
        return (
            self.db.query(BorrowRecord)
            .filter(BorrowRecord.student_id == student_id, BorrowRecord.return_date.is_(None))
            .order_by(BorrowRecord.due_date)
            .all()
        )

    def overdue(self, now: Optional[datetime] = None, skip: int = 0, limit: int = 50) -> List[BorrowRecord]:
        now = now or clock.now()
        return (
            self.db.query(BorrowRecord)
            .filter(BorrowRecord.due_date < now, BorrowRecord.return_date.is_(None))
            .order_by(BorrowRecord.due_date)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def with_fines(self) -> List[BorrowRecord]:
        return (
            self.db.query(BorrowRecord)
            .filter(BorrowRecord.fine_amount > 0)
            .order_by(BorrowRecord.fine_amount.desc())
            .all()
        )

    def active_for_book(self, book_id: int) -> Optional[BorrowRecord]:
        return (
            self.db.query(BorrowRecord)
            .filter(BorrowRecord.book_id == book_id, BorrowRecord.return_date.is_(None))
            .order_by(BorrowRecord.borrow_date)
            .first()
        )
