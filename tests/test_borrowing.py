from datetime import date, datetime

import pytest

from conftest import make_book
from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.models.models import Book, BorrowStatus
from unilibrary.services.borrowing import BorrowService, days_late, loan_days_until


def test_days_late_counts_whole_days_with_minimum_of_one():
    due = datetime(2024, 1, 10, 10, 0)
    assert days_late(due, datetime(2024, 1, 10, 10, 0)) == 0
    assert days_late(due, datetime(2024, 1, 10, 12, 0)) == 1
    assert days_late(due, datetime(2024, 1, 13, 10, 0)) == 3


def test_loan_days_until():
    assert loan_days_until(date(2024, 1, 15), today=date(2024, 1, 1)) == 14
    assert loan_days_until(date(2023, 12, 1), today=date(2024, 1, 1)) == 1
    assert loan_days_until(None, default_days=21) == 21


def test_borrow_and_return_single_copy(db, student, book):
    service = BorrowService(db)
    record = service.borrow_book(student.id, book.id, 14)
    db.refresh(book)
    assert record.status == BorrowStatus.BORROWED
    assert record.fine_amount == 0
    assert book.available_copies == 0
    assert book.total_borrows == 1

    with pytest.raises(InvalidStateError, match=f"No copies available for book: {book.id}"):
        service.borrow_book(student.id, book.id, 14)
    db.refresh(book)
    assert book.available_copies == 0
    assert book.total_borrows == 1

    service.return_book(record.id)
    db.refresh(book)
    assert book.available_copies == 1


def test_late_return_is_fined_and_overdue(db, student, book):
    service = BorrowService(db)
    record = service.borrow_book(student.id, book.id, 14, now=datetime(2023, 12, 27, 10, 0))
    assert record.due_date == datetime(2024, 1, 10, 10, 0)

    record = service.return_book(record.id, now=datetime(2024, 1, 13, 10, 0))
    assert record.status == BorrowStatus.OVERDUE
    assert record.fine_amount == pytest.approx(1.50)


def test_on_time_return_has_no_fine(db, student, book):
    service = BorrowService(db)
    record = service.borrow_book(student.id, book.id, 14, now=datetime(2024, 1, 1, 9, 0))
    record = service.return_book(record.id, now=datetime(2024, 1, 15, 9, 0))
    assert record.status == BorrowStatus.RETURNED
    assert record.fine_amount == 0


def test_return_is_idempotent(db, student, book):
    service = BorrowService(db)
    record = service.borrow_book(student.id, book.id, 14, now=datetime(2024, 1, 1, 9, 0))
    first = service.return_book(record.id, now=datetime(2024, 1, 20, 9, 0))
    snapshot = (first.return_date, first.status, first.fine_amount)

    second = service.return_book(record.id, now=datetime(2024, 2, 20, 9, 0))
    db.refresh(book)
    assert (second.return_date, second.status, second.fine_amount) == snapshot
    assert book.available_copies == 1


def test_return_never_pushes_availability_past_total(db, student):
    book = make_book(db, isbn="978-0000000009", copies=2)
    service = BorrowService(db)
    record = service.borrow_book(student.id, book.id, 14)
    # stock corrected by hand while the copy was out
    db.query(Book).filter(Book.id == book.id).update({Book.available_copies: 2})
    db.commit()

    service.return_book(record.id)
    db.refresh(book)
    assert book.available_copies == 2


def test_borrow_unknown_student_or_book(db, book):
    service = BorrowService(db)
    with pytest.raises(NotFoundError):
        service.borrow_book(999, book.id, 14)
    with pytest.raises(NotFoundError):
        service.borrow_book(1, 999, 14)


def test_manual_fine_and_payment(db, student, book):
    service = BorrowService(db)
    record = service.borrow_book(student.id, book.id, 14)

    record = service.apply_manual_fine(record.id, 5.0, "Torn cover")
    assert record.fine_amount == 5.0
    assert record.notes == "Torn cover"
    assert record.status == BorrowStatus.BORROWED

    record = service.mark_fine_paid(record.id)
    assert record.fine_amount == 0
    assert record.notes == "Torn cover | Fine paid"

    with pytest.raises(InvalidStateError):
        service.apply_manual_fine(record.id, -1.0)


def test_overdue_and_active_queries(db, student):
    first = make_book(db, isbn="978-0000000002")
    second = make_book(db, isbn="978-0000000003")
    service = BorrowService(db)
    late = service.borrow_book(student.id, first.id, 7, now=datetime(2024, 1, 1, 9, 0))
    service.borrow_book(student.id, second.id, 30, now=datetime(2024, 1, 1, 9, 0))

    overdue = service.overdue(now=datetime(2024, 1, 15, 9, 0))
    assert [r.id for r in overdue] == [late.id]
    assert len(service.active_by_student(student.id)) == 2
    assert service.active_for_book(first.id).id == late.id
