import csv
import io
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from unilibrary.core import clock
from unilibrary.models.models import Book, BorrowRecord, BorrowStatus, LibraryEntry, Student
from unilibrary.services.students import StudentService

logger = logging.getLogger(__name__)

_PERIOD_DAYS = {"weekly": 7, "week": 7, "monthly": 30, "month": 30, "yearly": 365, "year": 365}


def period_window(period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Start/end of a reporting period ending now. Unknown periods fall back to 30 days."""
    now = now or clock.now()
    key = (period or "").strip().lower()
    if key in ("daily", "today", "day"):
        return datetime.combine(now.date(), datetime.min.time()), now
    return now - timedelta(days=_PERIOD_DAYS.get(key, 30)), now


def _average_minutes(entries: List[LibraryEntry]) -> int:
    durations = [(e.exit_time - e.entry_time).total_seconds() // 60 for e in entries if e.exit_time]
    if not durations:
        return 0
    return round(sum(durations) / len(durations))


def _is_overdue(record: BorrowRecord, now: datetime) -> bool:
    if record.status == BorrowStatus.OVERDUE:
        return True
    return record.return_date is None and record.due_date < now


class ReportService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _entries(self, start: datetime, end: datetime, student_pk: Optional[int] = None) -> List[LibraryEntry]:
        query = (
            self.db.query(LibraryEntry)
            .options(joinedload(LibraryEntry.student))
            .filter(LibraryEntry.entry_time >= start, LibraryEntry.entry_time <= end)
        )
        if student_pk is not None:
            query = query.filter(LibraryEntry.student_id == student_pk)
        return query.order_by(LibraryEntry.entry_time).all()

    def _borrows(self, start: datetime, end: datetime, student_pk: Optional[int] = None) -> List[BorrowRecord]:
        query = (
            self.db.query(BorrowRecord)
            .options(joinedload(BorrowRecord.book))
            .filter(BorrowRecord.borrow_date >= start, BorrowRecord.borrow_date <= end)
        )
        if student_pk is not None:
            query = query.filter(BorrowRecord.student_id == student_pk)
        return query.order_by(BorrowRecord.borrow_date).all()

    def librarian_summary(self, period: str, now: Optional[datetime] = None) -> dict:
        start, end = period_window(period, now)
        entries = self._entries(start, end)
        borrows = self._borrows(start, end)

        visits_by_student = Counter(e.student_id for e in entries)
        top_visitors = []
        for student_pk, visits in visits_by_student.most_common(10):
            student = self.db.query(Student).filter(Student.id == student_pk).first()
            top_visitors.append({
                "student_id": student.student_id,
                "name": student.full_name,
                "department": student.department.strip().upper(),
                "visits": visits,
            })

        books = {b.book_id: b.book for b in borrows}
        top_books = [
            {"title": books[book_id].title, "author": books[book_id].author,
             "category": books[book_id].category, "borrow_count": count}
            for book_id, count in Counter(b.book_id for b in borrows).most_common(10)
        ]

        report = {
            "period": period,
            "start_date": start,
            "end_date": end,
            "total_students": self.db.query(func.count(Student.id)).scalar(),
            "total_visits": len(entries),
            "unique_visitors": len(visits_by_student),
            "total_borrows": len(borrows),
            "total_returns": sum(1 for b in borrows if b.return_date is not None),
            "overdue_books": sum(1 for b in borrows if _is_overdue(b, end)),
            "avg_visit_duration_minutes": _average_minutes(entries),
            "visits_by_day_of_week": dict(Counter(e.entry_time.strftime("%A").upper() for e in entries)),
            "visits_by_hour": dict(sorted(Counter(f"{e.entry_time.hour}:00" for e in entries).items())),
            "visits_by_department": dict(Counter(
                e.student.department.strip().upper() for e in entries if e.student and e.student.department)),
            "daily_visit_trend": dict(sorted(Counter(e.entry_time.date().isoformat() for e in entries).items())),
            "top_visitors": top_visitors,
            "top_borrowed_books": top_books,
        }
        logger.info(f"Librarian report generated period={period} visits={len(entries)} borrows={len(borrows)}")
        return report

    def student_summary(self, student_pk: int, period: str, now: Optional[datetime] = None) -> dict:
        student = StudentService(self.db).get(student_pk)
        start, end = period_window(period, now)
        entries = self._entries(start, end, student_pk=student.id)
        borrows = self._borrows(start, end, student_pk=student.id)
        return {
            "period": period,
            "student_id": student.student_id,
            "name": student.full_name,
            "department": student.department.strip().upper(),
            "total_visits": len(entries),
            "avg_visit_duration_minutes": _average_minutes(entries),
            "visits_by_day_of_week": dict(Counter(e.entry_time.strftime("%A").upper() for e in entries)),
            "daily_visit_trend": dict(sorted(Counter(e.entry_time.date().isoformat() for e in entries).items())),
            "total_borrows": len(borrows),
            "total_returns": sum(1 for b in borrows if b.return_date is not None),
            "overdue_count": sum(1 for b in borrows if _is_overdue(b, end)),
            "total_fines": sum(b.fine_amount or 0.0 for b in borrows),
            "borrow_history": [
                {
                    "title": b.book.title,
                    "author": b.book.author,
                    "borrow_date": b.borrow_date,
                    "due_date": b.due_date,
                    "return_date": b.return_date,
                    "status": b.status.value,
                    "fine": b.fine_amount,
                }
                for b in borrows
            ],
        }

    def top_borrowed_csv(self, limit: int = 50) -> str:
        rows = (
            self.db.query(Book.title, Book.author, func.count(BorrowRecord.id).label("borrow_count"))
            .join(BorrowRecord, BorrowRecord.book_id == Book.id)
            .group_by(Book.id)
            .order_by(func.count(BorrowRecord.id).desc(), Book.title)
            .limit(limit)
            .all()
        )
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(["title", "author", "borrow_count"])
        for title, author, count in rows:
            writer.writerow([title, author, count])
        return output.getvalue()
