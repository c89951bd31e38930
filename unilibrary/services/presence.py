"""Presence ledger: who is inside the library right now.

A student may hold at most one open entry (``exit_time IS NULL``). That is
checked here before every insert; the database does not enforce it.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from unilibrary.core import clock
from unilibrary.core.errors import ForbiddenError, InvalidStateError, NotFoundError
from unilibrary.models.models import EntryMethod, LibraryEntry, Student
from unilibrary.services.hours import LibraryHoursService

logger = logging.getLogger(__name__)

AUTO_EXIT_CAPTURE_REF = "AUTO_EXIT_LIBRARY_CLOSED"


class PresenceService:
    def __init__(self, db: Session, hours: Optional[LibraryHoursService] = None) -> None:
        self.db = db
        self.hours = hours or LibraryHoursService(db)

    def get(self, entry_id: int) -> LibraryEntry:
        entry = self.db.query(LibraryEntry).filter(LibraryEntry.id == entry_id).first()
        if not entry:
            raise NotFoundError(f"LibraryEntry not found: {entry_id}")
        return entry

    def _student(self, student_id: int) -> Student:
        student = self.db.query(Student).filter(Student.id == student_id).first()
        if not student:
            raise NotFoundError(f"Student not found with ID: {student_id}")
        return student

    def open_entries_for_student(self, student_id: int) -> List[LibraryEntry]:
        return (
            self.db.query(LibraryEntry)
            .filter(LibraryEntry.student_id == student_id, LibraryEntry.exit_time.is_(None))
            .order_by(LibraryEntry.entry_time, LibraryEntry.id)
            .all()
        )

    def record_entry(self, student_id: int, method: EntryMethod, capture_ref: Optional[str] = None,
                     notes: Optional[str] = None, now: Optional[datetime] = None) -> LibraryEntry:
        now = now or clock.now()
        student = self._student(student_id)
        if not self.hours.is_open(now):
            raise ForbiddenError("Library is closed")
        if self.open_entries_for_student(student.id):
            raise InvalidStateError("Student already has an open entry")

        entry = LibraryEntry(
            student_id=student.id,
            entry_time=now,
            entry_method=method,
            entry_capture_ref=capture_ref,
            notes=notes,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"Entry {entry.id} recorded for student {student.student_id} via {method.value}")
        return entry

    def record_exit(self, student_id: int, capture_ref: Optional[str] = None,
                    now: Optional[datetime] = None) -> LibraryEntry:
        student = self._student(student_id)
        open_entries = self.open_entries_for_student(student.id)
        if not open_entries:
            raise InvalidStateError("No active entry found for student")
        # Several open rows should not exist; close the latest one if they do.
        latest = open_entries[-1]
        return self.close_entry(latest.id, exit_time=now or clock.now(), capture_ref=capture_ref)

    def close_entry(self, entry_id: int, exit_time: Optional[datetime] = None,
                    capture_ref: Optional[str] = None) -> LibraryEntry:
        entry = self.get(entry_id)
        if entry.exit_time is not None:
            return entry
        exit_time = exit_time or clock.now()
        if exit_time < entry.entry_time:
            raise InvalidStateError("Exit time cannot be before entry time")
        entry.exit_time = exit_time
        entry.exit_capture_ref = capture_ref
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"Entry {entry.id} closed at {entry.exit_time:%Y-%m-%d %H:%M:%S}")
        return entry

    def auto_exit_if_library_closed(self, now: Optional[datetime] = None) -> int:
        """Close every open entry when the facility is closed; returns the count."""
        now = now or clock.now()
        if self.hours.is_open(now):
            return 0
        still_inside = (
            self.db.query(LibraryEntry)
            .options(joinedload(LibraryEntry.student))
            .filter(LibraryEntry.exit_time.is_(None))
            .all()
        )
        if not still_inside:
            return 0

        logger.info(f"[AutoExit] Library is closed. Auto-exiting {len(still_inside)} student(s).")
        for entry in still_inside:
            entry.exit_time = max(now, entry.entry_time)
            entry.exit_capture_ref = AUTO_EXIT_CAPTURE_REF
            # each row is committed on its own
            self.db.commit()
            logger.info(f"[AutoExit] Auto-exited student: "
                        f"{entry.student.student_id if entry.student else entry.id}")
        return len(still_inside)

    def entries_for_student(self, student_id: int, skip: int = 0, limit: int = 50) -> List[LibraryEntry]:
        self._student(student_id)
        return (
            self.db.query(LibraryEntry)
            .filter(LibraryEntry.student_id == student_id)
            .order_by(LibraryEntry.entry_time.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_currently_inside(self) -> int:
        return (
            self.db.query(func.count(func.distinct(LibraryEntry.student_id)))
            .filter(LibraryEntry.exit_time.is_(None))
            .scalar()
        )

    def entries_between(self, start: datetime, end: datetime) -> List[LibraryEntry]:
        return (
            self.db.query(LibraryEntry)
            .filter(LibraryEntry.entry_time >= start, LibraryEntry.entry_time <= end)
            .order_by(LibraryEntry.entry_time)
            .all()
        )

    def daily_statistics(self, start: datetime, end: datetime) -> List[dict]:
        counts = defaultdict(lambda: {"entries": 0, "exits": 0})
        for entry in self.entries_between(start, end):
            counts[entry.entry_time.date()]["entries"] += 1
            if entry.exit_time is not None:
                counts[entry.exit_time.date()]["exits"] += 1
        return [{"date": day, **counts[day]} for day in sorted(counts)]
