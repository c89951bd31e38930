"""CCTV event metadata. Only references to captures are stored, never footage."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from unilibrary.core import clock
from unilibrary.core.errors import NotFoundError
from unilibrary.models.models import CCTVEvent, CCTVEventType, LibraryEntry

logger = logging.getLogger(__name__)


class CCTVEventService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, event_id: int) -> CCTVEvent:
        event = self.db.query(CCTVEvent).filter(CCTVEvent.id == event_id).first()
        if not event:
            raise NotFoundError(f"Event not found: {event_id}")
        return event

    def _entry(self, entry_id: int) -> LibraryEntry:
        entry = self.db.query(LibraryEntry).filter(LibraryEntry.id == entry_id).first()
        if not entry:
            raise NotFoundError(f"Library entry not found: {entry_id}")
        return entry

    def record(self, data: dict) -> CCTVEvent:
        data = dict(data)
        data["event_time"] = data.get("event_time") or clock.now()
        entry_id = data.pop("library_entry_id", None)
        event = CCTVEvent(**data)
        if entry_id is not None:
            entry = self._entry(entry_id)
            event.library_entry_id = entry.id
            event.student_id = event.student_id or entry.student_id
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"CCTV event {event.id} {event.event_type.value} at {event.location}")
        return event

    def delete(self, event_id: int) -> None:
        event = self.get(event_id)
        self.db.delete(event)
        self.db.commit()
        logger.info(f"CCTV event {event_id} deleted")

    def search(self, event_type: Optional[CCTVEventType] = None, location: Optional[str] = None,
               needs_review: Optional[bool] = None, start: Optional[datetime] = None,
               end: Optional[datetime] = None, skip: int = 0, limit: int = 50) -> List[CCTVEvent]:
        query = self.db.query(CCTVEvent)
        if event_type is not None:
            query = query.filter(CCTVEvent.event_type == event_type)
        if location:
            query = query.filter(CCTVEvent.location == location)
        if needs_review is not None:
            query = query.filter(CCTVEvent.needs_review.is_(needs_review))
        if start is not None:
            query = query.filter(CCTVEvent.event_time >= start)
        if end is not None:
            query = query.filter(CCTVEvent.event_time <= end)
        return query.order_by(CCTVEvent.event_time.desc()).offset(skip).limit(limit).all()

    def mark_reviewed(self, event_id: int, notes: Optional[str], reviewed_by: str) -> CCTVEvent:
        event = self.get(event_id)
        event.needs_review = False
        event.review_notes = notes
        event.reviewed_by = reviewed_by
        event.review_time = clock.now()
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"CCTV event {event.id} reviewed by {reviewed_by}")
        return event

    def flag_for_review(self, event_id: int, reason: str) -> CCTVEvent:
        event = self.get(event_id)
        event.needs_review = True
        event.review_notes = reason
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"CCTV event {event.id} flagged for review")
        return event

    def link_to_entry(self, event_id: int, entry_id: int) -> CCTVEvent:
        event = self.get(event_id)
        entry = self._entry(entry_id)
        event.library_entry_id = entry.id
        event.student_id = entry.student_id
        self.db.commit()
        self.db.refresh(event)
        return event

    def type_distribution(self, start: datetime, end: datetime) -> Dict[str, int]:
        rows = (
            self.db.query(CCTVEvent.event_type, func.count(CCTVEvent.id))
            .filter(CCTVEvent.event_time >= start, CCTVEvent.event_time <= end)
            .group_by(CCTVEvent.event_type)
            .all()
        )
        return {event_type.value: count for event_type, count in rows}
