"""Facility opening hours and the open/closed check used to gate scans."""

import logging
from datetime import datetime, time
from typing import List, Optional

from sqlalchemy.orm import Session

from unilibrary.core import clock
from unilibrary.core.errors import InvalidStateError
from unilibrary.models.models import LibraryHours

logger = logging.getLogger(__name__)

DAY_CODES = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


def day_code(moment: datetime) -> str:
    return DAY_CODES[moment.weekday()]


def parse_working_days(raw: str) -> List[str]:
    return [d.strip().upper() for d in raw.split(",") if d.strip()]


def is_open_at(hours: LibraryHours, moment: datetime) -> bool:
    """True when ``moment`` falls on a working day inside [open, close]."""
    if day_code(moment) not in parse_working_days(hours.working_days):
        return False
    current = moment.time()
    return hours.open_time <= current <= hours.close_time


class LibraryHoursService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def current(self) -> Optional[LibraryHours]:
        return (
            self.db.query(LibraryHours)
            .filter(LibraryHours.active.is_(True))
            .order_by(LibraryHours.id.desc())
            .first()
        )

    def is_open(self, now: Optional[datetime] = None) -> bool:
        hours = self.current()
        if hours is None:
            # no configuration: scanning stays allowed
            return True
        return is_open_at(hours, now or clock.now())

    def status(self, now: Optional[datetime] = None) -> dict:
        hours = self.current()
        if hours is None:
            return {"open": True, "message": "Library is open",
                    "open_time": None, "close_time": None, "working_days": None}
        open_now = is_open_at(hours, now or clock.now())
        return {
            "open": open_now,
            "message": "Library is currently open" if open_now else "Library is currently closed",
            "open_time": hours.open_time,
            "close_time": hours.close_time,
            "working_days": hours.working_days,
        }

    def save_hours(self, open_time: time, close_time: time, working_days: str,
                   set_by: Optional[str] = None) -> LibraryHours:
        """Replace the active configuration in a single transaction."""
        days = parse_working_days(working_days)
        unknown = [d for d in days if d not in DAY_CODES]
        if not days or unknown:
            raise InvalidStateError(f"Invalid working days: {working_days}")
        if open_time >= close_time:
            raise InvalidStateError("Opening time must be before closing time")

        self.db.query(LibraryHours).filter(LibraryHours.active.is_(True)).update(
            {LibraryHours.active: False}, synchronize_session=False
        )
        hours = LibraryHours(
            open_time=open_time,
            close_time=close_time,
            working_days=",".join(days),
            active=True,
            set_by=set_by,
        )
        self.db.add(hours)
        self.db.commit()
        self.db.refresh(hours)
        logger.info(f"Library hours set to {hours.working_days} {open_time}-{close_time} by {set_by}")
        return hours
