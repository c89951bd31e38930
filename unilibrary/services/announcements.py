import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unilibrary.core import clock
from unilibrary.core.errors import NotFoundError
from unilibrary.models.models import Announcement

logger = logging.getLogger(__name__)


class AnnouncementService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, announcement_id: int) -> Announcement:
        announcement = self.db.query(Announcement).filter(Announcement.id == announcement_id).first()
        if not announcement:
            raise NotFoundError(f"Announcement not found: {announcement_id}")
        return announcement

    def create(self, title: str, content: str, expires_at: Optional[datetime] = None,
               created_by: Optional[str] = None) -> Announcement:
        announcement = Announcement(title=title, content=content, expires_at=expires_at,
                                    created_by=created_by, active=True)
        self.db.add(announcement)
        self.db.commit()
        self.db.refresh(announcement)
        logger.info(f"Announcement {announcement.id} posted by {created_by}")
        return announcement

    def update(self, announcement_id: int, data: dict) -> Announcement:
        announcement = self.get(announcement_id)
        for k, v in data.items():
            setattr(announcement, k, v)
        self.db.commit()
        self.db.refresh(announcement)
        logger.info(f"Announcement {announcement.id} updated")
        return announcement

    def delete(self, announcement_id: int) -> None:
        announcement = self.get(announcement_id)
        announcement.active = False
        self.db.commit()
        logger.info(f"Announcement {announcement.id} withdrawn")

    def active(self, now: Optional[datetime] = None) -> List[Announcement]:
        now = now or clock.now()
        return (
            self.db.query(Announcement)
            .filter(Announcement.active.is_(True),
                    or_(Announcement.expires_at.is_(None), Announcement.expires_at > now))
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
            .all()
        )

    def all(self) -> List[Announcement]:
        return self.db.query(Announcement).order_by(Announcement.created_at.desc(), Announcement.id.desc()).all()
