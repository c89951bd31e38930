"""Staff account administration. Registration and login live in ``services.auth``."""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.core.security import hash_password
from unilibrary.models.models import Librarian, LibrarianRole

logger = logging.getLogger(__name__)

_UNIQUE_FIELDS = (
    ("email", "Email already exists"),
    ("staff_id", "Staff ID already exists"),
)


class LibrarianService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, librarian_id: int) -> Librarian:
        librarian = self.db.query(Librarian).filter(Librarian.id == librarian_id).first()
        if not librarian:
            raise NotFoundError(f"Librarian not found with ID: {librarian_id}")
        return librarian

    def search(self, q: Optional[str] = None, role: Optional[LibrarianRole] = None,
               active: Optional[bool] = None, skip: int = 0, limit: int = 50) -> List[Librarian]:
        query = self.db.query(Librarian)
        if q:
            like_q = f"%{q}%"
            query = query.filter(or_(Librarian.username.ilike(like_q), Librarian.first_name.ilike(like_q),
                                     Librarian.last_name.ilike(like_q), Librarian.email.ilike(like_q),
                                     Librarian.staff_id == q))
        if role is not None:
            query = query.filter(Librarian.role == role)
        if active is not None:
            query = query.filter(Librarian.active.is_(active))
        return query.order_by(Librarian.username).offset(skip).limit(limit).all()

    def update(self, librarian_id: int, data: dict) -> Librarian:
        librarian = self.get(librarian_id)
        for field, message in _UNIQUE_FIELDS:
            value = data.get(field)
            if value and (self.db.query(Librarian)
                          .filter(getattr(Librarian, field) == value, Librarian.id != librarian.id)
                          .first()):
                raise InvalidStateError(message)
        for k, v in data.items():
            if v is not None:
                setattr(librarian, k, v)
        self.db.commit()
        self.db.refresh(librarian)
        logger.info(f"Updated librarian {librarian.username}")
        return librarian

    def _ensure_other_admin(self, librarian: Librarian) -> None:
        # the last active admin cannot be demoted or disabled
        if librarian.role != LibrarianRole.ADMIN or not librarian.active:
            return
        others = (
            self.db.query(Librarian)
            .filter(Librarian.role == LibrarianRole.ADMIN, Librarian.active.is_(True),
                    Librarian.id != librarian.id)
            .count()
        )
        if others == 0:
            raise InvalidStateError("At least one active admin is required")

    def change_role(self, librarian_id: int, role: LibrarianRole) -> Librarian:
        librarian = self.get(librarian_id)
        if librarian.role == role:
            return librarian
        if role != LibrarianRole.ADMIN:
            self._ensure_other_admin(librarian)
        librarian.role = role
        self.db.commit()
        self.db.refresh(librarian)
        logger.info(f"Librarian {librarian.username} is now {role.value}")
        return librarian

    def set_active(self, librarian_id: int, active: bool) -> Librarian:
        librarian = self.get(librarian_id)
        if not active:
            self._ensure_other_admin(librarian)
        librarian.active = active
        self.db.commit()
        self.db.refresh(librarian)
        logger.info(f"{'Activated' if active else 'Deactivated'} librarian {librarian.username}")
        return librarian

    def reset_password(self, librarian_id: int, password: str) -> Librarian:
        librarian = self.get(librarian_id)
        librarian.password_hash = hash_password(password)
        self.db.commit()
        logger.info(f"Password reset for librarian {librarian.username}")
        return librarian
