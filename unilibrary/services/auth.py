import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unilibrary.core import clock
from unilibrary.core.errors import AuthenticationError, InvalidStateError
from unilibrary.core.security import ROLE_STUDENT, create_access_token, hash_password, verify_password
from unilibrary.models.models import Librarian, LibrarianRole, Student

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def register_librarian(self, username: str, password: str, first_name: str, last_name: str,
                           email: str, staff_id: Optional[str] = None,
                           role: LibrarianRole = LibrarianRole.LIBRARIAN) -> Librarian:
        staff_id = staff_id or username
        existing = (
            self.db.query(Librarian)
            .filter(or_(Librarian.username == username, Librarian.email == email,
                        Librarian.staff_id == staff_id))
            .first()
        )
        if existing:
            if existing.username == username:
                raise InvalidStateError("Username already exists")
            if existing.email == email:
                raise InvalidStateError("Email already exists")
            raise InvalidStateError("Staff ID already exists")
        librarian = Librarian(
            username=username,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            email=email,
            staff_id=staff_id,
            role=role,
            active=True,
        )
        self.db.add(librarian)
        self.db.commit()
        self.db.refresh(librarian)
        logger.info(f"Registered librarian {librarian.username} role={librarian.role.value}")
        return librarian

    def login_librarian(self, username: str, password: str) -> dict:
        librarian = self.db.query(Librarian).filter(Librarian.username == username).first()
        if not librarian or not verify_password(password, librarian.password_hash):
            raise AuthenticationError("Invalid username or password")
        if not librarian.active:
            raise AuthenticationError("Account is disabled")
        librarian.last_login = clock.now()
        self.db.commit()
        role = librarian.role.value
        logger.info(f"Librarian {username} logged in")
        return {"token": create_access_token(librarian.username, role), "subject": librarian.username,
                "role": role}

    def login_student(self, student_id: str, password: str) -> dict:
        student = self.db.query(Student).filter(Student.student_id == student_id).first()
        if not student or not verify_password(password, student.password_hash):
            raise AuthenticationError("Invalid student ID or password")
        if not student.active:
            raise AuthenticationError("Account is disabled")
        logger.info(f"Student {student_id} logged in")
        return {"token": create_access_token(student.student_id, ROLE_STUDENT),
                "subject": student.student_id, "role": ROLE_STUDENT}
