import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.core.security import hash_password
from unilibrary.models.models import Student

logger = logging.getLogger(__name__)

# (attribute, message) pairs checked for uniqueness on register and update
_UNIQUE_FIELDS = (
    ("student_id", "Student ID already exists"),
    ("email", "Email already exists"),
    ("university_card_id", "University card ID already exists"),
    ("rfid_uid", "RFID UID already assigned to another student"),
)


class StudentService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, student_pk: int) -> Student:
        student = self.db.query(Student).filter(Student.id == student_pk).first()
        if not student:
            raise NotFoundError(f"Student not found with ID: {student_pk}")
        return student

    def get_by_student_id(self, student_id: str) -> Student:
        student = self.db.query(Student).filter(Student.student_id == student_id).first()
        if not student:
            raise NotFoundError(f"Student not found: {student_id}")
        return student

    def get_by_rfid(self, rfid_uid: str) -> Student:
        student = self.db.query(Student).filter(Student.rfid_uid == rfid_uid).first()
        if not student:
            raise NotFoundError(f"Student not found with RFID: {rfid_uid}")
        return student

    def _check_unique(self, data: dict, exclude_id: Optional[int] = None) -> None:
        for field, message in _UNIQUE_FIELDS:
            value = data.get(field)
            if not value:
                continue
            query = self.db.query(Student).filter(getattr(Student, field) == value)
            if exclude_id is not None:
                query = query.filter(Student.id != exclude_id)
            if query.first():
                raise InvalidStateError(message)

    def register(self, data: dict) -> Student:
        data = dict(data)
        self._check_unique(data)
        password = data.pop("password")
        student = Student(**data, password_hash=hash_password(password), active=True)
        self.db.add(student)
        self.db.commit()
        self.db.refresh(student)
        logger.info(f"Registered student {student.student_id}")
        return student

    def update(self, student_pk: int, data: dict) -> Student:
        student = self.get(student_pk)
        data = dict(data)
        self._check_unique(data, exclude_id=student.id)
        password = data.pop("password", None)
        if password:
            student.password_hash = hash_password(password)
        for k, v in data.items():
            setattr(student, k, v)
        self.db.commit()
        self.db.refresh(student)
        logger.info(f"Updated student {student.student_id}")
        return student

    def deactivate(self, student_pk: int) -> Student:
        student = self.get(student_pk)
        student.active = False
        self.db.commit()
        self.db.refresh(student)
        logger.info(f"Deactivated student {student.student_id}")
        return student

    def search(self, q: Optional[str] = None, department: Optional[str] = None,
               skip: int = 0, limit: int = 50) -> List[Student]:
        query = self.db.query(Student)
        if q:
            like_q = f"%{q}%"
            query = query.filter(or_(Student.first_name.ilike(like_q), Student.last_name.ilike(like_q),
                                     Student.email.ilike(like_q), Student.student_id == q))
        if department:
            query = query.filter(Student.department.ilike(department))
        return query.order_by(Student.last_name, Student.first_name).offset(skip).limit(limit).all()
