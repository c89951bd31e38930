import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.models.models import Department, Student, StudentMajorMinor

logger = logging.getLogger(__name__)


class DepartmentService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, department_id: int) -> Department:
        department = self.db.query(Department).filter(Department.id == department_id).first()
        if not department:
            raise NotFoundError(f"Department not found with ID: {department_id}")
        return department

    def all(self) -> List[Department]:
        return self.db.query(Department).order_by(Department.name).all()

    def _check_name(self, name: Optional[str], exclude_id: Optional[int] = None) -> None:
        if not name:
            return
        query = self.db.query(Department).filter(Department.name.ilike(name))
        if exclude_id is not None:
            query = query.filter(Department.id != exclude_id)
        if query.first():
            raise InvalidStateError("Department already exists")

    def create(self, name: str, description: Optional[str] = None) -> Department:
        self._check_name(name)
        department = Department(name=name, description=description)
        self.db.add(department)
        self.db.commit()
        self.db.refresh(department)
        logger.info(f"Created department {department.name}")
        return department

    def update(self, department_id: int, data: dict) -> Department:
        department = self.get(department_id)
        self._check_name(data.get("name"), exclude_id=department.id)
        for k, v in data.items():
            setattr(department, k, v)
        self.db.commit()
        self.db.refresh(department)
        logger.info(f"Updated department id={department.id}")
        return department

    def delete(self, department_id: int) -> None:
        department = self.get(department_id)
        in_use = (
            self.db.query(StudentMajorMinor.id)
            .filter(or_(StudentMajorMinor.major_department_id == department.id,
                        StudentMajorMinor.minor_department_id == department.id))
            .first()
        )
        if in_use:
            raise InvalidStateError("Cannot delete department assigned to students")
        self.db.delete(department)
        self.db.commit()
        logger.info(f"Deleted department id={department_id}")

    def major_minor(self, student_pk: int) -> StudentMajorMinor:
        link = self.db.query(StudentMajorMinor).filter(StudentMajorMinor.student_id == student_pk).first()
        if not link:
            raise NotFoundError(f"No major/minor assigned for student: {student_pk}")
        return link

    def assign_major_minor(self, student_pk: int, major_department_id: int,
                           minor_department_id: Optional[int] = None) -> StudentMajorMinor:
        """Set a student's major and optional minor; the student's text columns follow."""
        student = self.db.query(Student).filter(Student.id == student_pk).first()
        if not student:
            raise NotFoundError(f"Student not found with ID: {student_pk}")
        if minor_department_id is not None and minor_department_id == major_department_id:
            raise InvalidStateError("Major and minor must be different departments")
        major = self.get(major_department_id)
        minor = self.get(minor_department_id) if minor_department_id is not None else None

        link = self.db.query(StudentMajorMinor).filter(StudentMajorMinor.student_id == student.id).first()
        if link is None:
            link = StudentMajorMinor(student_id=student.id)
            self.db.add(link)
        link.major_department_id = major.id
        link.minor_department_id = minor.id if minor else None
        student.major = major.name
        student.minor_subject = minor.name if minor else None
        self.db.commit()
        self.db.refresh(link)
        logger.info(f"Student {student.student_id} major={major.name} minor={minor.name if minor else '-'}")
        return link
