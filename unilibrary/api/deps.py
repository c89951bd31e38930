from sqlalchemy.orm import Session

from unilibrary.core.errors import ForbiddenError
from unilibrary.core.security import Principal
from unilibrary.models.models import Student
from unilibrary.services.students import StudentService


def current_student(principal: Principal, db: Session) -> Student:
    """The student behind a student token."""
    if not principal.is_student:
        raise ForbiddenError("Only students can perform this action")
    return StudentService(db).get_by_student_id(principal.subject)


def ensure_student_access(principal: Principal, student_pk: int, db: Session,
                          staff_capability: str = "students:read") -> None:
    """Staff with ``staff_capability`` see everyone; a student sees only themselves."""
    if principal.can(staff_capability):
        return
    if principal.is_student and current_student(principal, db).id == student_pk:
        return
    raise ForbiddenError("You are not authorized to perform this action")
