from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.core.database import get_db
from unilibrary.core.errors import AuthenticationError, ForbiddenError
from unilibrary.core.security import Principal, get_optional_principal
from unilibrary.models.models import Librarian
from unilibrary.schemas import schemas
from unilibrary.services.auth import AuthService
from unilibrary.services.students import StudentService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=schemas.LibrarianOut)
def register_librarian(payload: schemas.LibrarianRegister, db: Session = Depends(get_db),
                       principal: Optional[Principal] = Depends(get_optional_principal)):
    # The first librarian bootstraps the system; after that only admins add staff.
    if db.query(Librarian).first() is not None:
        if principal is None:
            raise AuthenticationError("Authentication required")
        if not principal.can("librarians:manage"):
            raise ForbiddenError("You are not authorized to perform this action")
    return AuthService(db).register_librarian(**payload.model_dump())


@router.post("/login", response_model=schemas.TokenOut)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    return AuthService(db).login_librarian(payload.username, payload.password)


@router.post("/student/register", response_model=schemas.StudentOut)
def register_student(payload: schemas.StudentRegister, db: Session = Depends(get_db)):
    return StudentService(db).register(payload.model_dump())


@router.post("/student/login", response_model=schemas.TokenOut)
def student_login(payload: schemas.StudentLoginRequest, db: Session = Depends(get_db)):
    return AuthService(db).login_student(payload.student_id, payload.password)
