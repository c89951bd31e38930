from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from unilibrary.core.database import get_db
from unilibrary.core.security import require
from unilibrary.models.models import LibrarianRole
from unilibrary.schemas import schemas
from unilibrary.services.librarians import LibrarianService

router = APIRouter(prefix="/librarians", tags=["librarians"], dependencies=[Depends(require("librarians:manage"))])


@router.get("", response_model=List[schemas.LibrarianOut])
def list_librarians(q: Optional[str] = Query(None, description="search username, name, email or staff ID"),
                    role: Optional[LibrarianRole] = None, active: Optional[bool] = None,
                    skip: int = 0, limit: int = 50, db: Session = Depends(get_db)):
    return LibrarianService(db).search(q=q, role=role, active=active, skip=skip, limit=limit)


@router.get("/{librarian_id}", response_model=schemas.LibrarianOut)
def read_librarian(librarian_id: int, db: Session = Depends(get_db)):
    return LibrarianService(db).get(librarian_id)


@router.put("/{librarian_id}", response_model=schemas.LibrarianOut)
def update_librarian(librarian_id: int, payload: schemas.LibrarianUpdate, db: Session = Depends(get_db)):
    return LibrarianService(db).update(librarian_id, payload.model_dump(exclude_unset=True))


@router.put("/{librarian_id}/role", response_model=schemas.LibrarianOut)
def change_role(librarian_id: int, payload: schemas.RoleChange, db: Session = Depends(get_db)):
    return LibrarianService(db).change_role(librarian_id, payload.role)


@router.put("/{librarian_id}/activate", response_model=schemas.LibrarianOut)
def activate_librarian(librarian_id: int, db: Session = Depends(get_db)):
    return LibrarianService(db).set_active(librarian_id, True)


@router.delete("/{librarian_id}", response_model=schemas.LibrarianOut)
def deactivate_librarian(librarian_id: int, db: Session = Depends(get_db)):
    return LibrarianService(db).set_active(librarian_id, False)


@router.post("/{librarian_id}/reset-password")
def reset_password(librarian_id: int, payload: schemas.PasswordReset, db: Session = Depends(get_db)):
    LibrarianService(db).reset_password(librarian_id, payload.password)
    return {"ok": True}
