from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.schemas import schemas
from unilibrary.services.announcements import AnnouncementService

router = APIRouter(prefix="/announcements", tags=["announcements"])


@router.post("", response_model=schemas.AnnouncementOut)
def create_announcement(payload: schemas.AnnouncementCreate,
                        principal: Principal = Depends(require("announcements:write")),
                        db: Session = Depends(get_db)):
    return AnnouncementService(db).create(payload.title, payload.content, payload.expires_at,
                                          created_by=principal.subject)


@router.get("", response_model=List[schemas.AnnouncementOut], dependencies=[Depends(require("announcements:read"))])
def active_announcements(db: Session = Depends(get_db)):
    return AnnouncementService(db).active()


@router.get("/all", response_model=List[schemas.AnnouncementOut],
            dependencies=[Depends(require("announcements:write"))])
def all_announcements(db: Session = Depends(get_db)):
    return AnnouncementService(db).all()


@router.put("/{announcement_id}", response_model=schemas.AnnouncementOut,
            dependencies=[Depends(require("announcements:write"))])
def update_announcement(announcement_id: int, payload: schemas.AnnouncementUpdate, db: Session = Depends(get_db)):
    return AnnouncementService(db).update(announcement_id, payload.model_dump(exclude_unset=True))


@router.delete("/{announcement_id}", dependencies=[Depends(require("announcements:write"))])
def delete_announcement(announcement_id: int, db: Session = Depends(get_db)):
    AnnouncementService(db).delete(announcement_id)
    return {"ok": True}
