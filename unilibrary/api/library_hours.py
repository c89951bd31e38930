from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.schemas import schemas
from unilibrary.services.hours import LibraryHoursService

router = APIRouter(prefix="/library-hours", tags=["library-hours"])


@router.get("", response_model=Optional[schemas.LibraryHoursOut], dependencies=[Depends(require("hours:read"))])
def current_hours(db: Session = Depends(get_db)):
    return LibraryHoursService(db).current()


@router.post("", response_model=schemas.LibraryHoursOut)
def save_hours(payload: schemas.LibraryHoursIn, principal: Principal = Depends(require("hours:write")),
               db: Session = Depends(get_db)):
    return LibraryHoursService(db).save_hours(payload.open_time, payload.close_time, payload.working_days,
                                              set_by=principal.subject)


@router.get("/status", response_model=schemas.LibraryStatusOut, dependencies=[Depends(require("hours:read"))])
def library_status(db: Session = Depends(get_db)):
    return LibraryHoursService(db).status()
