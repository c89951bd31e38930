from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.api.deps import ensure_student_access
from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.models.models import EntryMethod
from unilibrary.schemas import schemas
from unilibrary.services.presence import PresenceService

router = APIRouter(prefix="/library-entries", tags=["library-entries"])


@router.post("", response_model=schemas.LibraryEntryOut, dependencies=[Depends(require("entries:manage"))])
def record_manual_entry(payload: schemas.LibraryEntryRequest, db: Session = Depends(get_db)):
    """Desk check-in (IN) or check-out (OUT) recorded by staff."""
    presence = PresenceService(db)
    if payload.entry_type == "OUT":
        return presence.record_exit(payload.student_id, now=payload.timestamp)
    notes = payload.notes
    if payload.gate_location:
        notes = f"{notes} Gate: {payload.gate_location}" if notes else f"Gate: {payload.gate_location}"
    return presence.record_entry(payload.student_id, EntryMethod.MANUAL_CHECK, notes=notes,
                                 now=payload.timestamp)


@router.put("/{entry_id}/exit", response_model=schemas.LibraryEntryOut, dependencies=[Depends(require("entries:manage"))])
def close_entry(entry_id: int, exit_capture_ref: Optional[str] = None, exit_timestamp: Optional[datetime] = None,
                db: Session = Depends(get_db)):
    return PresenceService(db).close_entry(entry_id, exit_time=exit_timestamp, capture_ref=exit_capture_ref)


@router.get("/current-count", response_model=schemas.CurrentCount, dependencies=[Depends(require("entries:manage"))])
def current_count(db: Session = Depends(get_db)):
    return {"currently_in_library": PresenceService(db).count_currently_inside()}


@router.get("/statistics", response_model=List[schemas.DailyEntryStat],
            dependencies=[Depends(require("entries:manage"))])
def entry_statistics(start: datetime, end: datetime, db: Session = Depends(get_db)):
    return PresenceService(db).daily_statistics(start, end)


@router.get("/student/{student_pk}", response_model=List[schemas.LibraryEntryOut])
def entries_for_student(student_pk: int, skip: int = 0, limit: int = 50,
                        principal: Principal = Depends(require("self:read")), db: Session = Depends(get_db)):
    ensure_student_access(principal, student_pk, db)
    return PresenceService(db).entries_for_student(student_pk, skip=skip, limit=limit)


@router.get("/{entry_id}", response_model=schemas.LibraryEntryOut, dependencies=[Depends(require("entries:manage"))])
def read_entry(entry_id: int, db: Session = Depends(get_db)):
    return PresenceService(db).get(entry_id)
