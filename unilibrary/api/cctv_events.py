from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.core import clock
from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.models.models import CCTVEventType
from unilibrary.schemas import schemas
from unilibrary.services.cctv import CCTVEventService

router = APIRouter(prefix="/cctv-events", tags=["cctv-events"], dependencies=[Depends(require("cctv:manage"))])


@router.post("", response_model=schemas.CCTVEventOut)
def record_event(payload: schemas.CCTVEventCreate, db: Session = Depends(get_db)):
    return CCTVEventService(db).record(payload.model_dump())


@router.get("/search", response_model=List[schemas.CCTVEventOut])
def search_events(event_type: Optional[CCTVEventType] = None, location: Optional[str] = None,
                  needs_review: Optional[bool] = None, start: Optional[datetime] = None,
                  end: Optional[datetime] = None, skip: int = 0, limit: int = 50,
                  db: Session = Depends(get_db)):
    return CCTVEventService(db).search(event_type=event_type, location=location, needs_review=needs_review,
                                       start=start, end=end, skip=skip, limit=limit)


@router.get("/needs-review", response_model=List[schemas.CCTVEventOut])
def events_needing_review(skip: int = 0, limit: int = 50, db: Session = Depends(get_db)):
    return CCTVEventService(db).search(needs_review=True, skip=skip, limit=limit)


@router.get("/stats", response_model=Dict[str, int])
def event_type_distribution(start: Optional[datetime] = None, end: Optional[datetime] = None,
                            db: Session = Depends(get_db)):
    end = end or clock.now()
    start = start or end - timedelta(days=30)
    return CCTVEventService(db).type_distribution(start, end)


@router.get("/{event_id}", response_model=schemas.CCTVEventOut)
def read_event(event_id: int, db: Session = Depends(get_db)):
    return CCTVEventService(db).get(event_id)


@router.delete("/{event_id}")
def delete_event(event_id: int, db: Session = Depends(get_db)):
    CCTVEventService(db).delete(event_id)
    return {"ok": True}


@router.put("/{event_id}/review", response_model=schemas.CCTVEventOut)
def review_event(event_id: int, payload: schemas.ReviewRequest,
                 principal: Principal = Depends(require("cctv:manage")), db: Session = Depends(get_db)):
    return CCTVEventService(db).mark_reviewed(event_id, payload.notes, reviewed_by=principal.subject)


@router.put("/{event_id}/flag", response_model=schemas.CCTVEventOut)
def flag_event(event_id: int, payload: schemas.FlagRequest, db: Session = Depends(get_db)):
    return CCTVEventService(db).flag_for_review(event_id, payload.reason)


@router.put("/{event_id}/link/{entry_id}", response_model=schemas.CCTVEventOut)
def link_event(event_id: int, entry_id: int, db: Session = Depends(get_db)):
    return CCTVEventService(db).link_to_entry(event_id, entry_id)
