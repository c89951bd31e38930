from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.schemas import schemas
from unilibrary.services.fingerprints import FingerprintService

router = APIRouter(prefix="/fingerprints", tags=["fingerprints"])


@router.post("", response_model=schemas.FingerprintOut)
def enroll_fingerprint(payload: schemas.FingerprintEnroll,
                       principal: Principal = Depends(require("fingerprints:manage")),
                       db: Session = Depends(get_db)):
    return FingerprintService(db).enroll(payload.student_id, payload.fingerprint_data,
                                         finger_position=payload.finger_position,
                                         quality_score=payload.quality_score,
                                         device_id=payload.device_id,
                                         enrolled_by=principal.subject)


@router.get("/active", response_model=List[schemas.FingerprintOut],
            dependencies=[Depends(require("fingerprints:manage"))])
def active_fingerprints(db: Session = Depends(get_db)):
    return FingerprintService(db).active()


@router.get("/expired", response_model=List[schemas.FingerprintOut],
            dependencies=[Depends(require("fingerprints:manage"))])
def expired_fingerprints(db: Session = Depends(get_db)):
    return FingerprintService(db).expired()


@router.delete("/purge-expired", response_model=schemas.PurgeResult,
               dependencies=[Depends(require("fingerprints:manage"))])
def purge_expired_fingerprints(db: Session = Depends(get_db)):
    return {"purged": FingerprintService(db).purge_expired()}


@router.get("/{record_id}", response_model=schemas.FingerprintOut,
            dependencies=[Depends(require("fingerprints:manage"))])
def read_fingerprint(record_id: int, db: Session = Depends(get_db)):
    return FingerprintService(db).get(record_id)


@router.put("/{record_id}", response_model=schemas.FingerprintOut,
            dependencies=[Depends(require("fingerprints:manage"))])
def update_fingerprint(record_id: int, payload: schemas.FingerprintUpdate, db: Session = Depends(get_db)):
    return FingerprintService(db).update(record_id, payload.fingerprint_data,
                                         finger_position=payload.finger_position,
                                         quality_score=payload.quality_score,
                                         device_id=payload.device_id)


@router.delete("/{record_id}", dependencies=[Depends(require("fingerprints:manage"))])
def delete_fingerprint(record_id: int, db: Session = Depends(get_db)):
    FingerprintService(db).delete(record_id)
    return {"ok": True}
