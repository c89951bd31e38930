"""Self-service and gate scan channels feeding the presence ledger."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from unilibrary.api.deps import current_student
from unilibrary.core.database import get_db
from unilibrary.core.errors import ForbiddenError, InvalidStateError
from unilibrary.core.security import Principal, require
from unilibrary.models.models import EntryMethod, Student
from unilibrary.schemas import schemas
from unilibrary.services.fingerprints import FingerprintService
from unilibrary.services.presence import PresenceService
from unilibrary.services.students import StudentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])

QR_ENTRY = "LIBRARY_ENTRY"
QR_EXIT = "LIBRARY_EXIT"


def _is_entry(scan_type: Optional[str], default: bool) -> bool:
    if scan_type is None:
        return default
    scan_type = scan_type.strip().upper()
    if scan_type not in ("ENTRY", "EXIT"):
        raise InvalidStateError("Invalid scan type. Use ENTRY or EXIT.")
    return scan_type == "ENTRY"


def _apply_scan(db: Session, student: Student, is_entry: bool, method: EntryMethod,
                capture_ref: Optional[str]) -> dict:
    # scans are always stamped and gated with the server clock
    if not student.active:
        raise ForbiddenError("Student account is inactive")
    presence = PresenceService(db)
    if is_entry:
        entry = presence.record_entry(student.id, method, capture_ref=capture_ref)
        return {"action": "ENTRY", "entry": entry}
    entry = presence.record_exit(student.id, capture_ref=capture_ref)
    return {"action": "EXIT", "entry": entry}


@router.post("", response_model=schemas.ScanResult)
def scan_qr(payload: schemas.ScanRequest, principal: Principal = Depends(require("self:scan")),
            db: Session = Depends(get_db)):
    student = current_student(principal, db)
    qr_value = (payload.qr_value or "").strip().upper()
    if qr_value not in (QR_ENTRY, QR_EXIT):
        raise InvalidStateError("Invalid or missing QR code")
    # an explicit scan_type wins over what the QR code says
    is_entry = _is_entry(payload.scan_type, default=qr_value == QR_ENTRY)
    return _apply_scan(db, student, is_entry, EntryMethod.QR, qr_value)


@router.post("/rfid", response_model=schemas.ScanResult, dependencies=[Depends(require("gate:scan"))])
def scan_rfid(payload: schemas.RfidScanRequest, db: Session = Depends(get_db)):
    student = StudentService(db).get_by_rfid(payload.rfid_uid)
    return _apply_scan(db, student, _is_entry(payload.scan_type, default=True), EntryMethod.RFID_CARD,
                       payload.rfid_uid)


@router.post("/fingerprint", response_model=schemas.ScanResult, dependencies=[Depends(require("gate:scan"))])
def scan_fingerprint(payload: schemas.FingerprintScanRequest, db: Session = Depends(get_db)):
    student = StudentService(db).get_by_student_id(payload.student_id)
    if not FingerprintService(db).verify(student.id, payload.fingerprint_data):
        logger.warning(f"Fingerprint mismatch for student {student.student_id}")
        raise ForbiddenError("Fingerprint verification failed")
    return _apply_scan(db, student, _is_entry(payload.scan_type, default=True), EntryMethod.FINGERPRINT,
                       "FINGERPRINT_VERIFIED")
