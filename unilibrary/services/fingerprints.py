"""Fingerprint enrolment with retention.

Raw template data is never stored: only the base64 of its SHA-256 digest.
Records are kept until ``retention_end_date`` and removed by
``purge_expired``.
"""

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unilibrary.core import clock
from unilibrary.core.config import settings
from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.models.models import FingerPosition, FingerprintRecord, Student

logger = logging.getLogger(__name__)


def hash_template(data: str) -> str:
    return base64.b64encode(hashlib.sha256(data.encode("utf-8")).digest()).decode("ascii")


class FingerprintService:
    def __init__(self, db: Session, retention_days: Optional[int] = None) -> None:
        self.db = db
        self.retention_days = settings.fingerprint_retention_days if retention_days is None else retention_days

    def get(self, record_id: int) -> FingerprintRecord:
        record = self.db.query(FingerprintRecord).filter(FingerprintRecord.id == record_id).first()
        if not record:
            raise NotFoundError(f"Fingerprint record not found with ID {record_id}")
        return record

    def for_student(self, student_pk: int) -> Optional[FingerprintRecord]:
        return self.db.query(FingerprintRecord).filter(FingerprintRecord.student_id == student_pk).first()

    def enroll(self, student_pk: int, fingerprint_data: str,
               finger_position: FingerPosition = FingerPosition.RIGHT_INDEX,
               quality_score: Optional[int] = None, device_id: Optional[str] = None,
               enrolled_by: Optional[str] = None, now: Optional[datetime] = None) -> FingerprintRecord:
        now = now or clock.now()
        student = self.db.query(Student).filter(Student.id == student_pk).first()
        if not student:
            raise NotFoundError(f"Student not found with ID: {student_pk}")
        if self.for_student(student.id):
            raise InvalidStateError("Student already has an enrolled fingerprint")

        record = FingerprintRecord(
            student_id=student.id,
            template_hash=hash_template(fingerprint_data),
            finger_position=finger_position,
            quality_score=quality_score,
            is_verified=False,
            consent_date=now,
            retention_end_date=now + timedelta(days=self.retention_days),
            device_id=device_id,
            enrolled_by=enrolled_by,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Fingerprint enrolled for student {student.student_id} record {record.id}")
        return record

    def update(self, record_id: int, fingerprint_data: str, finger_position: Optional[FingerPosition] = None,
               quality_score: Optional[int] = None, device_id: Optional[str] = None) -> FingerprintRecord:
        record = self.get(record_id)
        record.template_hash = hash_template(fingerprint_data)
        record.is_verified = False
        if finger_position is not None:
            record.finger_position = finger_position
        if quality_score is not None:
            record.quality_score = quality_score
        if device_id is not None:
            record.device_id = device_id
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Fingerprint record {record.id} re-enrolled")
        return record

    def verify(self, student_pk: int, fingerprint_data: str, now: Optional[datetime] = None) -> bool:
        record = self.for_student(student_pk)
        if record is None:
            return False
        match = hmac.compare_digest(record.template_hash, hash_template(fingerprint_data))
        if match:
            record.is_verified = True
            record.last_verified_at = now or clock.now()
            self.db.commit()
        logger.info(f"Fingerprint verification for student pk={student_pk} match={match}")
        return match

    def active(self, now: Optional[datetime] = None) -> List[FingerprintRecord]:
        now = now or clock.now()
        return (
            self.db.query(FingerprintRecord)
            .filter(or_(FingerprintRecord.retention_end_date.is_(None),
                        FingerprintRecord.retention_end_date > now))
            .order_by(FingerprintRecord.id)
            .all()
        )

    def expired(self, now: Optional[datetime] = None) -> List[FingerprintRecord]:
        now = now or clock.now()
        return (
            self.db.query(FingerprintRecord)
            .filter(FingerprintRecord.retention_end_date <= now)
            .order_by(FingerprintRecord.retention_end_date)
            .all()
        )

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or clock.now()
        purged = (
            self.db.query(FingerprintRecord)
            .filter(FingerprintRecord.retention_end_date <= now)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Purged {purged} expired fingerprint record(s)")
        return purged

    def delete(self, record_id: int) -> None:
        record = self.get(record_id)
        self.db.delete(record)
        self.db.commit()
        logger.info(f"Fingerprint record {record_id} deleted")
