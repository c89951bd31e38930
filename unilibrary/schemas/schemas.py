from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, constr, field_validator

from unilibrary.models.models import (BorrowStatus, CCTVEventType, EntryMethod, FingerPosition,
                                      LibrarianRole)

# bcrypt only looks at the first 72 bytes of a password
Password = constr(min_length=6, max_length=72)
StudentNumber = constr(pattern=r"^[0-9]{8}$")


# -----------------------------
# Auth
# -----------------------------
class LibrarianRegister(BaseModel):
    username: constr(min_length=3, max_length=50)
    password: Password
    first_name: constr(min_length=1, max_length=50)
    last_name: constr(min_length=1, max_length=50)
    email: constr(min_length=5)
    staff_id: Optional[constr(max_length=20)] = None
    role: LibrarianRole = LibrarianRole.LIBRARIAN


class LibrarianOut(BaseModel):
    id: int
    staff_id: str
    username: str
    first_name: str
    last_name: str
    email: str
    role: LibrarianRole
    active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LibrarianUpdate(BaseModel):
    first_name: Optional[constr(min_length=1, max_length=50)] = None
    last_name: Optional[constr(min_length=1, max_length=50)] = None
    email: Optional[constr(min_length=5)] = None
    staff_id: Optional[constr(min_length=1, max_length=20)] = None


class RoleChange(BaseModel):
    role: LibrarianRole


class PasswordReset(BaseModel):
    password: Password


class LoginRequest(BaseModel):
    username: str
    password: str


class StudentLoginRequest(BaseModel):
    student_id: str
    password: str


class TokenOut(BaseModel):
    token: str
    token_type: str = "bearer"
    subject: str
    role: str


# -----------------------------
# Students
# -----------------------------
class StudentBase(BaseModel):
    university_card_id: constr(min_length=1, max_length=50)
    first_name: constr(min_length=1, max_length=50)
    last_name: constr(min_length=1, max_length=50)
    email: constr(min_length=5)
    department: constr(min_length=1, max_length=100)
    major: Optional[str] = None
    minor_subject: Optional[str] = None
    year_level: Optional[int] = Field(default=None, ge=1, le=10)
    phone_number: Optional[constr(pattern=r"^\+?[0-9]{7,15}$")] = None
    rfid_uid: Optional[str] = None
    fingerprint_ref: Optional[str] = None


class StudentRegister(StudentBase):
    student_id: StudentNumber
    password: Password


class StudentUpdate(BaseModel):
    university_card_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None
    major: Optional[str] = None
    minor_subject: Optional[str] = None
    year_level: Optional[int] = Field(default=None, ge=1, le=10)
    phone_number: Optional[constr(pattern=r"^\+?[0-9]{7,15}$")] = None
    rfid_uid: Optional[str] = None
    fingerprint_ref: Optional[str] = None
    active: Optional[bool] = None
    password: Optional[Password] = None


class StudentOut(StudentBase):
    id: int
    student_id: str
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class StudentSummary(BaseModel):
    id: int
    student_id: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


# -----------------------------
# Departments
# -----------------------------
class DepartmentIn(BaseModel):
    name: constr(min_length=1, max_length=100)
    description: Optional[constr(max_length=255)] = None


class DepartmentUpdate(BaseModel):
    name: Optional[constr(min_length=1, max_length=100)] = None
    description: Optional[constr(max_length=255)] = None


class DepartmentOut(DepartmentIn):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class MajorMinorIn(BaseModel):
    major_department_id: int
    minor_department_id: Optional[int] = None


class MajorMinorOut(BaseModel):
    student_id: int
    major_department: DepartmentOut
    minor_department: Optional[DepartmentOut] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# -----------------------------
# Books
# -----------------------------
class BookBase(BaseModel):
    title: constr(min_length=1)
    author: constr(min_length=1)
    isbn: constr(min_length=1)
    category: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    location_code: Optional[str] = None
    rfid_tag: Optional[str] = None
    description: Optional[str] = None
    total_copies: int = Field(default=1, ge=0)
    notes: Optional[str] = None


class BookCreate(BookBase):
    pass


class BookUpdate(BaseModel):
    title: Optional[constr(min_length=1)] = None
    author: Optional[constr(min_length=1)] = None
    isbn: Optional[constr(min_length=1)] = None
    category: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    location_code: Optional[str] = None
    rfid_tag: Optional[str] = None
    description: Optional[str] = None
    total_copies: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator("title", "author", "isbn", "total_copies")
    @classmethod
    def not_null(cls, v):
        # omit the field to leave it unchanged
        if v is None:
            raise ValueError("Field may not be null")
        return v


class BookOut(BookBase):
    id: int
    available_copies: int
    total_borrows: int
    created_at: datetime

    class Config:
        from_attributes = True


class BookSummary(BaseModel):
    id: int
    title: str
    author: str
    isbn: str
    category: Optional[str] = None

    class Config:
        from_attributes = True


class ImportResult(BaseModel):
    created: int
    updated: int
    errors: List[dict]


# -----------------------------
# Borrow records
# -----------------------------
class BorrowRequest(BaseModel):
    student_id: int
    book_id: int
    due_date: Optional[date] = None


class ManualFineRequest(BaseModel):
    fine_amount: float = Field(ge=0, allow_inf_nan=False)
    reason: Optional[str] = None


class BorrowRecordOut(BaseModel):
    id: int
    borrow_date: datetime
    due_date: datetime
    return_date: Optional[datetime] = None
    status: BorrowStatus
    fine_amount: float
    notes: Optional[str] = None
    processed_by: Optional[str] = None
    book: BookSummary
    student: StudentSummary

    class Config:
        from_attributes = True


# -----------------------------
# Library entries and scans
# -----------------------------
class LibraryEntryRequest(BaseModel):
    student_id: int
    entry_type: str = "IN"
    timestamp: Optional[datetime] = None
    notes: Optional[str] = None
    gate_location: Optional[str] = None

    @field_validator("entry_type")
    @classmethod
    def normalize_entry_type(cls, v):
        v = v.upper()
        if v not in ("IN", "OUT"):
            raise ValueError("Invalid entry_type. Use IN or OUT.")
        return v


class LibraryEntryOut(BaseModel):
    id: int
    student_id: int
    entry_time: datetime
    exit_time: Optional[datetime] = None
    entry_method: EntryMethod
    entry_capture_ref: Optional[str] = None
    exit_capture_ref: Optional[str] = None
    notes: Optional[str] = None
    student: Optional[StudentSummary] = None

    class Config:
        from_attributes = True


class ScanRequest(BaseModel):
    qr_value: Optional[str] = None
    scan_type: Optional[str] = None


class RfidScanRequest(BaseModel):
    rfid_uid: constr(min_length=1)
    scan_type: str = "ENTRY"


class FingerprintScanRequest(BaseModel):
    student_id: StudentNumber
    fingerprint_data: constr(min_length=1)
    scan_type: str = "ENTRY"


class ScanResult(BaseModel):
    action: str
    entry: LibraryEntryOut


class CurrentCount(BaseModel):
    currently_in_library: int


class DailyEntryStat(BaseModel):
    date: date
    entries: int
    exits: int


# -----------------------------
# Library hours
# -----------------------------
class LibraryHoursIn(BaseModel):
    open_time: time
    close_time: time
    working_days: constr(min_length=3, max_length=50)


class LibraryHoursOut(BaseModel):
    id: int
    open_time: time
    close_time: time
    working_days: str
    active: bool
    set_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LibraryStatusOut(BaseModel):
    open: bool
    message: str
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    working_days: Optional[str] = None


# -----------------------------
# Announcements
# -----------------------------
class AnnouncementCreate(BaseModel):
    title: constr(min_length=1, max_length=200)
    content: constr(min_length=1)
    expires_at: Optional[datetime] = None


class AnnouncementUpdate(BaseModel):
    title: Optional[constr(min_length=1, max_length=200)] = None
    content: Optional[str] = None
    active: Optional[bool] = None
    expires_at: Optional[datetime] = None


class AnnouncementOut(BaseModel):
    id: int
    title: str
    content: str
    active: bool
    created_by: Optional[str] = None
    created_at: datetime
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# -----------------------------
# CCTV events
# -----------------------------
class CCTVEventCreate(BaseModel):
    event_type: CCTVEventType
    camera_id: constr(min_length=1)
    location: constr(min_length=1)
    capture_ref: constr(min_length=1)
    event_time: Optional[datetime] = None
    library_entry_id: Optional[int] = None
    student_id: Optional[int] = None
    recognition_confidence: Optional[int] = Field(default=None, ge=0, le=100)
    description: Optional[str] = None
    needs_review: bool = False


class CCTVEventOut(BaseModel):
    id: int
    event_time: datetime
    event_type: CCTVEventType
    camera_id: str
    location: str
    capture_ref: str
    library_entry_id: Optional[int] = None
    student_id: Optional[int] = None
    recognition_confidence: Optional[int] = None
    needs_review: bool
    review_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    review_time: Optional[datetime] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class ReviewRequest(BaseModel):
    notes: Optional[str] = None


class FlagRequest(BaseModel):
    reason: constr(min_length=1)


# -----------------------------
# Fingerprints
# -----------------------------
class FingerprintEnroll(BaseModel):
    student_id: int
    fingerprint_data: constr(min_length=1)
    finger_position: FingerPosition = FingerPosition.RIGHT_INDEX
    quality_score: Optional[int] = Field(default=None, ge=0, le=100)
    device_id: Optional[str] = None


class FingerprintUpdate(BaseModel):
    fingerprint_data: constr(min_length=1)
    finger_position: Optional[FingerPosition] = None
    quality_score: Optional[int] = Field(default=None, ge=0, le=100)
    device_id: Optional[str] = None


class FingerprintOut(BaseModel):
    id: int
    student_id: int
    finger_position: FingerPosition
    quality_score: Optional[int] = None
    is_verified: bool
    last_verified_at: Optional[datetime] = None
    consent_date: datetime
    retention_end_date: Optional[datetime] = None
    device_id: Optional[str] = None
    enrolled_by: Optional[str] = None

    class Config:
        from_attributes = True


class PurgeResult(BaseModel):
    purged: int
