import enum
from datetime import datetime

from sqlalchemy import (Boolean, Column, DateTime, Enum, Float, ForeignKey, Index, Integer, String, Text,
                        Time)
from sqlalchemy.orm import relationship

from unilibrary.core.database import Base


class BorrowStatus(str, enum.Enum):
    BORROWED = "BORROWED"
    OVERDUE = "OVERDUE"
    RETURNED = "RETURNED"
    # Declared for data compatibility; no operation produces these yet.
    LOST = "LOST"
    DAMAGED = "DAMAGED"


class EntryMethod(str, enum.Enum):
    RFID_CARD = "RFID_CARD"
    QR = "QR"
    FINGERPRINT = "FINGERPRINT"
    MANUAL_CHECK = "MANUAL_CHECK"


class LibrarianRole(str, enum.Enum):
    ADMIN = "ADMIN"
    LIBRARIAN = "LIBRARIAN"
    ASSISTANT = "ASSISTANT"


class CCTVEventType(str, enum.Enum):
    PERSON_DETECTED = "PERSON_DETECTED"
    FACE_RECOGNIZED = "FACE_RECOGNIZED"
    ENTRY_EXIT = "ENTRY_EXIT"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    EMERGENCY_EXIT_USED = "EMERGENCY_EXIT_USED"
    RESTRICTED_AREA_ACCESS = "RESTRICTED_AREA_ACCESS"


class FingerPosition(str, enum.Enum):
    RIGHT_THUMB = "RIGHT_THUMB"
    RIGHT_INDEX = "RIGHT_INDEX"
    RIGHT_MIDDLE = "RIGHT_MIDDLE"
    RIGHT_RING = "RIGHT_RING"
    RIGHT_LITTLE = "RIGHT_LITTLE"
    LEFT_THUMB = "LEFT_THUMB"
    LEFT_INDEX = "LEFT_INDEX"
    LEFT_MIDDLE = "LEFT_MIDDLE"
    LEFT_RING = "LEFT_RING"
    LEFT_LITTLE = "LEFT_LITTLE"


class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=False, index=True)
    isbn = Column(String, unique=True, index=True, nullable=False)
    category = Column(String, nullable=True, index=True)
    publisher = Column(String, nullable=True)
    publication_year = Column(Integer, nullable=True)
    location_code = Column(String, nullable=True)
    rfid_tag = Column(String, unique=True, nullable=True)
    description = Column(Text, nullable=True)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1, index=True)
    total_borrows = Column(Integer, nullable=False, default=0)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)

    borrow_records = relationship("BorrowRecord", back_populates="book")

Index('ix_books_title_author', Book.title, Book.author)


class Student(Base):
    __tablename__ = "students"
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(8), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    university_card_id = Column(String(50), unique=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    phone_number = Column(String(20), nullable=True)
    department = Column(String(100), nullable=False)
    major = Column(String(100), nullable=True)
    minor_subject = Column(String(100), nullable=True)
    year_level = Column(Integer, nullable=True)
    rfid_uid = Column(String, unique=True, nullable=True, index=True)
    fingerprint_ref = Column(String, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)

    borrow_records = relationship("BorrowRecord", back_populates="student")
    entries = relationship("LibraryEntry", back_populates="student")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Librarian(Base):
    __tablename__ = "librarians"
    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(String(20), unique=True, nullable=False)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False)
    role = Column(Enum(LibrarianRole), nullable=False, default=LibrarianRole.LIBRARIAN)
    active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class Department(Base):
    __tablename__ = "departments"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class StudentMajorMinor(Base):
    __tablename__ = "student_major_minor"
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), unique=True, nullable=False)
    major_department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)
    minor_department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    student = relationship("Student")
    major_department = relationship("Department", foreign_keys=[major_department_id])
    minor_department = relationship("Department", foreign_keys=[minor_department_id])


class BorrowRecord(Base):
    __tablename__ = "borrow_records"
    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    borrow_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False, index=True)
    return_date = Column(DateTime, nullable=True, index=True)
    status = Column(Enum(BorrowStatus), nullable=False, default=BorrowStatus.BORROWED)
    fine_amount = Column(Float, nullable=False, default=0.0)
    notes = Column(String(500), nullable=True)
    processed_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)

    book = relationship("Book", back_populates="borrow_records")
    student = relationship("Student", back_populates="borrow_records")


class LibraryEntry(Base):
    __tablename__ = "library_entries"
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    entry_time = Column(DateTime, nullable=False, index=True)
    exit_time = Column(DateTime, nullable=True, index=True)
    entry_method = Column(Enum(EntryMethod), nullable=False)
    entry_capture_ref = Column(String, nullable=True)
    exit_capture_ref = Column(String, nullable=True)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)

    student = relationship("Student", back_populates="entries")
    cctv_events = relationship("CCTVEvent", back_populates="library_entry")


class LibraryHours(Base):
    __tablename__ = "library_hours"
    id = Column(Integer, primary_key=True, index=True)
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    working_days = Column(String(50), nullable=False)
    active = Column(Boolean, nullable=False, default=True, index=True)
    set_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class Announcement(Base):
    __tablename__ = "announcements"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    expires_at = Column(DateTime, nullable=True)


class CCTVEvent(Base):
    __tablename__ = "cctv_events"
    id = Column(Integer, primary_key=True, index=True)
    event_time = Column(DateTime, nullable=False, index=True)
    event_type = Column(Enum(CCTVEventType), nullable=False, index=True)
    camera_id = Column(String, nullable=False)
    location = Column(String, nullable=False, index=True)
    capture_ref = Column(String, nullable=False)
    library_entry_id = Column(Integer, ForeignKey("library_entries.id"), nullable=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=True)
    recognition_confidence = Column(Integer, nullable=True)
    needs_review = Column(Boolean, nullable=False, default=False, index=True)
    review_notes = Column(String(500), nullable=True)
    reviewed_by = Column(String, nullable=True)
    review_time = Column(DateTime, nullable=True)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    library_entry = relationship("LibraryEntry", back_populates="cctv_events")


class FingerprintRecord(Base):
    __tablename__ = "fingerprint_records"
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), unique=True, nullable=False)
    template_hash = Column(String, nullable=False)
    finger_position = Column(Enum(FingerPosition), nullable=False, default=FingerPosition.RIGHT_INDEX)
    quality_score = Column(Integer, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    last_verified_at = Column(DateTime, nullable=True)
    consent_date = Column(DateTime, nullable=False)
    retention_end_date = Column(DateTime, nullable=True, index=True)
    device_id = Column(String, nullable=True)
    enrolled_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)

    student = relationship("Student")
