from datetime import datetime, timedelta

import pytest

from conftest import make_book, make_student
from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.models.models import CCTVEventType, EntryMethod, FingerprintRecord
from unilibrary.services.announcements import AnnouncementService
from unilibrary.services.borrowing import BorrowService
from unilibrary.services.cctv import CCTVEventService
from unilibrary.services.fingerprints import FingerprintService, hash_template
from unilibrary.services.presence import PresenceService
from unilibrary.services.reports import ReportService, period_window

NOW = datetime(2024, 3, 15, 12, 0)


def test_expired_and_withdrawn_announcements_are_hidden(db):
    service = AnnouncementService(db)
    current = service.create("Exam week", "Extended hours")
    service.create("Old news", "Gone", expires_at=NOW - timedelta(days=1))
    withdrawn = service.create("Typo", "Oops")
    service.delete(withdrawn.id)

    assert [a.id for a in service.active(now=NOW)] == [current.id]
    assert len(service.all()) == 3


def test_announcement_endpoints(client, librarian_headers, student_headers):
    r = client.post("/announcements", json={"title": "Closed Friday", "content": "Maintenance"},
                    headers=librarian_headers)
    assert r.status_code == 200
    announcement_id = r.json()["id"]
    assert r.json()["created_by"] == "librarian"

    r = client.put(f"/announcements/{announcement_id}", json={"title": "Closed Saturday"},
                   headers=librarian_headers)
    assert r.json()["title"] == "Closed Saturday"
    assert r.json()["content"] == "Maintenance"

    assert len(client.get("/announcements", headers=student_headers).json()) == 1
    assert client.get("/announcements/all", headers=student_headers).status_code == 403
    client.delete(f"/announcements/{announcement_id}", headers=librarian_headers)
    assert client.get("/announcements", headers=student_headers).json() == []


def test_cctv_event_review_cycle(db, student):
    entry = PresenceService(db).record_entry(student.id, EntryMethod.RFID_CARD, now=NOW)
    service = CCTVEventService(db)
    event = service.record({
        "event_type": CCTVEventType.ENTRY_EXIT,
        "camera_id": "CAM-1",
        "location": "Main gate",
        "capture_ref": "s3://captures/1.jpg",
        "event_time": NOW,
        "library_entry_id": entry.id,
    })
    assert event.student_id == student.id

    flagged = service.flag_for_review(event.id, "Tailgating?")
    assert flagged.needs_review is True
    assert [e.id for e in service.search(needs_review=True)] == [event.id]

    reviewed = service.mark_reviewed(event.id, "Two students, both scanned", reviewed_by="librarian")
    assert reviewed.needs_review is False
    assert reviewed.reviewed_by == "librarian"
    assert reviewed.review_time is not None
    assert service.search(needs_review=True) == []

    service.record({"event_type": CCTVEventType.PERSON_DETECTED, "camera_id": "CAM-2",
                    "location": "Stacks", "capture_ref": "ref-2", "event_time": NOW})
    stats = service.type_distribution(NOW - timedelta(hours=1), NOW + timedelta(hours=1))
    assert stats == {"ENTRY_EXIT": 1, "PERSON_DETECTED": 1}

    service.delete(event.id)
    with pytest.raises(NotFoundError):
        service.get(event.id)


def test_cctv_link_to_missing_entry(db):
    service = CCTVEventService(db)
    event = service.record({"event_type": CCTVEventType.SUSPICIOUS_ACTIVITY, "camera_id": "CAM-3",
                            "location": "Basement", "capture_ref": "ref-3"})
    with pytest.raises(NotFoundError):
        service.link_to_entry(event.id, 404)


def test_cctv_requires_librarian(client, assistant_headers):
    r = client.get("/cctv-events/needs-review", headers=assistant_headers)
    assert r.status_code == 403


def test_fingerprint_enrolment_stores_only_a_hash(db, student):
    service = FingerprintService(db, retention_days=30)
    record = service.enroll(student.id, "raw-template", now=NOW)
    assert record.template_hash == hash_template("raw-template")
    assert record.template_hash != "raw-template"
    assert record.retention_end_date == NOW + timedelta(days=30)

    with pytest.raises(InvalidStateError):
        service.enroll(student.id, "again", now=NOW)

    assert service.verify(student.id, "raw-template", now=NOW) is True
    db.refresh(record)
    assert record.last_verified_at == NOW
    assert service.verify(student.id, "other", now=NOW) is False


def test_purge_removes_only_expired_fingerprints(db, student):
    other = make_student(db, student_id="20240002")
    service = FingerprintService(db)
    old = service.enroll(student.id, "a", now=NOW)
    fresh = service.enroll(other.id, "b", now=NOW)
    old.retention_end_date = NOW - timedelta(days=1)
    db.commit()

    assert [r.id for r in service.expired(now=NOW)] == [old.id]
    assert service.purge_expired(now=NOW) == 1
    assert [r.id for r in db.query(FingerprintRecord).all()] == [fresh.id]
    assert [r.id for r in service.active(now=NOW)] == [fresh.id]


def test_period_window():
    start, end = period_window("daily", NOW)
    assert start == datetime(2024, 3, 15) and end == NOW
    assert period_window("weekly", NOW)[0] == NOW - timedelta(days=7)
    assert period_window("yearly", NOW)[0] == NOW - timedelta(days=365)
    assert period_window("whatever", NOW)[0] == NOW - timedelta(days=30)


def test_librarian_and_student_summaries(db, student):
    book = make_book(db, title="Dune", author="Herbert")
    presence = PresenceService(db)
    presence.record_entry(student.id, EntryMethod.QR, now=NOW - timedelta(days=1, hours=2))
    presence.record_exit(student.id, now=NOW - timedelta(days=1, hours=1))
    borrowing = BorrowService(db)
    record = borrowing.borrow_book(student.id, book.id, 7, now=NOW - timedelta(days=10))
    borrowing.return_book(record.id, now=NOW - timedelta(days=1))

    report = ReportService(db).librarian_summary("weekly", now=NOW)
    assert report["total_students"] == 1
    assert report["total_visits"] == 1
    assert report["unique_visitors"] == 1
    assert report["avg_visit_duration_minutes"] == 60
    assert report["visits_by_department"] == {"COMPUTER SCIENCE": 1}
    assert report["top_visitors"][0]["student_id"] == student.student_id
    # borrowed before the weekly window opened
    assert report["total_borrows"] == 0

    report = ReportService(db).librarian_summary("monthly", now=NOW)
    assert report["total_borrows"] == 1
    assert report["total_returns"] == 1
    assert report["overdue_books"] == 1
    assert report["top_borrowed_books"] == [
        {"title": "Dune", "author": "Herbert", "category": None, "borrow_count": 1}
    ]

    mine = ReportService(db).student_summary(student.id, "monthly", now=NOW)
    assert mine["total_fines"] == pytest.approx(1.0)
    assert mine["borrow_history"][0]["status"] == "OVERDUE"


def test_reports_endpoints(client, db, student, book, librarian_headers, student_headers):
    BorrowService(db).borrow_book(student.id, book.id, 14)

    r = client.get("/reports/export/top-borrowed.csv", headers=librarian_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.text.splitlines() == ["title,author,borrow_count", "Test Book,Author,1"]

    r = client.get(f"/reports/student/{student.id}/summary", headers=student_headers)
    assert r.status_code == 200
    assert r.json()["total_borrows"] == 1
    assert client.get("/reports/librarian/summary", headers=student_headers).status_code == 403
