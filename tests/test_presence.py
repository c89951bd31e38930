from datetime import datetime, time

import pytest

from conftest import make_student
from unilibrary.core.errors import ForbiddenError, InvalidStateError
from unilibrary.models.models import EntryMethod, LibraryHours
from unilibrary.services.hours import LibraryHoursService, is_open_at
from unilibrary.services.presence import AUTO_EXIT_CAPTURE_REF, PresenceService

MONDAY_NOON = datetime(2024, 1, 8, 12, 0)
MONDAY_EVENING = datetime(2024, 1, 8, 19, 0)


@pytest.fixture
def weekday_hours(db):
    return LibraryHoursService(db).save_hours(time(8, 0), time(18, 0), "MON,TUE,WED,THU,FRI")


def test_open_check_is_inclusive_on_both_ends(weekday_hours):
    assert is_open_at(weekday_hours, datetime(2024, 1, 8, 8, 0))
    assert is_open_at(weekday_hours, datetime(2024, 1, 8, 18, 0))
    assert not is_open_at(weekday_hours, datetime(2024, 1, 8, 18, 0, 1))
    assert not is_open_at(weekday_hours, datetime(2024, 1, 13, 12, 0))  # Saturday


def test_no_hours_configured_means_open(db):
    assert LibraryHoursService(db).is_open(MONDAY_EVENING)


def test_saving_hours_keeps_one_active_row(db, weekday_hours):
    service = LibraryHoursService(db)
    latest = service.save_hours(time(9, 0), time(17, 0), "mon, sat")
    assert db.query(LibraryHours).count() == 2
    assert db.query(LibraryHours).filter(LibraryHours.active.is_(True)).count() == 1
    assert service.current().id == latest.id
    assert latest.working_days == "MON,SAT"


def test_saving_invalid_hours_is_rejected(db):
    service = LibraryHoursService(db)
    with pytest.raises(InvalidStateError):
        service.save_hours(time(18, 0), time(8, 0), "MON")
    with pytest.raises(InvalidStateError):
        service.save_hours(time(8, 0), time(18, 0), "MONDAY")


def test_second_entry_without_exit_fails(db, student):
    presence = PresenceService(db)
    presence.record_entry(student.id, EntryMethod.QR, now=MONDAY_NOON)
    with pytest.raises(InvalidStateError, match="already has an open entry"):
        presence.record_entry(student.id, EntryMethod.QR, now=MONDAY_NOON)


def test_exit_without_entry_fails(db, student):
    with pytest.raises(InvalidStateError, match="No active entry found"):
        PresenceService(db).record_exit(student.id)


def test_entry_then_exit(db, student):
    presence = PresenceService(db)
    entry = presence.record_entry(student.id, EntryMethod.RFID_CARD, capture_ref="RFID-1", now=MONDAY_NOON)
    assert presence.count_currently_inside() == 1

    closed = presence.record_exit(student.id, capture_ref="RFID-1", now=datetime(2024, 1, 8, 14, 0))
    assert closed.id == entry.id
    assert closed.exit_time == datetime(2024, 1, 8, 14, 0)
    assert presence.count_currently_inside() == 0


def test_close_entry_is_idempotent(db, student):
    presence = PresenceService(db)
    entry = presence.record_entry(student.id, EntryMethod.QR, now=MONDAY_NOON)
    presence.close_entry(entry.id, exit_time=datetime(2024, 1, 8, 13, 0), capture_ref="first")
    again = presence.close_entry(entry.id, exit_time=datetime(2024, 1, 8, 15, 0), capture_ref="second")
    assert again.exit_time == datetime(2024, 1, 8, 13, 0)
    assert again.exit_capture_ref == "first"


def test_exit_cannot_precede_entry(db, student):
    presence = PresenceService(db)
    entry = presence.record_entry(student.id, EntryMethod.QR, now=MONDAY_NOON)
    with pytest.raises(InvalidStateError, match="before entry time"):
        presence.close_entry(entry.id, exit_time=datetime(2024, 1, 8, 11, 59))
    with pytest.raises(InvalidStateError, match="before entry time"):
        presence.record_exit(student.id, now=datetime(2024, 1, 8, 9, 0))
    db.refresh(entry)
    assert entry.exit_time is None


def test_entry_refused_when_library_closed(db, student, weekday_hours):
    with pytest.raises(ForbiddenError, match="Library is closed"):
        PresenceService(db).record_entry(student.id, EntryMethod.QR, now=MONDAY_EVENING)


def test_sweep_closes_open_entries_after_hours(db, student, weekday_hours):
    other = make_student(db, student_id="20240002")
    presence = PresenceService(db)
    first = presence.record_entry(student.id, EntryMethod.QR, now=MONDAY_NOON)
    second = presence.record_entry(other.id, EntryMethod.QR, now=MONDAY_NOON)

    assert presence.auto_exit_if_library_closed(now=MONDAY_EVENING) == 2
    for entry in (first, second):
        db.refresh(entry)
        assert entry.exit_time == MONDAY_EVENING
        assert entry.exit_capture_ref == AUTO_EXIT_CAPTURE_REF


def test_sweep_does_nothing_while_open(db, student, weekday_hours):
    presence = PresenceService(db)
    entry = presence.record_entry(student.id, EntryMethod.QR, now=MONDAY_NOON)
    assert presence.auto_exit_if_library_closed(now=datetime(2024, 1, 8, 15, 0)) == 0
    db.refresh(entry)
    assert entry.exit_time is None


def test_daily_statistics(db, student):
    presence = PresenceService(db)
    presence.record_entry(student.id, EntryMethod.QR, now=datetime(2024, 1, 8, 9, 0))
    presence.record_exit(student.id, now=datetime(2024, 1, 8, 10, 0))
    presence.record_entry(student.id, EntryMethod.QR, now=datetime(2024, 1, 9, 9, 0))

    stats = presence.daily_statistics(datetime(2024, 1, 1), datetime(2024, 1, 31))
    assert stats == [
        {"date": datetime(2024, 1, 8).date(), "entries": 1, "exits": 1},
        {"date": datetime(2024, 1, 9).date(), "entries": 1, "exits": 0},
    ]
