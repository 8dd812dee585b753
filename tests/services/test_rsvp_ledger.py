"""
Tests for RSVP registration, capacity and check-in
"""
import asyncio
from datetime import datetime

import pytest
from sqlalchemy import select

from campushub.constants.constants import (
    EventStatus, RegistrationType, RsvpStatus, UserRole, VerificationStatus,
)
from campushub.core.exceptions import (
    CapacityExceeded, ForbiddenError, InvalidStateError, NotFoundError,
)
from campushub.models.rsvp import EventRsvp
from campushub.services.ApprovalWorkflow import ApprovalWorkflow
from campushub.services.RsvpLedger import RSVP_NOT_FOUND, RsvpLedger


async def fetch_rsvp(session_factory, rsvp_number):
    async with session_factory() as session:
        return (await session.execute(
            select(EventRsvp).where(EventRsvp.rsvp_number == rsvp_number)
        )).scalar_one()


class TestRegistration:

    async def test_first_rsvp_creates_a_row(self, db, make_user, make_event):
        event = await make_event()
        student = await make_user()

        rsvp, created = await RsvpLedger(db).rsvp(event.event_id, student)

        assert created is True
        assert rsvp.status == RsvpStatus.attending
        assert rsvp.verification_status == VerificationStatus.pending
        assert rsvp.rsvp_number.startswith("RSVP-")

    async def test_repeat_rsvp_updates_in_place(self, db, make_user, make_event):
        event = await make_event()
        student = await make_user()
        ledger = RsvpLedger(db)

        first, _ = await ledger.rsvp(event.event_id, student)
        number, rsvp_id = first.rsvp_number, first.rsvp_id
        second, created = await ledger.rsvp(
            event.event_id, student, RsvpStatus.maybe, RegistrationType.volunteer, {"shirt": "M"},
        )

        assert created is False
        assert second.rsvp_id == rsvp_id
        assert second.rsvp_number == number
        assert second.status == RsvpStatus.maybe
        assert second.registration_type == RegistrationType.volunteer
        assert second.form_data == {"shirt": "M"}

        rows = (await db.execute(select(EventRsvp).where(EventRsvp.event_id == event.event_id))).scalars().all()
        assert len(rows) == 1
        await db.commit()

    async def test_unknown_event(self, db, make_user):
        student = await make_user()

        with pytest.raises(NotFoundError):
            await RsvpLedger(db).rsvp("no-such-event", student)

    async def test_event_must_be_live(self, db, make_user, make_event):
        event = await make_event(organizer=await make_user(UserRole.club_head))
        student = await make_user()

        assert event.status == EventStatus.pending
        with pytest.raises(InvalidStateError):
            await RsvpLedger(db).rsvp(event.event_id, student)

    async def test_cancelled_event_refuses_rsvps(self, db, make_user, make_event):
        hod = await make_user(UserRole.hod)
        event = await make_event(organizer=hod)
        await ApprovalWorkflow(db).cancel_event(event.event_id, hod)
        student = await make_user()

        with pytest.raises(InvalidStateError):
            await RsvpLedger(db).rsvp(event.event_id, student)

    async def test_registration_deadline(self, db, make_user, make_event):
        event = await make_event(registration_deadline=datetime(2020, 1, 1))
        student = await make_user()

        with pytest.raises(InvalidStateError, match="deadline"):
            await RsvpLedger(db).rsvp(event.event_id, student)

    async def test_division_restriction(self, db, make_user, make_event):
        event = await make_event(division_restriction="First Year")
        fresher = await make_user(division="First Year")
        senior = await make_user(division="Second Year")
        ledger = RsvpLedger(db)

        with pytest.raises(ForbiddenError):
            await ledger.rsvp(event.event_id, senior)
        _, created = await ledger.rsvp(event.event_id, fresher)
        assert created is True

    async def test_department_restriction(self, db, make_user, make_event):
        event = await make_event(department_restriction="Computer Science")
        outsider = await make_user(department="Mechanical")

        with pytest.raises(ForbiddenError):
            await RsvpLedger(db).rsvp(event.event_id, outsider)


class TestCapacity:

    async def test_last_seat_then_full(self, db, make_user, make_event):
        event = await make_event(max_attendees=2)
        ledger = RsvpLedger(db)

        await ledger.rsvp(event.event_id, await make_user())
        await ledger.rsvp(event.event_id, await make_user())

        with pytest.raises(CapacityExceeded) as exc:
            await ledger.rsvp(event.event_id, await make_user())
        assert exc.value.extra == {"max_attendees": 2, "registered": 2}

    async def test_maybe_takes_a_seat(self, db, make_user, make_event):
        event = await make_event(max_attendees=1)
        ledger = RsvpLedger(db)
        await ledger.rsvp(event.event_id, await make_user(), RsvpStatus.maybe)

        with pytest.raises(CapacityExceeded):
            await ledger.rsvp(event.event_id, await make_user())

    async def test_declining_never_hits_capacity(self, db, make_user, make_event):
        event = await make_event(max_attendees=1)
        ledger = RsvpLedger(db)
        await ledger.rsvp(event.event_id, await make_user())

        rsvp, created = await ledger.rsvp(event.event_id, await make_user(), RsvpStatus.not_attending)

        assert created is True
        assert rsvp.status == RsvpStatus.not_attending

    async def test_seat_holder_can_change_answer_when_full(self, db, make_user, make_event):
        event = await make_event(max_attendees=1)
        holder = await make_user()
        ledger = RsvpLedger(db)
        await ledger.rsvp(event.event_id, holder)

        rsvp, _ = await ledger.rsvp(event.event_id, holder, RsvpStatus.maybe)

        assert rsvp.status == RsvpStatus.maybe

    async def test_declining_frees_the_seat(self, db, make_user, make_event):
        event = await make_event(max_attendees=1)
        holder = await make_user()
        ledger = RsvpLedger(db)
        await ledger.rsvp(event.event_id, holder)
        await ledger.rsvp(event.event_id, holder, RsvpStatus.not_attending)

        _, created = await ledger.rsvp(event.event_id, await make_user())

        assert created is True

    async def test_concurrent_rsvps_never_overbook(self, session_factory, make_user, make_event):
        event = await make_event(max_attendees=3)
        students = [await make_user() for _ in range(7)]

        async def attempt(student):
            async with session_factory() as session:
                try:
                    await RsvpLedger(session).rsvp(event.event_id, student)
                    return "ok"
                except CapacityExceeded:
                    return "full"

        results = await asyncio.gather(*(attempt(s) for s in students))

        assert results.count("ok") == 3
        assert results.count("full") == 4
        async with session_factory() as session:
            rows = (await session.execute(
                select(EventRsvp).where(EventRsvp.event_id == event.event_id)
            )).scalars().all()
        assert len(rows) == 3
        assert len({r.rsvp_number for r in rows}) == 3


class TestCheckIn:

    @pytest.fixture
    async def registered(self, db, make_user, make_event):
        """(event_id, rsvp_number, attendee email) for one attending student"""
        event = await make_event()
        student = await make_user()
        rsvp, _ = await RsvpLedger(db).rsvp(event.event_id, student)
        return event.event_id, rsvp.rsvp_number, student.email

    async def test_scan_marks_attended(self, db, session_factory, make_user, registered):
        event_id, number, email = registered
        staff = await make_user(UserRole.technical_staff)

        result = await RsvpLedger(db).scan_rsvp(number, event_id, staff)

        assert result.already_checked_in is False
        assert result.attendee.email == email
        stored = await fetch_rsvp(session_factory, number)
        assert stored.verification_status == VerificationStatus.attended
        assert stored.checked_in_at is not None
        assert stored.checked_in_by == staff.user_id

    async def test_second_scan_reports_duplicate(self, db, session_factory, make_user, registered):
        event_id, number, _ = registered
        staff = await make_user(UserRole.technical_staff)
        ledger = RsvpLedger(db)
        await ledger.scan_rsvp(number, event_id, staff)
        first_seen = (await fetch_rsvp(session_factory, number)).checked_in_at

        result = await ledger.scan_rsvp(number, event_id, staff)

        assert result.already_checked_in is True
        assert (await fetch_rsvp(session_factory, number)).checked_in_at == first_seen

    async def test_scanner_input_is_normalized(self, db, make_user, registered):
        event_id, number, _ = registered
        staff = await make_user(UserRole.technical_staff)

        result = await RsvpLedger(db).scan_rsvp(f"  {number.lower()}\n", event_id, staff)

        assert result.already_checked_in is False
        assert result.rsvp.is_checked_in is True

    async def test_code_typed_without_hyphens(self, db, make_user, registered):
        event_id, number, _ = registered
        staff = await make_user(UserRole.technical_staff)
        spaced = number.replace("-", " ").lower()

        result = await RsvpLedger(db).scan_rsvp(spaced, event_id, staff)

        assert result.rsvp.rsvp_number == number
        assert result.already_checked_in is False

    async def test_wrong_event_and_unknown_code_look_the_same(self, db, make_user, make_event, registered):
        event_id, number, _ = registered
        other = await make_event()
        staff = await make_user(UserRole.technical_staff)
        ledger = RsvpLedger(db)

        with pytest.raises(NotFoundError) as wrong_event:
            await ledger.scan_rsvp(number, other.event_id, staff)
        with pytest.raises(NotFoundError) as unknown_code:
            await ledger.scan_rsvp("RSVP-ZZZZ-ZZZZ", event_id, staff)
        with pytest.raises(NotFoundError) as unknown_event:
            await ledger.scan_rsvp(number, "no-such-event", staff)

        assert wrong_event.value.detail == unknown_code.value.detail == unknown_event.value.detail == RSVP_NOT_FOUND

    async def test_students_cannot_scan(self, db, make_user, registered):
        event_id, number, _ = registered
        student = await make_user()

        with pytest.raises(ForbiddenError):
            await RsvpLedger(db).scan_rsvp(number, event_id, student)

    async def test_organizer_can_scan_own_event(self, db, make_user, make_event):
        organizer = await make_user(UserRole.hod)
        event = await make_event(organizer=organizer)
        rsvp, _ = await RsvpLedger(db).rsvp(event.event_id, await make_user())

        result = await RsvpLedger(db).scan_rsvp(rsvp.rsvp_number, event.event_id, organizer)

        assert result.already_checked_in is False

    async def test_manual_check_in_matches_scan(self, db, session_factory, make_user, registered):
        event_id, number, email = registered
        staff = await make_user(UserRole.technical_staff)
        ledger = RsvpLedger(db)

        result = await ledger.manual_check_in(email.upper(), event_id, staff)
        assert result.already_checked_in is False
        assert (await fetch_rsvp(session_factory, number)).verification_status == VerificationStatus.attended

        again = await ledger.scan_rsvp(number, event_id, staff)
        assert again.already_checked_in is True

    async def test_manual_check_in_unknown_email(self, db, make_user, registered):
        event_id, _, _ = registered
        staff = await make_user(UserRole.technical_staff)

        with pytest.raises(NotFoundError):
            await RsvpLedger(db).manual_check_in("nobody@example.com", event_id, staff)

    async def test_verify_then_check_in(self, db, session_factory, make_user, registered):
        event_id, number, _ = registered
        staff = await make_user(UserRole.technical_staff)
        rsvp_id = (await fetch_rsvp(session_factory, number)).rsvp_id
        ledger = RsvpLedger(db)

        verified = await ledger.verify_registration(rsvp_id, staff)
        assert verified.verification_status == VerificationStatus.verified

        result = await ledger.scan_rsvp(number, event_id, staff)
        assert result.already_checked_in is False
        assert result.rsvp.verification_status == VerificationStatus.attended

    async def test_verify_never_downgrades_attended(self, db, session_factory, make_user, registered):
        event_id, number, _ = registered
        staff = await make_user(UserRole.technical_staff)
        rsvp_id = (await fetch_rsvp(session_factory, number)).rsvp_id
        ledger = RsvpLedger(db)
        await ledger.scan_rsvp(number, event_id, staff)

        rsvp = await ledger.verify_registration(rsvp_id, staff)

        assert rsvp.verification_status == VerificationStatus.attended

    async def test_re_rsvp_keeps_attendance(self, db, session_factory, make_user, make_event):
        event = await make_event()
        student = await make_user()
        staff = await make_user(UserRole.technical_staff)
        ledger = RsvpLedger(db)
        rsvp, _ = await ledger.rsvp(event.event_id, student)
        number = rsvp.rsvp_number
        await ledger.scan_rsvp(number, event.event_id, staff)

        await ledger.rsvp(event.event_id, student, RsvpStatus.maybe)

        assert (await fetch_rsvp(session_factory, number)).verification_status == VerificationStatus.attended


class TestQueries:

    async def test_summary_counts(self, db, make_user, make_event):
        event = await make_event(max_attendees=10)
        staff = await make_user(UserRole.technical_staff)
        ledger = RsvpLedger(db)
        going, _ = await ledger.rsvp(event.event_id, await make_user())
        going_number = going.rsvp_number
        await ledger.rsvp(event.event_id, await make_user())
        await ledger.rsvp(event.event_id, await make_user(), RsvpStatus.maybe)
        await ledger.rsvp(event.event_id, await make_user(), RsvpStatus.not_attending)
        await ledger.scan_rsvp(going_number, event.event_id, staff)

        summary = await ledger.check_in_summary(event.event_id, staff)
        await db.commit()

        assert summary == {
            "event_id": event.event_id,
            "max_attendees": 10,
            "registered": 3,
            "remaining": 7,
            "attending": 2,
            "maybe": 1,
            "not_attending": 1,
            "verified": 0,
            "attended": 1,
        }

    async def test_unbounded_event_has_no_remaining(self, db, make_user, make_event):
        event = await make_event()
        staff = await make_user(UserRole.technical_staff)

        summary = await RsvpLedger(db).check_in_summary(event.event_id, staff)
        await db.commit()

        assert summary["remaining"] is None
        assert summary["registered"] == 0

    async def test_list_rsvps_is_staff_only(self, db, make_user, make_event):
        event = await make_event()
        student = await make_user()
        staff = await make_user(UserRole.technical_staff)
        ledger = RsvpLedger(db)
        await ledger.rsvp(event.event_id, student)

        rows = await ledger.list_rsvps(event.event_id, staff)
        assert [user.email for _, user in rows] == [student.email]
        pending = await ledger.list_rsvps(event.event_id, staff, VerificationStatus.attended)
        assert pending == []
        await db.commit()

        with pytest.raises(ForbiddenError):
            await ledger.list_rsvps(event.event_id, student)
        await db.rollback()

    async def test_my_rsvps_in_start_order(self, db, make_user, make_event, at):
        later = await make_event(start_date=at(10, day=2), end_date=at(12, day=2))
        sooner = await make_event()
        student = await make_user()
        ledger = RsvpLedger(db)
        await ledger.rsvp(later.event_id, student)
        await ledger.rsvp(sooner.event_id, student, RsvpStatus.maybe)

        mine = await ledger.my_rsvps(student)
        await db.commit()

        assert [event.event_id for _, event in mine] == [sooner.event_id, later.event_id]
        assert [rsvp.status for rsvp, _ in mine] == [RsvpStatus.maybe, RsvpStatus.attending]

    async def test_lookup_by_number(self, db, make_user, make_event):
        event = await make_event()
        rsvp, _ = await RsvpLedger(db).rsvp(event.event_id, await make_user())

        found = await RsvpLedger(db).get_by_number(rsvp.rsvp_number.lower())

        assert found.rsvp_id == rsvp.rsvp_id
        with pytest.raises(NotFoundError):
            await RsvpLedger(db).get_by_number("RSVP-0000-0000")
        await db.commit()
