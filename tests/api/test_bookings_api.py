"""
API tests for venues, equipment and bookings
"""
from campushub.constants.constants import UserRole


def window(at, start, end):
    return {"start_time": at(start).isoformat(), "end_time": at(end).isoformat()}


class TestInventoryApi:

    async def test_staff_create_venue(self, client, make_user, auth_headers):
        staff = await make_user(UserRole.technical_staff)

        response = await client.post(
            "/api/v1/venues",
            json={"name": "Conference Room 2", "venue_type": "classroom", "capacity": 40},
            headers=auth_headers(staff),
        )

        assert response.status_code == 201
        assert response.json()["is_available"] is True

    async def test_students_cannot_create_venue(self, client, make_user, auth_headers):
        student = await make_user()

        response = await client.post(
            "/api/v1/venues", json={"name": "Dorm Lounge", "capacity": 20}, headers=auth_headers(student),
        )

        assert response.status_code == 403

    async def test_duplicate_venue_name(self, client, make_user, make_venue, auth_headers):
        venue = await make_venue()
        staff = await make_user(UserRole.technical_staff)

        response = await client.post(
            "/api/v1/venues", json={"name": venue.name, "capacity": 20}, headers=auth_headers(staff),
        )

        assert response.status_code == 409

    async def test_equipment_pool_edit(self, client, make_user, make_equipment, auth_headers):
        equipment = await make_equipment(quantity=8)
        staff = await make_user(UserRole.technical_staff)

        response = await client.patch(
            f"/api/v1/equipment/{equipment.equipment_id}",
            json={"available_quantity": 5},
            headers=auth_headers(staff),
        )

        assert response.status_code == 200
        assert (response.json()["quantity"], response.json()["available_quantity"]) == (8, 5)


class TestVenueBookingApi:

    async def test_book_then_conflict(self, client, make_user, make_venue, auth_headers, at):
        venue = await make_venue()
        teacher = await make_user(UserRole.teacher)
        club_head = await make_user(UserRole.club_head)

        first = await client.post(
            f"/api/v1/resources/{venue.venue_id}/book", json=window(at, 14, 16), headers=auth_headers(teacher),
        )
        assert first.status_code == 201
        assert first.json()["status"] == "approved"
        booking_id = first.json()["booking_id"]

        clash = await client.post(
            f"/api/v1/resources/{venue.venue_id}/book", json=window(at, 15, 17), headers=auth_headers(club_head),
        )
        assert clash.status_code == 409
        assert [c["booking_id"] for c in clash.json()["conflicts"]] == [booking_id]

        adjacent = await client.post(
            f"/api/v1/resources/{venue.venue_id}/book", json=window(at, 16, 18), headers=auth_headers(club_head),
        )
        assert adjacent.status_code == 201

    async def test_availability_lookup(self, client, make_user, make_venue, auth_headers, at):
        venue = await make_venue()
        teacher = await make_user(UserRole.teacher)
        await client.post(
            f"/api/v1/resources/{venue.venue_id}/book", json=window(at, 14, 16), headers=auth_headers(teacher),
        )

        busy = await client.get(
            f"/api/v1/venues/{venue.venue_id}/availability",
            params={"start": at(15).isoformat(), "end": at(17).isoformat()},
            headers=auth_headers(teacher),
        )
        free = await client.get(
            f"/api/v1/venues/{venue.venue_id}/availability",
            params={"start": at(16).isoformat(), "end": at(17).isoformat()},
            headers=auth_headers(teacher),
        )

        assert busy.json()["available"] is False
        assert len(busy.json()["conflicting_bookings"]) == 1
        assert free.json()["available"] is True

    async def test_students_cannot_book(self, client, make_user, make_venue, auth_headers, at):
        venue = await make_venue()
        student = await make_user()

        response = await client.post(
            f"/api/v1/resources/{venue.venue_id}/book", json=window(at, 9, 10), headers=auth_headers(student),
        )

        assert response.status_code == 403

    async def test_backwards_window(self, client, make_user, make_venue, auth_headers, at):
        venue = await make_venue()
        teacher = await make_user(UserRole.teacher)

        response = await client.post(
            f"/api/v1/resources/{venue.venue_id}/book", json=window(at, 12, 10), headers=auth_headers(teacher),
        )

        assert response.status_code == 422

    async def test_unknown_venue(self, client, make_user, auth_headers, at):
        teacher = await make_user(UserRole.teacher)

        booked = await client.post("/api/v1/resources/missing/book", json=window(at, 9, 10), headers=auth_headers(teacher))
        listed = await client.get("/api/v1/resources/missing/bookings", headers=auth_headers(teacher))

        assert booked.status_code == 404
        assert listed.status_code == 404

    async def test_list_venue_bookings(self, client, make_user, make_venue, auth_headers, at):
        venue = await make_venue()
        teacher = await make_user(UserRole.teacher)
        for start, end in ((9, 10), (11, 12)):
            await client.post(
                f"/api/v1/resources/{venue.venue_id}/book", json=window(at, start, end), headers=auth_headers(teacher),
            )

        response = await client.get(f"/api/v1/resources/{venue.venue_id}/bookings", headers=auth_headers(teacher))

        assert [b["start_time"] for b in response.json()] == [at(9).isoformat(), at(11).isoformat()]


class TestEquipmentBookingApi:

    async def test_pool_runs_out(self, client, make_user, make_equipment, auth_headers, at):
        equipment = await make_equipment(quantity=10)
        teacher = await make_user(UserRole.teacher)

        def payload(quantity):
            return {"equipment_id": equipment.equipment_id, "quantity": quantity, **window(at, 9, 12)}

        first = await client.post("/api/v1/equipment-bookings", json=payload(6), headers=auth_headers(teacher))
        assert first.status_code == 201

        too_many = await client.post("/api/v1/equipment-bookings", json=payload(5), headers=auth_headers(teacher))
        assert too_many.status_code == 409
        assert too_many.json()["remaining_quantity"] == 4

        rest = await client.post("/api/v1/equipment-bookings", json=payload(4), headers=auth_headers(teacher))
        assert rest.status_code == 201

        availability = await client.get(
            f"/api/v1/equipment/{equipment.equipment_id}/availability",
            params={"quantity": 1, "start": at(10).isoformat(), "end": at(11).isoformat()},
            headers=auth_headers(teacher),
        )
        assert availability.json()["available"] is False
        assert availability.json()["booked_quantity"] == 10

    async def test_quantity_must_be_positive(self, client, make_user, make_equipment, auth_headers, at):
        equipment = await make_equipment()
        teacher = await make_user(UserRole.teacher)

        response = await client.post(
            "/api/v1/equipment-bookings",
            json={"equipment_id": equipment.equipment_id, "quantity": 0, **window(at, 9, 12)},
            headers=auth_headers(teacher),
        )

        assert response.status_code == 422

    async def test_review_requires_booking_review(self, client, make_user, make_venue, auth_headers, at):
        venue = await make_venue()
        teacher = await make_user(UserRole.teacher)
        booked = await client.post(
            f"/api/v1/resources/{venue.venue_id}/book", json=window(at, 9, 10), headers=auth_headers(teacher),
        )
        booking_id = booked.json()["booking_id"]

        denied = await client.patch(
            f"/api/v1/bookings/venue/{booking_id}/status", json={"status": "rejected"}, headers=auth_headers(teacher),
        )
        assert denied.status_code == 403

        staff = await make_user(UserRole.technical_staff)
        reviewed = await client.patch(
            f"/api/v1/bookings/venue/{booking_id}/status", json={"status": "rejected"}, headers=auth_headers(staff),
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["status"] == "rejected"

        listed = await client.get("/api/v1/bookings", params={"kind": "venue"}, headers=auth_headers(staff))
        assert [b["booking_id"] for b in listed.json()["venue"]] == [booking_id]
        assert listed.json()["equipment"] == []
