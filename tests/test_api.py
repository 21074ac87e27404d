import uuid
from decimal import Decimal

API = "/api/v1"


def _assign(client, cinema, *slots):
    payload = {
        "movie_id": str(cinema.movie.id),
        "theater_id": str(cinema.theater.id),
        "show_times": [
            {"screen_id": str(screen.id), "start_time": start, "price": "12.50"}
            for screen, start in slots
        ],
    }
    return client.post(f"{API}/showtimes/assign", json=payload)


def _book(client, cinema, showtime_id, seats, user_id=None):
    payload = {
        "user_id": str(user_id or uuid.uuid4()),
        "movie_id": str(cinema.movie.id),
        "theater_id": str(cinema.theater.id),
        "showtime_id": showtime_id,
        "seats": seats,
    }
    return client.post(f"{API}/bookings/", json=payload)


def test_assign_scenario(client, cinema):
    response = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00"))
    assert response.status_code == 201
    body = response.json()
    assert len(body["showtime_ids"]) == 1
    assert body["showtimes"][0]["end_time"] == "2030-01-15T16:00:00"

    response = _assign(client, cinema, (cinema.screen, "2030-01-15T15:30:00"))
    assert response.status_code == 409
    error = response.json()
    assert error["error"] == "conflict"
    assert error["showtime_id"] == body["showtime_ids"][0]
    assert error["screen"] == "Screen 1"

    response = _assign(client, cinema, (cinema.screen, "2030-01-15T16:00:00"))
    assert response.status_code == 201


def test_assign_batch_conflict_creates_nothing(client, cinema):
    response = _assign(
        client,
        cinema,
        (cinema.screen, "2030-01-15T10:00:00"),
        (cinema.small_screen, "2030-01-15T10:00:00"),
        (cinema.screen, "2030-01-15T11:00:00"),
    )
    assert response.status_code == 409
    assert response.json()["index"] == 2

    listing = client.get(f"{API}/theaters/{cinema.theater.id}/showtimes")
    assert listing.status_code == 200
    assert listing.json() == []


def test_assign_validates_body(client, cinema):
    payload = {"movie_id": str(cinema.movie.id), "theater_id": str(cinema.theater.id), "show_times": []}
    assert client.post(f"{API}/showtimes/assign", json=payload).status_code == 422

    response = _assign(client, cinema, (cinema.screen, "2001-01-15T14:00:00"))
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_booking_flow(client, cinema):
    showtime_id = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00")).json()["showtime_ids"][0]
    user_id = uuid.uuid4()

    response = _book(client, cinema, showtime_id, 60, user_id=user_id)
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "active"
    assert Decimal(booking["total_price"]) == Decimal("750.00")
    assert booking["showtime"]["screen_name"] == "Screen 1"

    availability = client.get(f"{API}/showtimes/{showtime_id}/availability").json()
    assert availability == {"showtime_id": showtime_id, "capacity": 100, "reserved": 60, "available": 40}

    response = _book(client, cinema, showtime_id, 41)
    assert response.status_code == 409
    assert response.json()["error"] == "insufficient_seats"
    assert response.json()["available"] == 40

    response = client.patch(f"{API}/bookings/{booking['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = client.patch(f"{API}/bookings/{booking['id']}/cancel")
    assert response.status_code == 409
    assert response.json()["error"] == "already_cancelled"

    availability = client.get(f"{API}/showtimes/{showtime_id}/availability").json()
    assert availability["available"] == 100

    history = client.get(f"{API}/bookings/", params={"user_id": str(user_id)}).json()
    assert history["total"] == 1
    assert history["data"][0]["showtime"]["movie_title"] == "Inception"

    notifications = client.get(f"{API}/users/{user_id}/notifications").json()
    assert notifications["total"] == 2
    assert {n["type"] for n in notifications["data"]} == {"booking_confirmed", "booking_cancelled"}


def test_booking_errors(client, cinema):
    showtime_id = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00")).json()["showtime_ids"][0]

    assert _book(client, cinema, showtime_id, 0).status_code == 422
    assert _book(client, cinema, str(uuid.uuid4()), 1).status_code == 404
    assert client.get(f"{API}/bookings/{uuid.uuid4()}").status_code == 404
    assert client.patch(f"{API}/bookings/{uuid.uuid4()}/cancel").status_code == 404


def test_get_booking_checks_owner(client, cinema):
    showtime_id = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00")).json()["showtime_ids"][0]
    owner = uuid.uuid4()
    booking_id = _book(client, cinema, showtime_id, 1, user_id=owner).json()["id"]

    assert client.get(f"{API}/bookings/{booking_id}", params={"user_id": str(owner)}).status_code == 200
    assert client.get(f"{API}/bookings/{booking_id}", params={"user_id": str(uuid.uuid4())}).status_code == 404


def test_screens_schedule_and_capacity(client, cinema):
    screens = client.get(f"{API}/theaters/{cinema.theater.id}/screens").json()
    assert [s["name"] for s in screens] == ["Screen 1", "Screen 2"]

    showtime_id = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00")).json()["showtime_ids"][0]
    _book(client, cinema, showtime_id, 30)

    schedule = client.get(f"{API}/screens/{cinema.screen.id}/schedule").json()
    assert schedule["slots"][0]["reserved"] == 30

    response = client.patch(f"{API}/screens/{cinema.screen.id}/capacity", json={"capacity": 20})
    assert response.status_code == 409
    response = client.patch(f"{API}/screens/{cinema.screen.id}/capacity", json={"capacity": 120})
    assert response.status_code == 200
    assert response.json()["capacity"] == 120


def test_delete_showtime(client, cinema):
    showtime_id = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00")).json()["showtime_ids"][0]
    booking_id = _book(client, cinema, showtime_id, 2).json()["id"]

    assert client.delete(f"{API}/showtimes/{showtime_id}").status_code == 409

    client.patch(f"{API}/bookings/{booking_id}/cancel")
    assert client.delete(f"{API}/showtimes/{showtime_id}").status_code == 200
    assert client.get(f"{API}/showtimes/{showtime_id}").status_code == 404


def test_notifications_can_be_filtered_and_marked_read(client, cinema):
    showtime_id = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00")).json()["showtime_ids"][0]
    user_id = uuid.uuid4()
    booking_id = _book(client, cinema, showtime_id, 2, user_id=user_id).json()["id"]
    client.patch(f"{API}/bookings/{booking_id}/cancel")

    url = f"{API}/users/{user_id}/notifications"
    listing = client.get(url).json()
    assert listing["total"] == 2
    by_type = {n["type"]: n for n in listing["data"]}
    confirmed = by_type["booking_confirmed"]
    assert confirmed["title"] == "Booking Confirmed"
    assert confirmed["reference_id"] == booking_id
    assert confirmed["is_read"] is False

    response = client.patch(f"{url}/{confirmed['id']}/read")
    assert response.status_code == 200
    assert response.json()["is_read"] is True

    unread = client.get(url, params={"unread_only": True}).json()
    assert unread["total"] == 1
    assert unread["data"][0]["type"] == "booking_cancelled"


def test_marking_someone_elses_notification_is_not_found(client, cinema):
    showtime_id = _assign(client, cinema, (cinema.screen, "2030-01-15T14:00:00")).json()["showtime_ids"][0]
    user_id = uuid.uuid4()
    _book(client, cinema, showtime_id, 1, user_id=user_id)
    notif_id = client.get(f"{API}/users/{user_id}/notifications").json()["data"][0]["id"]

    response = client.patch(f"{API}/users/{uuid.uuid4()}/notifications/{notif_id}/read")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
    assert response.json()["message"] == "Notification not found"
