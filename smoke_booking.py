"""
Walk a running server through schedule -> book -> cancel.

    python smoke_booking.py <movie_id> <theater_id> <screen_id> [start_iso]
"""
import sys
import uuid
from datetime import datetime, timedelta, timezone

import requests

BASE_URL = "http://127.0.0.1:8000/api/v1"

def smoke(movie_id, theater_id, screen_id, start_time=None):
    start_time = start_time or (datetime.now(timezone.utc) + timedelta(days=1)).replace(
        minute=0, second=0, microsecond=0
    ).isoformat()

    # 1. Schedule one showing
    payload = {
        "movie_id": movie_id,
        "theater_id": theater_id,
        "show_times": [{"screen_id": screen_id, "start_time": start_time, "price": "9.50"}],
    }
    response = requests.post(f"{BASE_URL}/showtimes/assign", json=payload)
    print(f"Assign: {response.status_code} {response.text}")
    if response.status_code != 201:
        return

    showtime_id = response.json()["showtime_ids"][0]

    # 2. Book two seats
    user_id = str(uuid.uuid4())
    booking_payload = {
        "user_id": user_id,
        "movie_id": movie_id,
        "theater_id": theater_id,
        "showtime_id": showtime_id,
        "seats": 2,
    }
    response = requests.post(f"{BASE_URL}/bookings/", json=booking_payload)
    print(f"Book: {response.status_code} {response.text}")
    if response.status_code != 201:
        return
    booking_id = response.json()["id"]

    response = requests.get(f"{BASE_URL}/showtimes/{showtime_id}/availability")
    print(f"Availability: {response.status_code} {response.text}")

    # 3. Cancel, then cancel again (expect 409)
    for _ in range(2):
        response = requests.patch(f"{BASE_URL}/bookings/{booking_id}/cancel")
        print(f"Cancel: {response.status_code} {response.text}")

    response = requests.get(f"{BASE_URL}/users/{user_id}/notifications")
    print(f"Notifications: {response.status_code} {response.text}")

if __name__ == "__main__":
    if len(sys.argv) < 4:
        print(__doc__)
        sys.exit(1)
    smoke(*sys.argv[1:5])
