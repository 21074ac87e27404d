import os
import tempfile

# Must be set before showtime_engine is imported: the engine is built at import time
_db_dir = tempfile.mkdtemp(prefix="showtime-engine-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"

from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from showtime_engine.db.base import Base
from showtime_engine.db.session import engine, SessionLocal
from showtime_engine.main import app
from showtime_engine.services import registry
from showtime_engine.services.catalog import ShowtimeCatalog
from showtime_engine.services.compensation import Compensator
from showtime_engine.services.ledger import SeatLedger
from showtime_engine.services.orchestrator import BookingOrchestrator


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify(self, kind, payload):
        self.events.append((kind, payload))


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cinema(db):
    """One theater with a 100-seat and a 3-seat screen, and a 120 minute movie."""
    theater = registry.register_theater(
        db, "Galaxy Cinema", "MG Road", [("Screen 1", 100), ("Screen 2", 3)]
    )
    screens = {s.name: s for s in registry.list_screens(db, theater.id)}
    movie = registry.register_movie(db, "Inception", 120, genre="Sci-Fi", language="English")
    # Each register_* call commits; reload before detaching so tests can read ids
    for instance in (theater, movie, *screens.values()):
        db.refresh(instance)
    db.expunge_all()
    return SimpleNamespace(
        theater=theater,
        screen=screens["Screen 1"],
        small_screen=screens["Screen 2"],
        movie=movie,
    )


@pytest.fixture
def show_start():
    return datetime(2030, 1, 15, 14, 0)


@pytest.fixture
def ledger():
    return SeatLedger(SessionLocal)


@pytest.fixture
def catalog(ledger):
    return ShowtimeCatalog(SessionLocal, ledger=ledger)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def compensator(ledger):
    comp = Compensator(ledger, max_attempts=3, backoff_seconds=0, workers=2)
    yield comp
    comp.shutdown(wait=True)


@pytest.fixture
def orchestrator(catalog, ledger, notifier, compensator):
    return BookingOrchestrator(
        catalog, ledger, notifier=notifier, compensator=compensator, session_factory=SessionLocal
    )


@pytest.fixture
def client():
    return TestClient(app)
