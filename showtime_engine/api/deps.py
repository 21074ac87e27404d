from functools import lru_cache

from showtime_engine.db.session import SessionLocal
from showtime_engine.services.catalog import ShowtimeCatalog
from showtime_engine.services.compensation import Compensator
from showtime_engine.services.ledger import SeatLedger
from showtime_engine.services.notifier import DatabaseNotifier
from showtime_engine.services.orchestrator import BookingOrchestrator


# One instance of each engine component per process, so the per-key locks are shared
@lru_cache
def get_ledger() -> SeatLedger:
    return SeatLedger(SessionLocal)


@lru_cache
def get_catalog() -> ShowtimeCatalog:
    return ShowtimeCatalog(SessionLocal, ledger=get_ledger())


@lru_cache
def get_compensator() -> Compensator:
    return Compensator(get_ledger())


@lru_cache
def get_orchestrator() -> BookingOrchestrator:
    return BookingOrchestrator(
        get_catalog(),
        get_ledger(),
        notifier=DatabaseNotifier(SessionLocal),
        compensator=get_compensator(),
        session_factory=SessionLocal,
    )
