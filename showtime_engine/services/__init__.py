from showtime_engine.services.ledger import SeatLedger, LedgerSnapshot, LedgerCorrection
from showtime_engine.services.catalog import ShowtimeCatalog, SlotRequest
from showtime_engine.services.compensation import Compensator
from showtime_engine.services.notifier import Notifier, DatabaseNotifier
from showtime_engine.services.orchestrator import BookingOrchestrator
