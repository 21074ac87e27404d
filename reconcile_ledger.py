"""
Recompute seat_ledger.reserved from active bookings.

Run after an error flagged ``reconciliation_needed`` was logged, ideally while
no bookings are being made for the affected showtime.

    python reconcile_ledger.py                 # every showtime
    python reconcile_ledger.py <showtime_id>   # one showtime
"""
import logging
import sys
from uuid import UUID

from showtime_engine.core.config import settings
from showtime_engine.services.ledger import SeatLedger


def reconcile_ledger(showtime_id=None):
    ledger = SeatLedger()
    corrections = ledger.reconcile(showtime_id)
    if not corrections:
        print("Seat ledger is consistent.")
        return corrections

    for c in corrections:
        print(f"Showtime {c.showtime_id}: reserved {c.recorded} -> {c.actual}")
    print(f"Corrected {len(corrections)} showtime(s).")
    return corrections

if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    target = UUID(sys.argv[1]) if len(sys.argv) > 1 else None
    reconcile_ledger(target)
