"""
Retrying seat release used to undo a reservation whose booking never landed.

A reservation and the booking row are written by different components, so a
failed booking write is followed by ``release`` as the inverse operation.
Submitted releases run on a worker pool and finish even when the request
that triggered them has already gone away.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional
from uuid import UUID

from showtime_engine.core.config import settings
from showtime_engine.core.errors import InternalError
from showtime_engine.services.ledger import LedgerSnapshot, SeatLedger

logger = logging.getLogger(__name__)


class Compensator:
    def __init__(
        self,
        ledger: SeatLedger,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        workers: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._ledger = ledger
        self.max_attempts = max_attempts or settings.COMPENSATION_MAX_ATTEMPTS
        self.backoff_seconds = settings.COMPENSATION_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(
            max_workers=workers or settings.COMPENSATION_WORKERS,
            thread_name_prefix="seat-compensation",
        )
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()

    def release_with_retry(self, showtime_id: UUID, count: int, context: Optional[dict] = None) -> LedgerSnapshot:
        """
        Release seats, retrying transient failures with exponential backoff.

        Raises ``InternalError`` flagged ``reconciliation_needed`` once the
        attempts are used up.
        """
        context = context or {}
        delay = self.backoff_seconds
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._ledger.release(showtime_id, count)
            except InternalError as exc:
                last_error = exc
                logger.warning(
                    "Seat release attempt %d/%d failed for showtime %s (%d seat(s)): %s",
                    attempt, self.max_attempts, showtime_id, count, exc.message,
                )
                if attempt < self.max_attempts:
                    self._sleep(delay)
                    delay *= 2

        logger.error(
            "Reconciliation needed: could not release %d seat(s) on showtime %s after %d attempt(s); context=%s",
            count, showtime_id, self.max_attempts, context,
        )
        raise InternalError(
            "Seat release failed; the seat ledger needs reconciliation",
            {"showtime_id": str(showtime_id), "seats": count, **{k: str(v) for k, v in context.items()}},
            reconciliation_needed=True,
        ) from last_error

    def submit_release(self, showtime_id: UUID, count: int, context: Optional[dict] = None) -> Future:
        """Schedule ``release_with_retry`` in the background and return its future."""
        future = self._executor.submit(self.release_with_retry, showtime_id, count, context)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted release has finished. False on timeout."""
        with self._pending_lock:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
