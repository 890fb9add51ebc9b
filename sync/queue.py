"""
Offline write queue.

Writes that fail because the backing store is unreachable are kept in the
local store and replayed FIFO later. Replay is at-least-once: if the store
applied a write but the acknowledgement was lost, the replay applies it again.
Transaction ids are assigned by the store, so such a retry records a second
transaction. Nothing here deduplicates.

With the Supabase backend an order is two inserts (header, then lines). A
transport error between them queues the whole order while the header is
already stored, so replay adds a second header and the first one is left
without lines.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field

from django.utils import timezone

from tenancy.exceptions import ReplayFailure

logger = logging.getLogger(__name__)


@dataclass
class QueuedWrite:
    payload: dict
    enqueued_at: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempts: int = 0
    last_error: str = ''

    def as_dict(self):
        return {
            'id': self.id,
            'payload': self.payload,
            'enqueued_at': self.enqueued_at,
            'attempts': self.attempts,
            'last_error': self.last_error,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            payload=data.get('payload') or {},
            enqueued_at=data.get('enqueued_at') or '',
            id=data.get('id') or uuid.uuid4().hex,
            attempts=data.get('attempts') or 0,
            last_error=data.get('last_error') or '',
        )


@dataclass
class ReplayReport:
    replayed: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    remaining: int = 0
    skipped: bool = False

    def as_dict(self):
        return {
            'replayed': self.replayed,
            'failed': [{'id': failure.entry_id, 'error': str(failure)} for failure in self.failed],
            'remaining': self.remaining,
            'skipped': self.skipped,
        }


class OfflineWriteQueue:
    def __init__(self, store):
        self.store = store
        self._lock = threading.Lock()
        self._replaying = False

    def entries(self):
        return [QueuedWrite.from_dict(data) for data in self.store.load_queue()]

    def __len__(self):
        return len(self.store.load_queue())

    def enqueue(self, payload):
        entry = QueuedWrite(payload=payload, enqueued_at=timezone.now().isoformat())
        with self._lock:
            queued = self.store.load_queue()
            queued.append(entry.as_dict())
            self.store.save_queue(queued)
        logger.info(f"Queued offline write {entry.id} ({payload.get('op')})")
        return entry

    async def replay_all(self, write):
        """
        Attempt every queued write in FIFO order with the async callable write(payload).

        A failing entry stays queued and the scan goes on. Entries enqueued
        while the replay runs are kept. A replay already in progress makes
        this call a no-op.
        """
        with self._lock:
            if self._replaying:
                logger.info("Offline replay already running; skipping")
                return ReplayReport(skipped=True, remaining=len(self.store.load_queue()))
            self._replaying = True

        try:
            report = ReplayReport()
            errors = {}
            for entry in self.entries():
                try:
                    await write(entry.payload)
                except Exception as exc:
                    failure = ReplayFailure(f"{entry.payload.get('op')} failed on replay: {exc}", entry_id=entry.id)
                    report.failed.append(failure)
                    errors[entry.id] = str(exc)
                    logger.warning(f"Offline write {entry.id} failed again: {exc}")
                else:
                    report.replayed.append(entry.id)

            with self._lock:
                replayed = set(report.replayed)
                kept = []
                for data in self.store.load_queue():
                    if data.get('id') in replayed:
                        continue
                    if data.get('id') in errors:
                        data = {**data, 'attempts': (data.get('attempts') or 0) + 1, 'last_error': errors[data['id']]}
                    kept.append(data)
                self.store.save_queue(kept)
                report.remaining = len(kept)
        finally:
            with self._lock:
                self._replaying = False

        logger.info(
            f"Offline replay finished: {len(report.replayed)} replayed, "
            f"{len(report.failed)} failed, {report.remaining} queued"
        )
        return report
