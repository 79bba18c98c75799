"""Time-ordered business IDs: `off_…`, `lst_…`, `txn_…`.

The numeric part is a 63-bit snowflake (ms timestamp | worker | sequence)
rendered as fixed-width decimal, so IDs sharing a prefix sort by creation
time both numerically and as strings. Cursor pagination (`id < :cursor`)
relies on that.

IDs are minted before a transaction opens so the offer, listing and
transaction rows can reference each other inside one atomic write.
"""

import threading
import time

from config.settings import settings

OFFER_PREFIX = "off"
LISTING_PREFIX = "lst"
TRANSACTION_PREFIX = "txn"

_EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
_WORKER_BITS = 10
_SEQUENCE_BITS = 12
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1
_WIDTH = 19  # digits in 2**63 - 1


class IdGenerator:
    def __init__(self, worker_id: int = 0) -> None:
        if not 0 <= worker_id < (1 << _WORKER_BITS):
            raise ValueError(f"worker_id must be 0-{(1 << _WORKER_BITS) - 1}, got {worker_id}")
        self._worker_id = worker_id
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next_int(self) -> int:
        with self._lock:
            now_ms = time.time_ns() // 1_000_000
            if now_ms < self._last_ms:
                # Clock stepped backwards; keep issuing from the last timestamp
                now_ms = self._last_ms
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = time.time_ns() // 1_000_000
            else:
                self._sequence = 0
            self._last_ms = now_ms
            return (
                ((now_ms - _EPOCH_MS) << (_WORKER_BITS + _SEQUENCE_BITS))
                | (self._worker_id << _SEQUENCE_BITS)
                | self._sequence
            )

    def next_id(self, prefix: str) -> str:
        return f"{prefix}_{self.next_int():0{_WIDTH}d}"


_default_generator = IdGenerator(settings.ID_WORKER_ID)


def generate_id(prefix: str) -> str:
    return _default_generator.next_id(prefix)
