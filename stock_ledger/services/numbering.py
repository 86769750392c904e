"""
Identifier & Numbering Service

Transaction numbers look like ``TXN-20261019143000123456-0000000042``: a
timestamp that never moves backwards followed by a process-wide counter, so
numbers are unique within the process and sort in generation order.
"""

import threading
import uuid
from datetime import datetime
from typing import Callable, Optional

from stock_ledger.utils.time_utils import utcnow

# Shared by every NumberingService in the process
_counter_lock = threading.Lock()
_sequence = 0
_last_stamp: Optional[datetime] = None


def _next_stamp_and_sequence(now: datetime):
    global _sequence, _last_stamp
    with _counter_lock:
        if _last_stamp is not None and now < _last_stamp:
            now = _last_stamp
        _last_stamp = now
        _sequence += 1
        return now, _sequence


class NumberingService:
    """Mints stock record ids and transaction numbers"""

    def __init__(self, prefix: str = 'TXN', clock: Callable[[], datetime] = utcnow):
        if not prefix or '-' in prefix:
            raise ValueError('Transaction number prefix must be non-empty and contain no dashes')
        self.prefix = prefix
        self._clock = clock

    def next_transaction_no(self) -> str:
        stamp, sequence = _next_stamp_and_sequence(self._clock())
        return f"{self.prefix}-{stamp:%Y%m%d%H%M%S%f}-{sequence:010d}"

    def next_stock_id(self) -> str:
        return str(uuid.uuid4())
