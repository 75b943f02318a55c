"""
Identifier minting for ledger entities.

Formats are shared with the audit/reporting surface and must not change:
- Transaction: TX-YYYY-NNNN
- Document:    DOC-<creation epoch millis>
- Event:       evt_<uuid4 hex>
"""

import re
import threading
import time
from typing import Callable, Iterable
from uuid import uuid4

TRANSACTION_ID_PATTERN = re.compile(r"^TX-(\d{4})-(\d{4,})$")
DOCUMENT_ID_PATTERN = re.compile(r"^DOC-\d{13,}$")


def now_millis() -> int:
    return int(time.time() * 1000)


def new_event_id() -> str:
    return f"evt_{uuid4().hex}"


class DocumentIdGenerator:
    """
    Mints ``DOC-<epoch millis>`` ids.

    Two documents created within the same millisecond would collide, so the
    value is forced to be strictly increasing.
    """

    def __init__(self, clock: Callable[[], int] = now_millis) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            millis = max(self._clock(), self._last + 1)
            self._last = millis
        return f"DOC-{millis:013d}"


def next_transaction_id(existing_ids: Iterable[str], year: int) -> str:
    """Next free ``TX-<year>-NNNN`` id after the highest one used that year."""
    highest = 0
    for transaction_id in existing_ids:
        match = TRANSACTION_ID_PATTERN.match(transaction_id)
        if match and int(match.group(1)) == year:
            highest = max(highest, int(match.group(2)))
    return f"TX-{year:04d}-{highest + 1:04d}"
