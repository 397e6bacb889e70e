"""In-memory history of recent verification verdicts."""

import threading
from collections import OrderedDict
from typing import List, Optional

from ..config import get_settings
from ..models.schemas import VerificationVerdict


class VerificationHistory:
    """Keeps the most recent verdicts, newest first, keyed by verdict id."""

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is None:
            max_entries = get_settings().history_max_entries
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, VerificationVerdict]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, verdict: VerificationVerdict) -> None:
        with self._lock:
            self._entries[verdict.id] = verdict
            self._entries.move_to_end(verdict.id, last=False)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=True)

    def get(self, verdict_id: str) -> Optional[VerificationVerdict]:
        with self._lock:
            return self._entries.get(verdict_id)

    def list(self) -> List[VerificationVerdict]:
        with self._lock:
            return list(self._entries.values())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
