"""In-memory record of review prompts that have already been resolved."""

from __future__ import annotations

import threading
from collections import OrderedDict


class ResolvedPromptLedger:
    """Remember resolved prompt keys so each prompt sends at most one email.

    Entries live for the process lifetime only. Once *capacity* keys are
    held, the oldest key is forgotten first.
    """

    def __init__(self, *, capacity: int = 1024) -> None:
        if capacity <= 0:
            raise ValueError("Ledger capacity must be greater than zero.")

        self._capacity = capacity
        self._lock = threading.Lock()
        self._resolved: OrderedDict[str, None] = OrderedDict()

    def claim(self, key: str) -> bool:
        """Return True if *key* was not yet resolved, marking it resolved."""

        with self._lock:
            if key in self._resolved:
                return False
            self._resolved[key] = None
            while len(self._resolved) > self._capacity:
                self._resolved.popitem(last=False)
            return True
