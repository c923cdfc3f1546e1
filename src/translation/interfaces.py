"""Translation circuit state and error taxonomy."""

import threading
from dataclasses import dataclass, field
from typing import Optional


class TranslationError(Exception):
    """Base class for translation backend failures."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TranslationAuthError(TranslationError):
    """Invalid credentials or quota/permission denied. Trips the circuit."""


class TranslationTransientError(TranslationError):
    """Any other backend failure. Affects only the current call."""


@dataclass
class CircuitState:
    """Process-wide switch that stays open once tripped.

    Shared by every source in a run; ``trip`` is guarded so concurrent callers
    cannot lose the disable signal.
    """
    disabled: bool = False
    reason: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def trip(self, reason: str) -> bool:
        """Disable permanently. Returns True only for the call that tripped it."""
        with self._lock:
            if self.disabled:
                return False
            self.disabled = True
            self.reason = reason
            return True
