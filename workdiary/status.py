"""
Short-lived user-facing status messages ("Saved", "Failed to add comment", ...).
"""
import time
from typing import Callable, Optional

INFO = "info"
ERROR = "error"


class Notice:
    """Holds one message at a time; it reads as empty once its lifetime is over."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._text: Optional[str] = None
        self._kind = INFO
        self._expires_at = 0.0

    def show(self, text: str, ttl: float, kind: str = INFO):
        self._text = text
        self._kind = kind
        self._expires_at = self._clock() + ttl

    def info(self, text: str, ttl: float):
        self.show(text, ttl, INFO)

    def error(self, text: str, ttl: float):
        self.show(text, ttl, ERROR)

    @property
    def message(self) -> Optional[str]:
        if self._text is not None and self._clock() >= self._expires_at:
            self._text = None
        return self._text

    @property
    def kind(self) -> Optional[str]:
        return self._kind if self.message is not None else None

    @property
    def is_error(self) -> bool:
        return self.kind == ERROR
