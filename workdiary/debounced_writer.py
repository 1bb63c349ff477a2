"""
Debounced Writer: coalesces a burst of edits to today's diary text into one save.

Every ``edit`` shows the new text in the Local Mirror at once and re-arms an
idle timer. Only when no edit has arrived for ``delay`` seconds is the latest
text sent. Closing the writer flushes an armed save; ``cancel`` drops it.
"""
import asyncio
import logging
from typing import Optional, Set

from workdiary.config import SAVE_DEBOUNCE_SECONDS, SAVED_MESSAGE_SECONDS, STATUS_MESSAGE_SECONDS
from workdiary.status import Notice

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save. Your changes are kept here and will be sent with your next edit."


class DebouncedWriter:
    def __init__(self, synchronizer, delay: float = SAVE_DEBOUNCE_SECONDS, caption: Optional[Notice] = None):
        self.synchronizer = synchronizer
        self.delay = delay
        self.caption = caption or Notice()
        self.text: Optional[str] = None
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

    @property
    def saving(self) -> bool:
        """True from the moment a save is dispatched until its response arrives."""
        return self._in_flight > 0

    @property
    def pending(self) -> bool:
        """True while a save is armed but not yet dispatched."""
        return self._timer is not None and not self._timer.done()

    def edit(self, text: str):
        if self._closed:
            raise RuntimeError("DebouncedWriter is closed")
        self.text = text
        self.synchronizer.set_draft(text)
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._write_when_idle(text))
        self._tasks.add(self._timer)
        self._timer.add_done_callback(self._tasks.discard)

    async def _write_when_idle(self, text: str):
        await asyncio.sleep(self.delay)
        self._timer = None
        await self._write(text)

    async def _write(self, text: str) -> bool:
        self._in_flight += 1
        self._idle.clear()
        try:
            saved = await self.synchronizer.save_content(text)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

        if saved:
            self.synchronizer.clear_draft(text)
            self.caption.info("Saved", SAVED_MESSAGE_SECONDS)
        else:
            logger.warning("Diary text save failed, keeping local draft")
            self.caption.error(SAVE_FAILED_MESSAGE, STATUS_MESSAGE_SECONDS)
        return saved

    async def flush(self) -> bool:
        """Send an armed save right away. Returns True when nothing was left unsaved."""
        if not self.pending:
            return True
        self._cancel_timer()
        return await self._write(self.text)

    def cancel(self):
        """Drop an armed save without sending it."""
        self._cancel_timer()

    async def aclose(self, flush: bool = True):
        if flush:
            await self.flush()
        else:
            self.cancel()
        self._closed = True
        await self._idle.wait()

    def _cancel_timer(self):
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
