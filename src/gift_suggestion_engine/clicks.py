"""Fire-and-forget recording of outbound product clicks."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import logging


_LOGGER = logging.getLogger(__name__)
_CLICK_EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="click-record")


class ClickRecorder:
    def __init__(self, db, executor: ThreadPoolExecutor | None = None) -> None:
        self.db = db
        self.executor = executor or _CLICK_EXECUTOR

    def _write(self, link: str) -> None:
        try:
            self.db.record_click(link)
        except Exception:
            _LOGGER.warning("Could not record click for %s.", link, exc_info=True)

    def record(self, link: str) -> Future | None:
        """Schedule a counter increment for link and return immediately.

        The returned future is only useful to tests; callers never wait on it.
        """
        safe_link = str(link or "").strip()
        if not safe_link:
            return None
        try:
            return self.executor.submit(self._write, safe_link)
        except RuntimeError:
            _LOGGER.warning("Click executor unavailable; dropping click for %s.", safe_link)
            return None
