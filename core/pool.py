"""
Bounded worker pool: at most ``size`` units run at once, submit blocks
while the pool is saturated, join() is the completion barrier.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional

log = logging.getLogger(__name__)


class WorkerPool:
    def __init__(self, size: int = 1000, name: str = "worker"):
        if size < 1:
            raise ValueError("pool size must be >= 1")
        self.size = size
        self._slots = threading.BoundedSemaphore(size)
        self._executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix=name)
        self._cond = threading.Condition()
        self._in_flight = 0
        self._submitted = 0
        self._errors: List[BaseException] = []
        self._joined = False

    @property
    def submitted(self) -> int:
        return self._submitted

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        if self._joined:
            raise RuntimeError("pool already joined")
        self._slots.acquire()
        with self._cond:
            self._in_flight += 1
            self._submitted += 1
        try:
            fut = self._executor.submit(fn, *args)
        except BaseException:
            self._finish(None)
            raise
        fut.add_done_callback(self._finish)
        return fut

    def _finish(self, fut: Optional[Future]):
        if fut is not None and not fut.cancelled():
            exc = fut.exception()
            if exc is not None:
                log.error("worker unit failed: %r", exc)
                with self._cond:
                    self._errors.append(exc)
        self._slots.release()
        with self._cond:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._cond.notify_all()

    def join(self):
        """Block until every submitted unit finished; re-raise the first unit error."""
        with self._cond:
            while self._in_flight:
                self._cond.wait()
        if not self._joined:
            self._joined = True
            self._executor.shutdown(wait=True)
        if self._errors:
            raise self._errors[0]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.join()
            return
        # already failing: still honour the barrier but keep the pending error
        with self._cond:
            while self._in_flight:
                self._cond.wait()
        self._joined = True
        self._executor.shutdown(wait=True)
