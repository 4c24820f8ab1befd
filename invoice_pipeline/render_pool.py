"""Process pool that keeps CPU-bound vector renders off the serving threads."""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
from concurrent.futures import Future, ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class RenderPool:
    def __init__(self, max_workers: int) -> None:
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._executor: Optional[ProcessPoolExecutor] = None

    def _create_executor(self) -> ProcessPoolExecutor:
        return ProcessPoolExecutor(
            max_workers=self.max_workers,
            mp_context=mp.get_context("spawn"),
        )

    def _get_executor(self) -> ProcessPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = self._create_executor()
            return self._executor

    def _restart(self, previous: ProcessPoolExecutor) -> ProcessPoolExecutor:
        with self._lock:
            if self._executor is previous:
                logger.warning("Render pool is broken; restarting %d workers", self.max_workers)
                previous.shutdown(wait=False, cancel_futures=True)
                self._executor = self._create_executor()
            if self._executor is None:
                self._executor = self._create_executor()
            return self._executor

    def start(self) -> None:
        self._get_executor()

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        executor = self._get_executor()
        try:
            return executor.submit(fn, *args)
        except BrokenProcessPool:
            return self._restart(executor).submit(fn, *args)

    def shutdown(self) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
