"""
Cooperative scheduling helper for long-running imports.
"""

import asyncio
import time
from typing import Callable, TypeVar

from ..config.settings import IMPORT_YIELD_BUDGET

T = TypeVar("T")


class AsyncCoroutineHelper:
    """
    Lets an import hand control back to the event loop periodically.

    The importer calls :meth:`yield_if_needed` between units of work; once
    more than ``budget`` seconds have passed since the last yield, the helper
    suspends for one loop iteration so other tasks (frame rendering, input)
    can run.
    """

    def __init__(self, budget: float = IMPORT_YIELD_BUDGET, clock: Callable[[], float] = time.perf_counter):
        if budget < 0:
            raise ValueError("Yield budget must be non-negative")
        self.budget = budget
        self._clock = clock
        self._slice_start = clock()
        self.yield_count = 0

    async def yield_if_needed(self) -> bool:
        """
        Suspend once if the current time slice is used up.

        Returns:
            True if the helper yielded
        """
        if self._clock() - self._slice_start < self.budget:
            return False
        await asyncio.sleep(0)
        self.yield_count += 1
        self._slice_start = self._clock()
        return True

    async def run_blocking(self, func: Callable[..., T], *args, threaded: bool = True) -> T:
        """
        Run a CPU-bound call, on a worker thread when ``threaded`` is set.

        Args:
            func: Callable to run
            *args: Positional arguments for ``func``
            threaded: Offload to ``asyncio.to_thread`` instead of running inline

        Returns:
            The callable's return value
        """
        if threaded:
            result = await asyncio.to_thread(func, *args)
            self._slice_start = self._clock()
            return result
        return func(*args)
