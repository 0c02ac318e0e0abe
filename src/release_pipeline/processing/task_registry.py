"""Supervised registry for background processing runs.

Every run scheduled by the submission gate is owned by the registry, so
a crash is logged and recorded instead of vanishing, and shutdown can
wait for in-flight runs instead of abandoning them.
"""

import asyncio
import logging
from functools import partial
from typing import Coroutine, Dict, List, Optional, Tuple

from ..exceptions import SchedulingError

logger = logging.getLogger(__name__)


class ProcessingTaskRegistry:
    """Tracks one in-flight asyncio task per release id."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self.failures: List[Tuple[str, BaseException]] = []

    def spawn(self, release_id: str, coro: Coroutine) -> asyncio.Task:
        """Schedule `coro` as the processing run for `release_id`.

        Raises:
            SchedulingError: If a run for the release is already in flight.
        """
        if self.is_running(release_id):
            coro.close()
            raise SchedulingError(f"Release {release_id} is already being processed")

        task = asyncio.get_running_loop().create_task(coro, name=f"process-release-{release_id}")
        self._tasks[release_id] = task
        task.add_done_callback(partial(self._on_done, release_id))
        logger.debug(f"Scheduled processing run for release {release_id}")
        return task

    def _on_done(self, release_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(release_id) is task:
            del self._tasks[release_id]

        if task.cancelled():
            logger.info(f"Processing run for release {release_id} was cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(
                f"Processing run for release {release_id} crashed: {error}",
                exc_info=(type(error), error, error.__traceback__),
            )
            self.failures.append((release_id, error))

    def is_running(self, release_id: str) -> bool:
        task = self._tasks.get(release_id)
        return task is not None and not task.done()

    @property
    def in_flight(self) -> List[str]:
        return [release_id for release_id, task in self._tasks.items() if not task.done()]

    def cancel(self, release_id: str) -> bool:
        """Request cancellation of a release's run. Returns False if none is running."""
        task = self._tasks.get(release_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until no run is in flight.

        Runs scheduled while draining are waited for too.

        Returns:
            True if everything finished, False if the timeout expired first.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while True:
            pending = [task for task in self._tasks.values() if not task.done()]
            if not pending:
                return True
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            _, not_done = await asyncio.wait(pending, timeout=remaining)
            if not_done:
                return False

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """Drain, then cancel whatever is still running and wait for it to unwind."""
        if await self.drain(timeout):
            return

        remaining = [task for task in self._tasks.values() if not task.done()]
        logger.warning(f"Cancelling {len(remaining)} processing run(s) still in flight at shutdown")
        for task in remaining:
            task.cancel()
        await asyncio.gather(*remaining, return_exceptions=True)
