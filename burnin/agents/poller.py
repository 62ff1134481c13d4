"""
Poller
======
Bounded status polling used by the build resolver.

Polling Contract:
    - `update_status` is called first, then once after every interval.
    - Polling stops as soon as the returned status is not a wait status.
    - The built-in wait statuses are created, waiting_for_resource, preparing
      and pending; callers may add more (e.g. "running").
    - Once the accumulated sleep time reaches the timeout, PollTimeoutError
      is raised without calling `update_status` again.
    - Exceptions raised by `update_status` propagate immediately. Only a
      wait status keeps the loop going; hard errors are never retried.

The sleep function is injected so tests run without wall-clock waits.
"""
import logging
import time
from typing import Callable

from burnin.core.constants import DEFAULT_WAIT_STATUSES, POLL_INTERVAL_SECONDS
from burnin.core.errors import PollTimeoutError

logger = logging.getLogger(__name__)


class Poller:
    """Re-query a status until it leaves its wait states or time runs out."""

    def __init__(
        self,
        sleep: Callable[[float], None] = time.sleep,
        interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self.sleep = sleep
        self.interval = interval

    def poll(
        self,
        timeout: float,
        initial_status: str,
        update_status: Callable[[], str],
        *additional_wait_statuses: str,
    ) -> str:
        """
        Return the first status outside the wait set.

        `initial_status` is only reported in logs; the loop always asks
        `update_status` for a fresh value before deciding.
        """
        wait_statuses = DEFAULT_WAIT_STATUSES | frozenset(additional_wait_statuses)
        status = initial_status
        runtime = 0.0
        logger.debug("Polling (initial status '%s', timeout %gs)", status, timeout)

        while True:
            status = update_status()
            if status not in wait_statuses:
                return status

            self.sleep(self.interval)
            runtime += self.interval
            if runtime >= timeout:
                raise PollTimeoutError(
                    f"timed out waiting for status change (last status: '{status}', waited {runtime:g}s)"
                )
