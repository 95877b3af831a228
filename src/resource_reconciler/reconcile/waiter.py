"""Poll loop that waits for a remote object to reach a target status.

The waiter is a small state machine (POLLING -> CONVERGED | FAILED) with
the probe, clock and sleep injected, so tests can drive it without real
delays.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from ..errors import (
    NotFoundChecksExceeded,
    UnexpectedStateError,
    WaitTimeoutError,
)
from .schema import ProbeResult, ReconcileState, WaitConfig

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[], Awaitable[ProbeResult]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class StatusWaiter:
    """
    Re-probe on a fixed interval until the target status is seen.

    Usage:
        waiter = StatusWaiter(lambda: prober.probe(arn), config)
        result = await waiter.wait()
    """

    def __init__(
        self,
        probe: ProbeFunc,
        config: WaitConfig,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.probe = probe
        self.config = config
        self.clock = clock
        self.sleep = sleep

        self.state = ReconcileState.PENDING
        self.probes = 0
        self.last_result: Optional[ProbeResult] = None
        self.error: Optional[Exception] = None

    async def wait(self) -> ProbeResult:
        """
        Poll until converged, failed or out of time.

        Returns:
            The probe result that completed the wait

        Raises:
            WaitTimeoutError: deadline passed before convergence
            NotFoundChecksExceeded: object stayed invisible too long
            UnexpectedStateError: status outside pending and target
            Exception: any probe error, unchanged
        """
        config = self.config
        deadline = self.clock() + config.timeout
        required = max(config.continuous_target_occurrence, 1)
        target_occurrence = 0
        not_found = 0

        self.state = ReconcileState.POLLING

        while True:
            if self.clock() >= deadline:
                last = self.last_result.status.value if self.last_result else None
                self._fail(WaitTimeoutError(config.timeout, last, self.probes))

            try:
                result = await self.probe()
            except Exception as e:
                self._fail(e)
            self.probes += 1
            self.last_result = result

            if result.status in config.target:
                not_found = 0
                target_occurrence += 1
                if target_occurrence >= required:
                    self.state = ReconcileState.CONVERGED
                    logger.debug(
                        f"Converged on {result.status.value} after {self.probes} probes"
                    )
                    return result
            elif result.gone:
                target_occurrence = 0
                not_found += 1
                if not_found > config.not_found_checks:
                    self._fail(NotFoundChecksExceeded(config.not_found_checks))
            else:
                not_found = 0
                target_occurrence = 0
                if config.pending and result.status not in config.pending:
                    self._fail(
                        UnexpectedStateError(
                            result.raw_status or result.status.value,
                            [s.value for s in config.target],
                        )
                    )

            remaining = deadline - self.clock()
            if remaining > 0:
                await self.sleep(min(config.interval, remaining))

    def _fail(self, error: Exception) -> None:
        self.state = ReconcileState.FAILED
        self.error = error
        logger.debug(f"Wait failed after {self.probes} probes: {error}")
        raise error
