"""
Status polling for generation jobs.

SmartPoller is the pull-side fallback to provider webhooks: it reads a job
status endpoint until the job is terminal, the attempt budget runs out, or
the caller stops it.
"""
import asyncio
import inspect
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from refashion.core.exceptions import JobFailedError, PollingTimeoutError
from refashion.utils.logging import get_logger

logger = get_logger(__name__)

Callback = Callable[[Any], Any]


class PollingState(str, Enum):
    """Lifecycle of a polling session."""

    IDLE = "idle"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class SmartPoller:
    """
    Polls a job status URL with a slowly growing delay.

    Only one session runs at a time. Starting a new one cancels the previous
    session first, so there is never more than one request in flight or one
    pending wait.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        on_success: Optional[Callback] = None,
        on_failure: Optional[Callback] = None,
        max_attempts: int = 60,
        initial_delay: float = 1.0,
        max_delay: float = 5.0,
        error_retry_delay: float = 5.0,
    ):
        self.client = client
        self.on_success = on_success
        self.on_failure = on_failure
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.error_retry_delay = error_retry_delay

        self.state = PollingState.IDLE
        self.attempts = 0
        self.data: Optional[Dict[str, Any]] = None
        self.error: Optional[Exception] = None
        self._task: Optional[asyncio.Task] = None

    def next_delay(self) -> float:
        """Delay before the next cycle, in seconds."""
        return min(self.initial_delay * (1.1 ** self.attempts), self.max_delay)

    def start(self, url: Optional[str], should_poll: bool = True) -> Optional[asyncio.Task]:
        """
        Start a new polling session, cancelling any previous one.

        Args:
            url: Status URL; None leaves the poller idle
            should_poll: Whether polling is wanted at all

        Returns:
            The session task, or None when nothing is polled
        """
        self._cancel()
        self.attempts = 0
        self.data = None
        self.error = None

        if not url or not should_poll:
            self.state = PollingState.IDLE
            return None

        self.state = PollingState.POLLING
        self._task = asyncio.create_task(self._run(url))
        return self._task

    def stop(self) -> None:
        """Cancel the current session without invoking callbacks."""
        self._cancel()
        self.state = PollingState.IDLE

    async def wait(self) -> None:
        """Wait for the current session to finish or be cancelled."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, url: str) -> None:
        while True:
            try:
                response = await self.client.get(url, headers={"Cache-Control": "no-cache"})
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as e:
                # Request errors are counted but never end the session
                self.attempts += 1
                logger.warning(
                    "Status poll failed",
                    url=url,
                    attempt=self.attempts,
                    error=f"{type(e).__name__}: {e}",
                )
                await asyncio.sleep(self.error_retry_delay)
                continue

            self.data = payload
            status = payload.get("status") if isinstance(payload, dict) else None

            if status == "completed":
                self.state = PollingState.COMPLETED
                logger.info("Polling finished", url=url, status=status, attempts=self.attempts)
                await self._notify(self.on_success, payload)
                return

            if status == "failed":
                self.state = PollingState.FAILED
                self.error = JobFailedError(payload)
                logger.info("Polling finished", url=url, status=status, attempts=self.attempts)
                await self._notify(self.on_failure, self.error)
                return

            if self.attempts >= self.max_attempts:
                self.state = PollingState.TIMED_OUT
                self.error = PollingTimeoutError(self.attempts, url=url)
                logger.warning("Polling timed out", url=url, attempts=self.attempts)
                await self._notify(self.on_failure, self.error)
                return

            self.attempts += 1
            await asyncio.sleep(self.next_delay())

    @staticmethod
    async def _notify(callback: Optional[Callback], value: Any) -> None:
        if callback is None:
            return
        result = callback(value)
        if inspect.isawaitable(result):
            await result
