"""Generic poll loop for asynchronous KIE tasks.

A loop is a single ``tick()`` coroutine driven by ``run()``: the driver
awaits a tick, sleeps for the interval and repeats while the tick asks for
more. Ticks never call themselves, so a loop's stack depth does not grow
with the attempt count. Each tick finishes (including its writes and
broadcast) before the next one starts.

Active loops live in a ``PollRegistry`` keyed by job id, which provides
dedupe and deterministic cancellation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 120
DEFAULT_INTERVAL_SECONDS = 5.0


class TaskDetails(Protocol):
    """Wrapper-level fields shared by every KIE details response."""

    code: int
    msg: str


DetailsT = TypeVar("DetailsT", bound=TaskDetails)

SleepFn = Callable[[float], Awaitable[Any]]


def emit_poll_log(level: int = logging.INFO, **event: Any) -> None:
    """Log one structured poll event as ``[PollEvent] {json}``."""
    payload = {key: value for key, value in event.items() if value is not None}
    logger.log(level, "[PollEvent] %s", json.dumps(payload, default=str))


@dataclass
class PollConfig(Generic[DetailsT]):
    """Everything a poll loop needs to track one KIE task.

    The ``on_*`` callbacks perform persistence and broadcast. ``on_complete``
    returns False when the record claims completion but its data is not
    usable yet; the loop then treats the tick as an ordinary progress tick.
    """

    task_id: str
    label: str
    log_tag: str

    fetch_details: Callable[[str], Awaitable[DetailsT]]
    get_status: Callable[[DetailsT], str | None]
    get_status_error_message: Callable[[DetailsT], str | None]
    is_error: Callable[[str], bool]
    is_complete: Callable[[str], bool]

    on_error: Callable[[str], None]
    on_complete: Callable[[DetailsT], bool]
    on_progress: Callable[[DetailsT], None]

    is_recovery: bool = False
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    interval: float = DEFAULT_INTERVAL_SECONDS
    timeout_message: str | None = None


class PollLoop(Generic[DetailsT]):
    """Polls one KIE task until success, error, timeout or cancellation."""

    def __init__(self, config: PollConfig[DetailsT], sleep: SleepFn = asyncio.sleep) -> None:
        self.config = config
        self.attempts = 0
        self.cancelled = False
        self._sleep = sleep
        self._prefix = "[Recovery]" if config.is_recovery else ""

    @property
    def timeout_message(self) -> str:
        return self.config.timeout_message or f"{self.config.label} timed out"

    def cancel(self) -> None:
        """Stop the loop; no further callbacks run after this returns."""
        self.cancelled = True

    async def run(self) -> None:
        """Drive ticks until the loop reaches a terminal state."""
        try:
            while await self.tick():
                await self._sleep(self.config.interval)
        except asyncio.CancelledError:
            self.cancelled = True
            self._log("cancelled")
            raise

    async def tick(self) -> bool:
        """Run one poll attempt.

        Returns:
            True if another tick should be scheduled.
        """
        if self.cancelled:
            return False

        cfg = self.config
        self.attempts += 1
        self._log("check", detail=f"Checking taskId: {cfg.task_id} for {cfg.label}")

        try:
            details = await cfg.fetch_details(cfg.task_id)
            if self.cancelled:
                return False

            status = cfg.get_status(details)
            self._log("status", status=status, detail=f"Status: {status}")

            # Rejected request: retrying won't help
            if details.code != 200:
                self._fail(details.msg or f"KIE API returned code {details.code}")
                return False

            if status and cfg.is_error(status):
                self._log(
                    "terminal_error", status=status, detail=f"ERROR status detected: {status}"
                )
                self._fail(cfg.get_status_error_message(details) or status)
                return False

            if status and cfg.is_complete(status):
                self._log(
                    "terminal_complete", status=status, detail=f"COMPLETE status detected: {status}"
                )
                if cfg.on_complete(details):
                    return False

            cfg.on_progress(details)

            if self.attempts < cfg.max_attempts:
                self._log(
                    "schedule_next",
                    interval_seconds=cfg.interval,
                    detail=f"Continuing to poll in {cfg.interval} seconds...",
                )
                return True

            self._log("timeout", detail=self.timeout_message)
            self._fail(self.timeout_message)
            return False

        except Exception as e:
            if self.cancelled:
                return False

            message = str(e) or e.__class__.__name__
            self._log("exception", level=logging.ERROR, detail=f"Error: {message}")
            if self.attempts < cfg.max_attempts:
                return True
            self._fail(message)
            return False

    def _fail(self, message: str) -> None:
        self.config.on_error(message)

    def _log(
        self,
        phase: str,
        *,
        level: int = logging.INFO,
        status: str | None = None,
        interval_seconds: float | None = None,
        detail: str | None = None,
    ) -> None:
        cfg = self.config
        emit_poll_log(
            level,
            tag=cfg.log_tag,
            phase=phase,
            task_id=cfg.task_id,
            entity=cfg.label,
            attempt=self.attempts,
            status=status,
            interval_seconds=interval_seconds,
            is_recovery=cfg.is_recovery,
            detail=f"{self._prefix}[{cfg.log_tag} #{self.attempts}] {detail}" if detail else None,
        )


class PollRegistry:
    """Active poll loops of one job type, keyed by job id.

    At most one loop runs per job id. Loops remove themselves when they
    finish; ``cancel`` stops a loop and removes it immediately.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._loops: dict[int, tuple[PollLoop[Any], asyncio.Task[None]]] = {}

    def __contains__(self, job_id: int) -> bool:
        return job_id in self._loops

    def __len__(self) -> int:
        return len(self._loops)

    def start(self, job_id: int, loop: PollLoop[Any]) -> bool:
        """Schedule ``loop`` on the running event loop.

        Returns:
            False if a loop is already active for ``job_id`` (nothing is started).
        """
        if job_id in self._loops:
            emit_poll_log(
                tag="PollRegistry",
                phase="dedupe",
                task_id=loop.config.task_id,
                entity=f"{self.kind} {job_id}",
                is_recovery=loop.config.is_recovery,
                detail=f"[PollRegistry] Poll already active for {self.kind} {job_id}",
            )
            return False

        task = asyncio.get_running_loop().create_task(
            loop.run(), name=f"poll-{self.kind}-{job_id}"
        )
        self._loops[job_id] = (loop, task)
        task.add_done_callback(lambda t: self._on_done(job_id, t))
        return True

    def cancel(self, job_id: int) -> bool:
        """Cancel the loop for ``job_id``. Returns False if none was active."""
        entry = self._loops.pop(job_id, None)
        if entry is None:
            return False
        loop, task = entry
        loop.cancel()
        task.cancel()
        return True

    def cancel_all(self) -> list[asyncio.Task[None]]:
        """Cancel every active loop and return the cancelled tasks."""
        tasks = [task for _, task in self._loops.values()]
        for job_id in list(self._loops):
            self.cancel(job_id)
        return tasks

    async def join(self) -> None:
        """Wait until every currently active loop has finished."""
        tasks = [task for _, task in self._loops.values()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_done(self, job_id: int, task: asyncio.Task[None]) -> None:
        entry = self._loops.get(job_id)
        if entry is not None and entry[1] is task:
            del self._loops[job_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Poll loop for %s %s crashed",
                self.kind,
                job_id,
                exc_info=task.exception(),
            )
