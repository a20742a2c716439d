"""Generation and stem separation pollers plus startup recovery."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from kiemusic.broadcast import BroadcastChannel
from kiemusic.interfaces import IGenerationStore, IKieClient, IStemSeparationStore
from kiemusic.kie.models import MusicDetailsResponse, StemSeparationDetailsResponse
from kiemusic.kie.status import (
    is_complete_status,
    is_error_status,
    is_stem_complete_status,
    is_stem_error_status,
)
from kiemusic.models import Generation, JobStatus, StemSeparation
from kiemusic.polling.engine import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    PollConfig,
    PollLoop,
    PollRegistry,
    SleepFn,
    emit_poll_log,
)
from kiemusic.polling.generation_mapper import map_generation_completion, map_generation_progress
from kiemusic.polling.stem_mapper import map_stem_completion

logger = logging.getLogger(__name__)

GENERATION_TIMEOUT_MESSAGE = "Generation timed out"
STEM_TIMEOUT_MESSAGE = "Stem separation timed out"
GENERATION_INTERRUPTED_MESSAGE = "Generation interrupted before task creation"
STEM_INTERRUPTED_MESSAGE = "Stem separation interrupted before task creation"


class PollingService:
    """Tracks KIE tasks until they finish and reports every change.

    Each tick writes through the stores and pushes the matching event on the
    broadcast channel. Failures never propagate to callers: they end up as
    an ``error`` status plus an ``*_error`` event.
    """

    def __init__(
        self,
        client: IKieClient,
        generations: IGenerationStore,
        stem_separations: IStemSeparationStore,
        channel: BroadcastChannel,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sleep: SleepFn | None = None,
    ) -> None:
        self._client = client
        self._generations = generations
        self._stem_separations = stem_separations
        self._channel = channel
        self.max_attempts = max_attempts
        self.interval = interval
        self._sleep = sleep
        self._generation_polls = PollRegistry("generation")
        self._stem_polls = PollRegistry("stem separation")

    # ------------------------------------------------------------------
    # Generation polling
    # ------------------------------------------------------------------

    def poll_for_results(
        self, generation_id: int, task_id: str, *, is_recovery: bool = False
    ) -> bool:
        """Start polling a generation task in the background.

        Returns:
            False if this generation is already being polled.
        """
        generations = self._generations
        channel = self._channel

        def on_error(message: str) -> None:
            generations.set_errored(generation_id, message)
            channel.notify_generation(
                generation_id,
                "generation_error",
                {"status": JobStatus.ERROR.value, "error_message": message},
            )

        def on_complete(details: MusicDetailsResponse) -> bool:
            completion = map_generation_completion(details)
            if completion is None:
                return False
            generations.set_completed(
                generation_id, completion.track1, completion.track2, completion.response_data
            )
            channel.notify_generation(generation_id, "generation_complete", completion.sse_payload)
            return True

        def on_progress(details: MusicDetailsResponse) -> None:
            progress = map_generation_progress(details)
            generations.set_status(generation_id, progress.status)
            if progress.track_update is not None:
                generations.update_provisional_fields(
                    generation_id, progress.track_update.track1, progress.track_update.track2
                )
                channel.notify_generation(
                    generation_id, "generation_update", progress.track_update.sse_payload
                )
                return
            channel.notify_generation(generation_id, "generation_update", progress.sse_payload)

        config: PollConfig[MusicDetailsResponse] = PollConfig(
            task_id=task_id,
            label=f"generation {generation_id}",
            log_tag="Poll",
            fetch_details=self._client.get_music_details,
            get_status=lambda d: d.data.status,
            get_status_error_message=lambda d: d.data.error_message,
            is_error=is_error_status,
            is_complete=is_complete_status,
            on_error=on_error,
            on_complete=on_complete,
            on_progress=on_progress,
            is_recovery=is_recovery,
            max_attempts=self.max_attempts,
            interval=self.interval,
            timeout_message=GENERATION_TIMEOUT_MESSAGE,
        )
        return self._generation_polls.start(generation_id, self._make_loop(config))

    # ------------------------------------------------------------------
    # Stem separation polling
    # ------------------------------------------------------------------

    def poll_for_stem_separation_results(
        self,
        stem_separation_id: int,
        task_id: str,
        generation_id: int,
        audio_id: str,
        *,
        is_recovery: bool = False,
    ) -> bool:
        """Start polling a stem separation task in the background.

        Returns:
            False if this stem separation is already being polled.
        """
        separations = self._stem_separations
        channel = self._channel

        def notify(event_type: str, data: dict[str, Any]) -> None:
            channel.notify_stem_separation(
                stem_separation_id, generation_id, audio_id, event_type, data
            )

        def on_error(message: str) -> None:
            separations.set_errored(stem_separation_id, message)
            notify(
                "stem_separation_error",
                {"status": JobStatus.ERROR.value, "error_message": message},
            )

        def on_complete(details: StemSeparationDetailsResponse) -> bool:
            completion = map_stem_completion(details)
            if completion is None:
                return False
            separations.set_completed(
                stem_separation_id, completion.fields, completion.response_data
            )
            notify("stem_separation_complete", completion.sse_payload)
            return True

        def on_progress(details: StemSeparationDetailsResponse) -> None:
            separations.set_status(stem_separation_id, JobStatus.PROCESSING.value)
            notify("stem_separation_update", {"status": JobStatus.PROCESSING.value})

        config: PollConfig[StemSeparationDetailsResponse] = PollConfig(
            task_id=task_id,
            label=f"stem separation {stem_separation_id}",
            log_tag="StemPoll",
            fetch_details=self._client.get_stem_separation_details,
            get_status=lambda d: d.data.success_flag,
            get_status_error_message=lambda d: d.data.error_message,
            is_error=is_stem_error_status,
            is_complete=is_stem_complete_status,
            on_error=on_error,
            on_complete=on_complete,
            on_progress=on_progress,
            is_recovery=is_recovery,
            max_attempts=self.max_attempts,
            interval=self.interval,
            timeout_message=STEM_TIMEOUT_MESSAGE,
        )
        return self._stem_polls.start(stem_separation_id, self._make_loop(config))

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def recover_incomplete_generations(self, generations: Iterable[Generation]) -> None:
        """Resume polling for generations left unfinished by the last run.

        Generations that never got a task id cannot be resumed and are
        marked as errors instead.
        """

        def mark_interrupted(generation: Generation) -> None:
            self._generations.set_errored(generation.id, GENERATION_INTERRUPTED_MESSAGE)
            self._channel.notify_generation(
                generation.id,
                "generation_error",
                {"status": JobStatus.ERROR.value, "error_message": GENERATION_INTERRUPTED_MESSAGE},
            )

        self._recover(
            list(generations),
            kind="generation",
            mark_interrupted=mark_interrupted,
            resume=lambda g: self.poll_for_results(g.id, g.task_id, is_recovery=True),
        )

    def recover_incomplete_stem_separations(self, separations: Iterable[StemSeparation]) -> None:
        """Resume polling for stem separations left unfinished by the last run."""

        def mark_interrupted(separation: StemSeparation) -> None:
            self._stem_separations.set_errored(separation.id, STEM_INTERRUPTED_MESSAGE)
            self._channel.notify_stem_separation(
                separation.id,
                separation.generation_id,
                separation.audio_id,
                "stem_separation_error",
                {"status": JobStatus.ERROR.value, "error_message": STEM_INTERRUPTED_MESSAGE},
            )

        self._recover(
            list(separations),
            kind="stem separation",
            mark_interrupted=mark_interrupted,
            resume=lambda s: self.poll_for_stem_separation_results(
                s.id, s.task_id, s.generation_id, s.audio_id, is_recovery=True
            ),
        )

    def _recover(
        self,
        jobs: list[Any],
        *,
        kind: str,
        mark_interrupted: Callable[[Any], None],
        resume: Callable[[Any], Any],
    ) -> None:
        if not jobs:
            emit_poll_log(
                tag="Recovery",
                phase="scan_none",
                entity=kind,
                is_recovery=True,
                detail=f"[Recovery] No incomplete {kind}s to recover",
            )
            return

        emit_poll_log(
            tag="Recovery",
            phase="scan_found",
            entity=kind,
            status=str(len(jobs)),
            is_recovery=True,
            detail=f"[Recovery] Found {len(jobs)} incomplete {kind}(s) to recover",
        )

        for job in jobs:
            entity = f"{kind} {job.id}"
            if not job.task_id:
                emit_poll_log(
                    tag="Recovery",
                    phase="missing_task_id",
                    entity=entity,
                    is_recovery=True,
                    detail=f"[Recovery] {entity} has no task_id, marking as error",
                )
                mark_interrupted(job)
                continue

            emit_poll_log(
                tag="Recovery",
                phase="resume",
                task_id=job.task_id,
                entity=entity,
                status=job.status,
                is_recovery=True,
                detail=(
                    f"[Recovery] Resuming polling for {entity} "
                    f"(taskId: {job.task_id}, status: {job.status})"
                ),
            )
            resume(job)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def is_polling_generation(self, generation_id: int) -> bool:
        return generation_id in self._generation_polls

    def is_polling_stem_separation(self, stem_separation_id: int) -> bool:
        return stem_separation_id in self._stem_polls

    def cancel_generation_poll(self, generation_id: int) -> bool:
        return self._generation_polls.cancel(generation_id)

    def cancel_stem_separation_poll(self, stem_separation_id: int) -> bool:
        return self._stem_polls.cancel(stem_separation_id)

    async def cancel_all(self) -> None:
        """Stop every active poll loop and wait for it to unwind (called at shutdown)."""
        tasks = self._generation_polls.cancel_all() + self._stem_polls.cancel_all()
        if not tasks:
            return
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Cancelled %d active poll loop(s)", len(tasks))

    async def join(self) -> None:
        """Wait for every active poll loop to finish."""
        await self._generation_polls.join()
        await self._stem_polls.join()

    def _make_loop(self, config: PollConfig[Any]) -> PollLoop[Any]:
        if self._sleep is not None:
            return PollLoop(config, sleep=self._sleep)
        return PollLoop(config)
