"""Start KIE tasks for newly created jobs and hand them to the poller."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from kiemusic.broadcast import BroadcastChannel
from kiemusic.interfaces import IGenerationStore, IStemSeparationStore
from kiemusic.kie.models import TaskStartResponse
from kiemusic.models import JobStatus
from kiemusic.polling.service import PollingService

logger = logging.getLogger(__name__)

StartCall = Callable[[], Awaitable[TaskStartResponse]]


class TaskStarter:
    """Runs the start request of a job and routes the outcome.

    A rejected or failed start marks the job as ``error`` and broadcasts it;
    an accepted start records the task id, broadcasts ``processing`` and
    begins polling. A job deleted while its start request was in flight is
    dropped without an event or a poller. Nothing is raised to the caller.
    """

    def __init__(
        self,
        generations: IGenerationStore,
        stem_separations: IStemSeparationStore,
        channel: BroadcastChannel,
        polling: PollingService,
    ) -> None:
        self._generations = generations
        self._stem_separations = stem_separations
        self._channel = channel
        self._polling = polling

    async def start_generation_task(self, generation_id: int, api_call: StartCall) -> None:
        """Start a generation (or extension) task for ``generation_id``."""

        def on_error(message: str) -> None:
            self._generations.set_errored(generation_id, message)
            self._channel.notify_generation(
                generation_id,
                "generation_error",
                {"status": JobStatus.ERROR.value, "error_message": message},
            )

        def on_success(task_id: str) -> None:
            if not self._generations.set_task_started(generation_id, task_id):
                logger.info(
                    "Generation %s was deleted before task %s started, not polling",
                    generation_id,
                    task_id,
                )
                return
            self._channel.notify_generation(
                generation_id,
                "generation_update",
                {"status": JobStatus.PROCESSING.value, "task_id": task_id},
            )
            self._polling.poll_for_results(generation_id, task_id)

        await self._run(f"generation {generation_id}", api_call, on_error, on_success)

    async def start_stem_separation_task(
        self,
        separation_id: int,
        generation_id: int,
        audio_id: str,
        api_call: StartCall,
    ) -> None:
        """Start a stem separation task for ``separation_id``."""

        def notify(event_type: str, data: dict) -> None:
            self._channel.notify_stem_separation(
                separation_id, generation_id, audio_id, event_type, data
            )

        def on_error(message: str) -> None:
            self._stem_separations.set_errored(separation_id, message)
            notify(
                "stem_separation_error",
                {"status": JobStatus.ERROR.value, "error_message": message},
            )

        def on_success(task_id: str) -> None:
            if not self._stem_separations.set_task_started(separation_id, task_id):
                logger.info(
                    "Stem separation %s was deleted before task %s started, not polling",
                    separation_id,
                    task_id,
                )
                return
            notify(
                "stem_separation_update",
                {"status": JobStatus.PROCESSING.value, "task_id": task_id},
            )
            self._polling.poll_for_stem_separation_results(
                separation_id, task_id, generation_id, audio_id
            )

        await self._run(f"stem separation {separation_id}", api_call, on_error, on_success)

    async def _run(
        self,
        label: str,
        api_call: StartCall,
        on_error: Callable[[str], None],
        on_success: Callable[[str], None],
    ) -> None:
        try:
            response = await api_call()
            if response.code != 200:
                logger.warning("KIE rejected %s: %s (code %s)", label, response.msg, response.code)
                on_error(response.msg or f"KIE API returned code {response.code}")
                return
            if not response.task_id:
                on_error("KIE API did not return a taskId")
                return
            logger.info("Started %s as KIE task %s", label, response.task_id)
            on_success(response.task_id)
        except Exception as e:
            logger.exception("Failed to start %s", label)
            on_error(str(e) or e.__class__.__name__)
