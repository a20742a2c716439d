"""In-process fan-out of job events to connected live clients.

The channel owns the registry of connected clients. It starts empty, gains
an entry when a client connects and loses it on disconnect or on the first
failed write. Other components only go through ``add_client``,
``remove_client`` and the ``broadcast``/``notify_*`` methods.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Literal, Protocol

from kiemusic.errors import ClientDisconnectedError

logger = logging.getLogger(__name__)

GenerationEventType = Literal["generation_update", "generation_complete", "generation_error"]
StemSeparationEventType = Literal[
    "stem_separation_update", "stem_separation_complete", "stem_separation_error"
]


class ClientHandle(Protocol):
    """Outbound side of one live client connection."""

    def send(self, frame: str) -> None:
        """Queue one SSE frame. Raises if the client is gone."""
        ...


def format_sse(event: dict[str, Any]) -> str:
    """Serialize an event as a single SSE ``data:`` frame."""
    return f"data: {json.dumps(event, default=str)}\n\n"


class QueueClient:
    """A ``ClientHandle`` backed by a bounded asyncio queue.

    The SSE endpoint drains the queue; a client that stops reading fills
    the queue and is then treated as disconnected.
    """

    def __init__(self, maxsize: int = 256) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, frame: str) -> None:
        if self._closed:
            raise ClientDisconnectedError("client closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull as e:
            raise ClientDisconnectedError("client queue full") from e

    async def receive(self, timeout: float | None = None) -> str | None:
        """Wait for the next frame; None if ``timeout`` expires first."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        self._closed = True


class BroadcastChannel:
    """Fire-and-forget delivery of events to every connected client.

    Delivery is at most once per connected client, with no replay. A client
    whose handle raises is pruned and does not affect the others.
    """

    def __init__(self) -> None:
        self._clients: dict[str, ClientHandle] = {}

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def has_client(self, client_id: str) -> bool:
        return client_id in self._clients

    def add_client(self, client_id: str, handle: ClientHandle) -> None:
        self._clients[client_id] = handle
        logger.debug("Client %s connected (%d total)", client_id, len(self._clients))

    def remove_client(self, client_id: str) -> None:
        if self._clients.pop(client_id, None) is not None:
            logger.debug("Client %s disconnected (%d left)", client_id, len(self._clients))

    def broadcast(self, event: dict[str, Any]) -> int:
        """Send ``event`` to every client.

        Returns:
            Number of clients the event was delivered to.
        """
        frame = format_sse(event)
        delivered = 0
        for client_id, handle in list(self._clients.items()):
            try:
                handle.send(frame)
            except Exception as e:
                logger.warning("Dropping client %s: %s", client_id, e)
                self._clients.pop(client_id, None)
                continue
            delivered += 1
        return delivered

    def notify_generation(
        self, generation_id: int, event_type: GenerationEventType | str, data: dict[str, Any]
    ) -> int:
        return self.broadcast({"type": event_type, "generationId": generation_id, "data": data})

    def notify_stem_separation(
        self,
        stem_separation_id: int,
        generation_id: int,
        audio_id: str,
        event_type: StemSeparationEventType | str,
        data: dict[str, Any],
    ) -> int:
        return self.broadcast(
            {
                "type": event_type,
                "stemSeparationId": stem_separation_id,
                "generationId": generation_id,
                "audioId": audio_id,
                "data": data,
            }
        )

    def notify_annotation(self, generation_id: int, audio_id: str, data: dict[str, Any]) -> int:
        return self.broadcast(
            {
                "type": "annotation_update",
                "generationId": generation_id,
                "audioId": audio_id,
                "data": data,
            }
        )
