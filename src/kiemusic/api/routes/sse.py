"""Server-Sent Events stream of job updates."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from kiemusic.api.deps import Services, get_services
from kiemusic.broadcast import BroadcastChannel, QueueClient, format_sse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sse"])

KEEPALIVE_FRAME = ": keep-alive\n\n"


async def event_stream(
    channel: BroadcastChannel,
    client_id: str,
    client: QueueClient,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float,
) -> AsyncIterator[str]:
    """Yield SSE frames for one connected client until it goes away.

    The client must already be registered on ``channel``. It is removed when
    the stream ends, including when the channel pruned it first.
    """
    try:
        yield format_sse({"type": "connected", "clientId": client_id})
        while channel.has_client(client_id):
            if await is_disconnected():
                break
            frame = await client.receive(timeout=keepalive)
            yield frame if frame is not None else KEEPALIVE_FRAME
    finally:
        client.close()
        channel.remove_client(client_id)


@router.get("/api/sse")
async def stream_events(
    request: Request,
    services: Services = Depends(get_services),
) -> StreamingResponse:
    client_id = str(uuid.uuid4())
    client = QueueClient(maxsize=services.settings.sse_queue_size)
    services.channel.add_client(client_id, client)
    logger.info("SSE client %s connected", client_id)

    return StreamingResponse(
        event_stream(
            services.channel,
            client_id,
            client,
            request.is_disconnected,
            services.settings.sse_keepalive_seconds,
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
