"""Pure mapping from KIE stem separation records to persistence/broadcast data."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kiemusic.kie.models import StemSeparationDetailsResponse
from kiemusic.models import STEM_FIELDS, JobStatus, StemFields


@dataclass(frozen=True)
class StemCompletion:
    fields: StemFields
    response_data: str
    sse_payload: dict[str, Any]


def map_stem_completion(details: StemSeparationDetailsResponse) -> StemCompletion | None:
    """Map a SUCCESS record to the stem URLs.

    Returns None when the record has no response yet. Every stem key is
    present in the broadcast payload, ``None`` for stems this separation
    type does not produce.
    """
    response = details.data.response
    if response is None:
        return None

    urls = {name: getattr(response, name) for name in STEM_FIELDS}
    fields = StemFields(**{name: value or None for name, value in urls.items()})

    sse_payload: dict[str, Any] = {"status": JobStatus.SUCCESS.value}
    sse_payload.update(urls)

    return StemCompletion(
        fields=fields,
        response_data=details.data.to_api_json(),
        sse_payload=sse_payload,
    )
