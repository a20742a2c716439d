"""Tests for stem separation record mapping."""

import json

from conftest import make_stem_details

from kiemusic.models import STEM_FIELDS
from kiemusic.polling.stem_mapper import map_stem_completion


class TestMapStemCompletion:
    def test_no_response_returns_none(self) -> None:
        assert map_stem_completion(make_stem_details("SUCCESS")) is None

    def test_vocal_separation(self) -> None:
        details = make_stem_details(
            "SUCCESS",
            {
                "originUrl": "https://cdn.example/origin.mp3",
                "vocalUrl": "https://cdn.example/vocal.mp3",
                "instrumentalUrl": "https://cdn.example/inst.mp3",
            },
            task_id="stem-task-7",
        )
        completion = map_stem_completion(details)

        assert completion is not None
        assert completion.fields.vocal_url == "https://cdn.example/vocal.mp3"
        assert completion.fields.instrumental_url == "https://cdn.example/inst.mp3"
        assert completion.fields.drums_url is None
        assert completion.sse_payload["status"] == "success"
        assert "stem-task-7" in completion.response_data
        assert json.loads(completion.response_data)["response"]["originUrl"].endswith("origin.mp3")

    def test_payload_has_every_stem_key(self) -> None:
        completion = map_stem_completion(
            make_stem_details("SUCCESS", {"drumsUrl": "https://cdn.example/drums.mp3"})
        )

        assert completion is not None
        for name in STEM_FIELDS:
            assert name in completion.sse_payload
        assert completion.sse_payload["drums_url"] == "https://cdn.example/drums.mp3"
        assert completion.sse_payload["vocal_url"] is None

    def test_empty_url_stored_as_none(self) -> None:
        completion = map_stem_completion(make_stem_details("SUCCESS", {"vocalUrl": ""}))

        assert completion is not None
        assert completion.fields.vocal_url is None

    def test_idempotent(self) -> None:
        details = make_stem_details("SUCCESS", {"vocalUrl": "https://cdn.example/vocal.mp3"})
        assert map_stem_completion(details) == map_stem_completion(details)
