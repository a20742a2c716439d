"""Tests for KIE status vocabularies."""

import pytest

from kiemusic.kie.status import (
    is_complete_status,
    is_error_status,
    is_in_progress_status,
    is_stem_complete_status,
    is_stem_error_status,
)
from kiemusic.models import JobStatus


class TestGenerationStatuses:
    @pytest.mark.parametrize(
        "status",
        ["CREATE_TASK_FAILED", "GENERATE_AUDIO_FAILED", "CALLBACK_EXCEPTION", "SENSITIVE_WORD_ERROR"],
    )
    def test_error_statuses(self, status: str) -> None:
        assert is_error_status(status)
        assert not is_complete_status(status)
        assert not is_in_progress_status(status)

    @pytest.mark.parametrize("status", ["PENDING", "TEXT_SUCCESS", "FIRST_SUCCESS"])
    def test_in_progress_statuses(self, status: str) -> None:
        assert is_in_progress_status(status)
        assert not is_error_status(status)
        assert not is_complete_status(status)

    def test_success(self) -> None:
        assert is_complete_status("SUCCESS")
        assert not is_in_progress_status("SUCCESS")

    def test_unknown_status_is_neither(self) -> None:
        assert not is_error_status("WHATEVER")
        assert not is_complete_status("WHATEVER")


class TestStemStatuses:
    def test_sensitive_word_is_not_a_stem_error(self) -> None:
        assert not is_stem_error_status("SENSITIVE_WORD_ERROR")

    def test_stem_error_and_success(self) -> None:
        assert is_stem_error_status("CALLBACK_EXCEPTION")
        assert is_stem_complete_status("SUCCESS")
        assert not is_stem_complete_status("PENDING")


class TestJobStatus:
    def test_terminal(self) -> None:
        assert JobStatus.SUCCESS.is_terminal
        assert JobStatus.ERROR.is_terminal
        assert not JobStatus.FIRST_SUCCESS.is_terminal
