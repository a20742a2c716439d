"""Status vocabularies reported by the KIE API."""

GENERATION_ERROR_STATUSES = frozenset(
    {
        "CREATE_TASK_FAILED",
        "GENERATE_AUDIO_FAILED",
        "CALLBACK_EXCEPTION",
        "SENSITIVE_WORD_ERROR",
    }
)
GENERATION_IN_PROGRESS_STATUSES = frozenset({"PENDING", "TEXT_SUCCESS", "FIRST_SUCCESS"})
GENERATION_COMPLETE_STATUS = "SUCCESS"

STEM_ERROR_STATUSES = frozenset(
    {
        "CREATE_TASK_FAILED",
        "GENERATE_AUDIO_FAILED",
        "CALLBACK_EXCEPTION",
    }
)
STEM_COMPLETE_STATUS = "SUCCESS"


def is_error_status(status: str) -> bool:
    return status in GENERATION_ERROR_STATUSES


def is_complete_status(status: str) -> bool:
    return status == GENERATION_COMPLETE_STATUS


def is_in_progress_status(status: str) -> bool:
    return status in GENERATION_IN_PROGRESS_STATUSES


def is_stem_error_status(status: str) -> bool:
    return status in STEM_ERROR_STATUSES


def is_stem_complete_status(status: str) -> bool:
    return status == STEM_COMPLETE_STATUS
