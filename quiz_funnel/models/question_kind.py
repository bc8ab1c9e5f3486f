"""QuestionKind constants and kind groupings used by validation and rendering.

Provides a simple constants container instead of an Enum to keep imports
lightweight in architectural tests.
"""

from __future__ import annotations


class QuestionKind:
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT_INPUT = "text_input"
    IMAGE_CARD = "image_card"
    FAKE_LOADER = "fake_loader"
    INFO_SCREEN = "info_screen"
    RESULT_PAGE = "result_page"
    TIMELINE_PROJECTION = "timeline_projection"


ALL_KINDS = frozenset({
    QuestionKind.SINGLE_CHOICE,
    QuestionKind.MULTIPLE_CHOICE,
    QuestionKind.TEXT_INPUT,
    QuestionKind.IMAGE_CARD,
    QuestionKind.FAKE_LOADER,
    QuestionKind.INFO_SCREEN,
    QuestionKind.RESULT_PAGE,
    QuestionKind.TIMELINE_PROJECTION,
})

# Kinds that render without selectable options
OPTION_FREE_KINDS = frozenset({
    QuestionKind.FAKE_LOADER,
    QuestionKind.INFO_SCREEN,
    QuestionKind.RESULT_PAGE,
    QuestionKind.TIMELINE_PROJECTION,
})

# Kinds that may omit question_text
CONTENT_FREE_KINDS = frozenset({QuestionKind.INFO_SCREEN})

TIMELINE_DIRECTIONS = frozenset({"ascendent", "descendent"})
TIMELINE_MONTHS_MIN = 1
TIMELINE_MONTHS_MAX = 60


__all__ = [
    "QuestionKind",
    "ALL_KINDS",
    "OPTION_FREE_KINDS",
    "CONTENT_FREE_KINDS",
    "TIMELINE_DIRECTIONS",
    "TIMELINE_MONTHS_MIN",
    "TIMELINE_MONTHS_MAX",
]
