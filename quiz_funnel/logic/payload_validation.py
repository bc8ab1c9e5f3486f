"""Consistency checks and normalization for submitted quiz trees.

Runs before any storage access. Checks are applied in a fixed order and the
first failure raises:

1. ``sequence_order`` values are unique within the payload (and non-negative;
   negative orders are reserved for displacement placeholders).
   ``question_id`` and ``option_id`` values each appear at most once; then
   ``quiz_name`` and ``product_page_url`` must be non-blank.
2. Every question names a known ``kind``.
3. Kind-specific content is present (text, options, timeline config).
4. Every option has ``option_text``; a missing ``associated_value`` is derived
   from it.

The returned payload is a new frozen object; the input is never mutated.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from quiz_funnel.logic.errors import DuplicateOrdering, InvalidQuestionShape
from quiz_funnel.models.question_kind import (
    ALL_KINDS,
    CONTENT_FREE_KINDS,
    OPTION_FREE_KINDS,
    TIMELINE_DIRECTIONS,
    TIMELINE_MONTHS_MAX,
    TIMELINE_MONTHS_MIN,
    QuestionKind,
)
from quiz_funnel.models.quiz_payload import OptionPayload, QuestionPayload, QuizPayload

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_TAG_RE = re.compile(r"[^a-z0-9_]")


def derive_associated_value(option_text: str) -> str:
    """Return the machine tag for an option label.

    ``"Very Happy!"`` -> ``"very_happy"``
    """
    tag = option_text.lower().strip()
    tag = _WHITESPACE_RE.sub("_", tag)
    return _NON_TAG_RE.sub("", tag)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _question_label(question: QuestionPayload) -> str:
    if not _is_blank(question.question_text):
        return str(question.question_text)
    return f"Question ({question.kind or 'unknown'})"


def _check_unique_ordering(questions: list[QuestionPayload]) -> None:
    seen: set[int] = set()
    for question in questions:
        order = int(question.sequence_order)
        if order in seen:
            raise DuplicateOrdering(order)
        seen.add(order)
    for question in questions:
        if int(question.sequence_order) < 0:
            raise InvalidQuestionShape(
                f'Question "{_question_label(question)}": sequence_order must be >= 0',
                sequence_order=int(question.sequence_order),
            )


def _check_unique_identities(questions: list[QuestionPayload]) -> None:
    # an identity correlates with exactly one submitted entry
    question_ids: set[int] = set()
    option_ids: set[int] = set()
    for question in questions:
        if question.question_id is not None:
            if int(question.question_id) in question_ids:
                raise InvalidQuestionShape(
                    f"question_id {question.question_id} appears more than once",
                    question_id=int(question.question_id),
                )
            question_ids.add(int(question.question_id))
        for option in question.options or []:
            if option.option_id is None:
                continue
            if int(option.option_id) in option_ids:
                raise InvalidQuestionShape(
                    f"option_id {option.option_id} appears more than once",
                    option_id=int(option.option_id),
                )
            option_ids.add(int(option.option_id))


def _check_kind(question: QuestionPayload) -> None:
    if _is_blank(question.kind):
        raise InvalidQuestionShape("Each question must have kind", sequence_order=question.sequence_order)
    if question.kind not in ALL_KINDS:
        raise InvalidQuestionShape(
            f"Unknown question kind: {question.kind}",
            sequence_order=question.sequence_order,
            kind=question.kind,
        )


def _check_timeline_config(question: QuestionPayload, label: str) -> None:
    config: Any = question.timeline_projection_config
    if not config:
        raise InvalidQuestionShape(
            f'Question "{label}" must have timeline_projection_config',
            sequence_order=question.sequence_order,
        )
    if config.get("direction") not in TIMELINE_DIRECTIONS:
        raise InvalidQuestionShape(
            f'Question "{label}": timeline_projection_config.direction must be "ascendent" or "descendent"',
            sequence_order=question.sequence_order,
        )
    months = config.get("months_count")
    # bool is an int subclass; reject it explicitly
    if isinstance(months, bool) or not isinstance(months, (int, float)) or not (
        TIMELINE_MONTHS_MIN <= months <= TIMELINE_MONTHS_MAX
    ):
        raise InvalidQuestionShape(
            f'Question "{label}": timeline_projection_config.months_count must be a number '
            f"between {TIMELINE_MONTHS_MIN} and {TIMELINE_MONTHS_MAX}",
            sequence_order=question.sequence_order,
            months_count=months,
        )


def _normalize_option(option: OptionPayload, label: str) -> OptionPayload:
    if _is_blank(option.option_text):
        raise InvalidQuestionShape(f'Question "{label}": each option must have option_text')
    if _is_blank(option.associated_value):
        return option.model_copy(
            update={"associated_value": derive_associated_value(str(option.option_text))}
        )
    return option


def _check_shape(question: QuestionPayload) -> QuestionPayload:
    label = _question_label(question)
    if question.kind not in CONTENT_FREE_KINDS and _is_blank(question.question_text):
        raise InvalidQuestionShape(
            f"Each question must have question_text (except {QuestionKind.INFO_SCREEN})",
            sequence_order=question.sequence_order,
            kind=question.kind,
        )
    if question.kind not in OPTION_FREE_KINDS and question.options is None:
        raise InvalidQuestionShape(
            f'Question "{label}" must have an options array',
            sequence_order=question.sequence_order,
            kind=question.kind,
        )
    if question.kind == QuestionKind.TIMELINE_PROJECTION:
        _check_timeline_config(question, label)
    return question


def validate_quiz_payload(payload: QuizPayload) -> QuizPayload:
    """Validate ``payload`` and return its normalized copy.

    Raises ``DuplicateOrdering`` or ``InvalidQuestionShape``.
    """
    questions = list(payload.questions)
    _check_unique_ordering(questions)
    _check_unique_identities(questions)
    if _is_blank(payload.quiz_name):
        raise InvalidQuestionShape("quiz_name is required")
    if _is_blank(payload.product_page_url):
        raise InvalidQuestionShape("product_page_url is required")

    for question in questions:
        _check_kind(question)
    checked = [_check_shape(q) for q in questions]

    normalized: list[QuestionPayload] = []
    for question in checked:
        label = _question_label(question)
        options = question.options
        if options is not None:
            options = [_normalize_option(o, label) for o in options]
        normalized.append(question.model_copy(update={"options": options}))

    logger.info(
        "payload_validation.ok quiz_name=%s questions=%s",
        payload.quiz_name,
        len(normalized),
    )
    return payload.model_copy(update={"questions": normalized})


__all__ = ("validate_quiz_payload", "derive_associated_value")
