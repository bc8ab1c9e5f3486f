"""Pydantic models for submitted quiz trees.

These models describe the wire shape only. Kind-specific rules (required text,
options, timeline bounds) are enforced by `logic.payload_validation` so that
they surface as domain errors rather than generic request validation failures.
Models are frozen; normalization produces new instances via ``model_copy``.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


class OptionPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    option_id: Optional[int] = None
    option_text: Optional[str] = None
    associated_value: Optional[str] = None
    option_image_url: Optional[str] = None


class QuestionPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: Optional[int] = None
    sequence_order: int
    kind: Optional[str] = None
    question_text: Optional[str] = None
    image_url: Optional[str] = None
    instructions_text: Optional[str] = None
    loader_text: Optional[str] = None
    popup_question: Optional[str] = None
    loader_bars: Optional[List[dict[str, Any]]] = None
    result_page_config: Optional[dict[str, Any]] = None
    timeline_projection_config: Optional[dict[str, Any]] = None
    educational_box_title: Optional[str] = None
    educational_box_text: Optional[str] = None
    options: Optional[List[OptionPayload]] = None


class QuizPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    quiz_name: str
    product_page_url: str
    is_active: bool = True
    brand_logo_url: Optional[str] = None
    color_primary: Optional[str] = None
    color_secondary: Optional[str] = None
    color_text_default: Optional[str] = None
    color_text_hover: Optional[str] = None
    custom_domain: Optional[str] = None
    questions: List[QuestionPayload]


__all__ = ["OptionPayload", "QuestionPayload", "QuizPayload"]
