"""Pydantic models for persisted quiz trees returned to callers."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel


class OptionView(BaseModel):
    option_id: int
    option_text: str
    associated_value: str
    option_image_url: Optional[str] = None


class QuestionView(BaseModel):
    question_id: int
    sequence_order: int
    kind: str
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
    options: List[OptionView] = []


class QuizTree(BaseModel):
    """A quiz with its active questions and options, as persisted."""

    quiz_id: int
    quiz_name: str
    product_page_url: Optional[str] = None
    is_active: bool
    brand_logo_url: Optional[str] = None
    color_primary: Optional[str] = None
    color_secondary: Optional[str] = None
    color_text_default: Optional[str] = None
    color_text_hover: Optional[str] = None
    custom_domain: Optional[str] = None
    quiz_start_url: Optional[str] = None
    questions: List[QuestionView] = []


class ReconcileSummary(BaseModel):
    archived_question_ids: List[int]
    archived_option_ids: List[int]
    retained_option_ids: List[int]
    inserted_question_ids: List[int]
    inserted_option_ids: List[int]


class ReconcileResponse(BaseModel):
    quiz: QuizTree
    summary: ReconcileSummary


__all__ = [
    "OptionView",
    "QuestionView",
    "QuizTree",
    "ReconcileSummary",
    "ReconcileResponse",
]
