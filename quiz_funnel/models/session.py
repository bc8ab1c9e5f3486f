"""Pydantic models for end-user quiz sessions."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel


UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")


class SessionStartRequest(BaseModel):
    quiz_id: int
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None

    def utm_params(self) -> Optional[Dict[str, str]]:
        """Return the supplied UTM parameters, or None when there are none."""
        params = {key: getattr(self, key) for key in UTM_KEYS if getattr(self, key)}
        return params or None


class SessionStarted(BaseModel):
    session_id: str
    quiz_id: int


class ProgressRequest(BaseModel):
    last_question_id: int


class AnswerRequest(BaseModel):
    question_id: int
    selected_option_id: int


class AnswerRecorded(BaseModel):
    answer_id: str
    session_id: str
    question_id: int
    selected_option_id: int


class SessionState(BaseModel):
    session_id: str
    quiz_id: int
    last_question_viewed: Optional[int] = None
    is_completed: bool
    final_profile: Optional[str] = None
    utm_params: Optional[Dict[str, str]] = None


__all__ = [
    "UTM_KEYS",
    "SessionStartRequest",
    "SessionStarted",
    "ProgressRequest",
    "AnswerRequest",
    "AnswerRecorded",
    "SessionState",
]
