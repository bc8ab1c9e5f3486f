"""Problem+JSON utilities and global exception handlers.

Defines the RFC 7807 media type and the handler callables registered by
``create_app``. Domain errors carry their own ``code``/``status``; everything
else is mapped to a generic problem body.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from quiz_funnel.logic.errors import QuizFunnelError, StorageFailure

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(problem: Dict[str, Any], status: int) -> JSONResponse:
    return JSONResponse(jsonable_encoder(problem), status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_quiz_funnel_error(request: Request, exc: QuizFunnelError) -> JSONResponse:  # noqa: D401
    problem = exc.to_problem()
    problem["instance"] = str(request.url.path)
    if isinstance(exc, StorageFailure):
        # Driver detail was logged where the failure was caught
        logger.error("problem.storage_failure path=%s operation=%s", request.url.path, exc.operation)
    else:
        logger.info("problem.domain_error path=%s code=%s status=%s", request.url.path, exc.code, exc.status)
    return problem_response(problem, exc.status)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        problem = dict(exc.detail)
        problem.setdefault("status", status)
    else:
        problem = {"title": "Error", "status": status, "detail": str(exc.detail or "")}
    headers = dict(exc.headers) if isinstance(getattr(exc, "headers", None), dict) else None
    response = problem_response(problem, status)
    if headers:
        response.headers.update(headers)
    return response


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": "REQUEST_VALIDATION_FAILED",
        "errors": list(exc.errors()),
    }
    logger.info("problem.request_validation path=%s errors=%s", request.url.path, len(problem["errors"]))
    return problem_response(problem, 422)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response({"title": "Internal Server Error", "status": 500}, 500)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_quiz_funnel_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
