"""CORS for the quiz editor and the public quiz frontend.

Both are served from other origins. Browsers must be allowed to send the
principal headers and to read ``X-Request-Id`` back.
"""

from __future__ import annotations

from typing import Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "X-Principal-Id", "X-Principal-Role", "X-Shop-Id", "X-Request-Id")
EXPOSED_HEADERS = ("X-Request-Id",)


def apply_cors(app: FastAPI, origins: Sequence[str] = ()) -> None:
    """Allow ``origins``; with none configured any origin may call, without credentials."""
    allowed = [o.rstrip("/") for o in origins if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_credentials="*" not in allowed,
        allow_methods=list(ALLOWED_METHODS),
        allow_headers=list(ALLOWED_HEADERS),
        expose_headers=list(EXPOSED_HEADERS),
    )


__all__ = ["apply_cors", "ALLOWED_HEADERS", "EXPOSED_HEADERS"]
