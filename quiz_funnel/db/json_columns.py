"""Portable JSON column encoding.

PostgreSQL stores JSONB and returns decoded objects; SQLite stores TEXT and
returns strings. Writers always bind JSON text; readers accept both shapes.
"""

from __future__ import annotations

import json
from typing import Any, Optional


def encode_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def decode_json(value: Any) -> Any:
    if value is None or isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    return json.loads(value)


__all__ = ["encode_json", "decode_json"]
