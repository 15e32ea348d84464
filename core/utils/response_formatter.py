"""Utilities for normalizing engine results to JSON-ready structures."""

from __future__ import annotations
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any
import json
import logging

logger = logging.getLogger(__name__)


def format_response(resp: object) -> Any:
    """Normalize engine results into plain dicts, lists and scalars.

    Accepts dataclasses (recursively, field by field), objects exposing
    `to_serializable()`, pydantic models, datetimes, paths, enums, sets and
    the usual containers. Anything else falls back to `str()`.
    """
    if resp is None or isinstance(resp, (str, int, float, bool)):
        return resp
    if isinstance(resp, datetime):
        return resp.isoformat()
    if isinstance(resp, date):
        return resp.isoformat()
    if isinstance(resp, Enum):
        return format_response(resp.value)
    if isinstance(resp, Path):
        return resp.as_posix()
    if hasattr(resp, "to_serializable"):
        return format_response(resp.to_serializable())
    if is_dataclass(resp) and not isinstance(resp, type):
        return {f.name: format_response(getattr(resp, f.name)) for f in fields(resp)}
    if hasattr(resp, "model_dump"):
        return format_response(resp.model_dump())
    if isinstance(resp, dict):
        return {str(k): format_response(v) for k, v in resp.items()}
    if isinstance(resp, (list, tuple)):
        return [format_response(item) for item in resp]
    if isinstance(resp, (set, frozenset)):
        return sorted(format_response(item) for item in resp)
    logger.debug("Falling back to str() for %s", type(resp).__name__)
    return str(resp)


def format_response_text(resp: object) -> str:
    """Return the normalized response as indented JSON text."""
    return json.dumps(format_response(resp), indent=2, ensure_ascii=False)
