"""
tracker/dependencies.py

Reusable FastAPI dependencies for request validation and query parsing.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Type

from fastapi import Query, Request

from tracker.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from tracker.errors import BusinessRuleError, InvalidIdError, ValidationError
from tracker.models import PageRequest
from tracker.validation import RequestModel, parse_id, validate


async def read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError(["Request body must be valid JSON"])


def validated_body(model: Type[RequestModel], apply_defaults: bool = True, single_message: bool = False) -> Callable:
    """
    FastAPI dependency factory: parse the JSON body and run it through a request model.

    Usage in routes:
        @router.post("")
        def create(data: dict = Depends(validated_body(ClientRequest))):
            ...

    Args:
        model: request schema from tracker.schemas
        apply_defaults: False for updates (omitted fields keep stored values)
        single_message: render the first violation as the top-level message
            (narrow single-field bodies such as a status change)

    Raises:
        ValidationError(400) with every violation, or BusinessRuleError(400)
        when single_message is set
    """
    async def _validate(request: Request) -> dict:
        data = await read_json_body(request)
        result = validate(model, data, apply_defaults=apply_defaults)
        if result.errors and single_message:
            raise BusinessRuleError(result.errors[0])
        return result.raise_for_errors()

    return _validate


def require_id(raw: str) -> int:
    """Path id check; runs before any query touches the record."""
    parsed = parse_id(raw)
    if parsed is None:
        raise InvalidIdError()
    return parsed


def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def pagination_params(
    page: Optional[str] = Query(None, description="Page number (default 1)"),
    limit: Optional[str] = Query(None, description=f"Page size (default {DEFAULT_PAGE_LIMIT}, max {MAX_PAGE_LIMIT})"),
) -> PageRequest:
    return PageRequest(
        page=_positive_int(page, 1),
        limit=min(_positive_int(limit, DEFAULT_PAGE_LIMIT), MAX_PAGE_LIMIT),
    )


def parse_bool_param(raw: Optional[str], default: Optional[bool] = None) -> Optional[bool]:
    """Query flag: "true" -> True, any other value -> False, absent -> default."""
    if raw is None:
        return default
    return raw.strip().lower() == "true"
