"""
tracker/validation.py

Request-body validation on pydantic models.

RequestModel is the base for every body schema in tracker.schemas:
- unknown fields are ignored, JSON nulls count as missing
- strings (and strings inside lists) are trimmed, except fields in `untrimmed`
- API keys are camelCase aliases of the snake_case fields

validate() runs a model and turns pydantic's error list into the API's
message strings: each model's `error_messages` (keyed by field alias, then by
rule kind) wins, everything else falls back to DEFAULT_MESSAGES. Every
violation is reported, not just the first.

No FastAPI imports, no database access.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from tracker.errors import ValidationError

RULE_ERROR = "rule_violation"
ID_RE = re.compile(r"^[1-9]\d*$")

DEFAULT_MESSAGES: Dict[str, str] = {
    "required": '"{label}" is required',
    "empty": '"{label}" is not allowed to be empty',
    "string": '"{label}" must be a string',
    "min_length": '"{label}" length must be at least {min_length} characters long',
    "max_length": '"{label}" length must be less than or equal to {max_length} characters long',
    "pattern": '"{label}" fails to match the required pattern',
    "choices": '"{label}" must be one of [{expected}]',
    "number": '"{label}" must be a number',
    "minimum": '"{label}" must be greater than or equal to {ge}',
    "boolean": '"{label}" must be a boolean',
    "date": '"{label}" must be a valid ISO 8601 date',
    "after": '"{label}" must not be earlier than the start',
    "id": '"{label}" must be a valid id',
    "object": '"{label}" must be of type object',
    "array": '"{label}" must be an array',
}

# pydantic error type -> rule kind
ERROR_KINDS: Dict[str, str] = {
    "missing": "required",
    "string_type": "string",
    "string_too_short": "min_length",
    "string_too_long": "max_length",
    "string_pattern_mismatch": "pattern",
    "enum": "choices",
    "literal_error": "choices",
    "int_type": "id",
    "int_parsing": "id",
    "int_from_float": "id",
    "greater_than": "id",
    "float_type": "number",
    "float_parsing": "number",
    "finite_number": "number",
    "greater_than_equal": "minimum",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "model_type": "object",
    "model_attributes_type": "object",
    "dict_type": "object",
    "list_type": "array",
}


class RequestModel(BaseModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        use_enum_values=True,
        validate_default=True,
    )

    # alias -> {rule kind -> message}
    error_messages: ClassVar[Dict[str, Dict[str, str]]] = {}
    # aliases whose string values keep surrounding whitespace
    untrimmed: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = {}
        for key, value in data.items():
            if value is None:
                continue
            if key not in cls.untrimmed:
                value = _trim(value)
            out[key] = value
        return out

    @classmethod
    def message_for(cls, alias: str, kind: str, **ctx: Any) -> str:
        template = cls.error_messages.get(alias, {}).get(kind) or DEFAULT_MESSAGES[kind]
        return template.format(label=alias, **ctx)

    @classmethod
    def rule_error(cls, alias: str, kind: str, **ctx: Any) -> PydanticCustomError:
        """Error for checks done in validators, rendered with the field's own message."""
        return PydanticCustomError(RULE_ERROR, cls.message_for(alias, kind, **ctx))


def _trim(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return [item.strip() if isinstance(item, str) else item for item in value]
    return value


@dataclass
class ValidationResult:
    value: Dict[str, Any]
    errors: List[str]

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> Dict[str, Any]:
        if self.errors:
            raise ValidationError(self.errors)
        return self.value


# ---------------------------------------------------------
# Date helpers (shared with the persistence-level checks)
# ---------------------------------------------------------
def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 date/datetime string into an aware UTC datetime (None if invalid)."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_datetime(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _format_number(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# ---------------------------------------------------------
# Running a model
# ---------------------------------------------------------
def validate(model: Type[RequestModel], data: Any, apply_defaults: bool = True) -> ValidationResult:
    """
    Validate data against model.

    apply_defaults=False is used for updates: only fields present in the
    request end up in the result, so stored values survive.
    """
    try:
        parsed = model.model_validate(data)
    except PydanticValidationError as exc:
        return ValidationResult(value={}, errors=error_messages(model, exc))

    include = None if apply_defaults else parsed.model_fields_set
    value = parsed.model_dump(by_alias=True, exclude_none=True, include=include)
    return ValidationResult(value=value, errors=[])


def error_messages(model: Type[RequestModel], exc: PydanticValidationError) -> List[str]:
    messages: List[str] = []
    for err in exc.errors():
        kind = ERROR_KINDS.get(err["type"])
        if kind is None:
            # Custom rule errors already carry their final text
            messages.append(err["msg"])
            continue
        if kind == "min_length" and err.get("input") == "":
            kind = "empty"

        loc = err["loc"]
        ctx = {key: _format_number(value) for key, value in (err.get("ctx") or {}).items()}
        template = _field_messages(model, loc).get(kind) or DEFAULT_MESSAGES[kind]
        messages.append(template.format(label=_label(loc), **ctx))
    return messages


def _field_messages(model: Type[RequestModel], loc: Tuple[Any, ...]) -> Dict[str, str]:
    """Per-field overrides apply to top-level fields and to items of scalar lists."""
    if loc and isinstance(loc[0], str) and all(isinstance(part, int) for part in loc[1:]):
        return model.error_messages.get(loc[0], {})
    return {}


def _label(loc: Tuple[Any, ...]) -> str:
    label = ""
    for part in loc:
        if isinstance(part, int):
            label += f"[{part}]"
        else:
            label += f".{part}" if label else str(part)
    return label or "value"


def parse_id(raw: Any) -> Optional[int]:
    """Parse a path/query id; None when malformed."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if isinstance(raw, str) and ID_RE.match(raw.strip()):
        return int(raw.strip())
    return None
