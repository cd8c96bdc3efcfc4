"""Shared 422 handling: database-backed checks raise the same error as pydantic."""
from __future__ import annotations

from fastapi.exceptions import RequestValidationError

_LOCATIONS = {"body", "query", "path", "header"}


def field_errors(errors: dict[str, str]) -> RequestValidationError:
    """Build a validation error for checks pydantic cannot do (exists/unique)."""
    return RequestValidationError([
        {"type": "value_error", "loc": ("body", field), "msg": msg, "input": None}
        for field, msg in errors.items()
    ])


def errors_by_field(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group error messages by dotted field path, e.g. ``tags.1``."""
    grouped: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _LOCATIONS:
            loc = loc[1:]
        field = ".".join(loc) or "body"
        grouped.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return grouped
