from __future__ import annotations

from typing import Any, Iterable

from pydantic import ValidationError

_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def _normalize_error_path(location_parts: Iterable[Any], *, default_location: str) -> tuple[str, str]:
    parts = [str(part) for part in location_parts]
    if parts and parts[0] in _REQUEST_LOCATIONS:
        location, path_parts = parts[0], parts[1:]
    else:
        location, path_parts = default_location, parts

    if not path_parts:
        return location, "(root)"
    return location, ".".join(path_parts)


def _build_summary(*, missing_fields: list[str], error_count: int) -> str:
    if missing_fields:
        noun = "field" if len(missing_fields) == 1 else "fields"
        return f"Validation failed: missing required {noun}: {', '.join(missing_fields)}."

    noun = "field" if error_count == 1 else "fields"
    return f"Validation failed for {error_count} {noun}."


def format_validation_error_details(
    errors: list[dict[str, Any]],
    *,
    default_location: str = "body",
) -> dict[str, Any]:
    field_errors: list[dict[str, str]] = []
    missing_fields: list[str] = []

    for error in errors:
        raw_loc = error.get("loc")
        if raw_loc is None:
            raw_loc = ()
        elif not isinstance(raw_loc, (list, tuple)):
            raw_loc = (raw_loc,)
        location, path = _normalize_error_path(raw_loc, default_location=default_location)

        error_type = str(error.get("type", "validation_error"))
        field_errors.append(
            {
                "path": path,
                "location": location,
                "message": str(error.get("msg", "Invalid value")),
                "errorType": error_type,
            }
        )

        if error_type == "missing" and path not in missing_fields:
            missing_fields.append(path)

    return {
        "summary": _build_summary(missing_fields=missing_fields, error_count=len(field_errors)),
        "missingFields": missing_fields,
        "fieldErrors": field_errors,
    }


def details_from_validation_error(exc: ValidationError, *, location: str = "query") -> dict[str, Any]:
    # ctx may hold exception instances that are not JSON serializable
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    return format_validation_error_details(list(errors), default_location=location)
