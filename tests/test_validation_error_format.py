import pytest
from pydantic import ValidationError

from core.validation_errors import details_from_validation_error, format_validation_error_details
from schemas.venue import VenueSearchFilter


def test_missing_required_field_summary_is_readable():
    errors = [
        {
            "type": "missing",
            "loc": ("query", "latitude"),
            "msg": "Field required",
            "input": {"longitude": "-74.0"},
        }
    ]

    details = format_validation_error_details(errors)

    assert details["summary"] == "Validation failed: missing required field: latitude."
    assert details["missingFields"] == ["latitude"]
    assert details["fieldErrors"] == [
        {
            "path": "latitude",
            "location": "query",
            "message": "Field required",
            "errorType": "missing",
        }
    ]
    assert "errors" not in details


def test_invalid_enum_value_has_field_error_without_missing_summary():
    errors = [
        {
            "type": "enum",
            "loc": ("body", "indoor_outdoor"),
            "msg": "Input should be 'indoor', 'outdoor' or 'both'",
            "input": "underground",
        }
    ]

    details = format_validation_error_details(errors)

    assert details["summary"] == "Validation failed for 1 field."
    assert details["missingFields"] == []
    assert details["fieldErrors"][0]["path"] == "indoor_outdoor"
    assert details["fieldErrors"][0]["errorType"] == "enum"


def test_root_level_error_uses_root_path():
    details = format_validation_error_details([{"type": "value_error", "loc": (), "msg": "bad"}])

    assert details["fieldErrors"][0]["path"] == "(root)"
    assert details["fieldErrors"][0]["location"] == "body"


def test_multiple_missing_fields_are_deduplicated_and_listed():
    errors = [
        {"type": "missing", "loc": ("body", "rating"), "msg": "Field required", "input": {}},
        {"type": "missing", "loc": ("body", "visit_date"), "msg": "Field required", "input": {}},
        {"type": "missing", "loc": ("body", "rating"), "msg": "Field required", "input": {}},
    ]

    details = format_validation_error_details(errors)

    assert details["summary"] == "Validation failed: missing required fields: rating, visit_date."
    assert details["missingFields"] == ["rating", "visit_date"]


def test_details_from_model_validation_error_defaults_to_query_location():
    with pytest.raises(ValidationError) as exc_info:
        VenueSearchFilter.model_validate({"latitude": 120, "longitude": 0, "radius": 10})

    details = details_from_validation_error(exc_info.value)

    assert details["summary"] == "Validation failed for 2 fields."
    assert {error["path"] for error in details["fieldErrors"]} == {"latitude", "radius"}
    assert {error["location"] for error in details["fieldErrors"]} == {"query"}
