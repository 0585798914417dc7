from __future__ import annotations

from typing import Any

import pytest

from campsift.services.validation import REQUIRED_FIELDS, validate_session


def _complete(**overrides: Any) -> dict[str, Any]:
    candidate: dict[str, Any] = {
        "name": "Pottery Studio",
        "start_date": "2025-06-09",
        "end_date": "2025-06-13",
        "drop_off_hour": 9,
        "pick_up_hour": 15,
        "location": "123 Main Street, Springfield",
        "min_age": 6,
        "max_age": 10,
        "price_in_cents": 25000,
        "registration_url": "https://example.org/register",
    }
    candidate.update(overrides)
    return candidate


def _error_fields(candidate: dict[str, Any]) -> list[str]:
    return [error.field for error in validate_session(candidate).errors]


def test_complete_candidate_scores_100() -> None:
    result = validate_session(_complete())

    assert result.is_complete
    assert result.completeness_score == 100
    assert result.missing_fields == []
    assert result.errors == []
    assert result.normalized_data.drop_off_minute == 0
    assert result.normalized_data.pick_up_minute == 0


@pytest.mark.parametrize("placeholder", ["<UNKNOWN>", "UNKNOWN", "TBD", "N/A", "null", "undefined", "  tbd  ", ""])
def test_placeholder_location_is_missing(placeholder: str) -> None:
    result = validate_session(_complete(location=placeholder))

    assert not result.is_complete
    assert result.missing_fields == ["location"]
    assert result.completeness_score == 86


def test_placeholder_dates_and_price_text_are_missing() -> None:
    result = validate_session(
        _complete(start_date="<UNKNOWN>", end_date="undefined", price_in_cents=None, price_raw="N/A")
    )

    assert result.missing_fields == ["startDate", "endDate", "price"]
    assert all(error.field != "price" for error in result.errors)


def test_removing_one_required_field_scores_86() -> None:
    candidate = _complete()
    del candidate["min_age"]
    del candidate["max_age"]

    result = validate_session(candidate)

    assert result.completeness_score == 86
    assert result.missing_fields == ["ageRequirements"]


def test_zero_price_is_present_and_unset_price_is_missing() -> None:
    free = validate_session(_complete(price_in_cents=0))
    unset = validate_session(_complete(price_in_cents=None))

    assert free.is_complete
    assert "price" not in free.missing_fields
    assert unset.missing_fields == ["price"]


def test_empty_record_scores_zero_with_all_fields_missing() -> None:
    for candidate in ({}, None):
        result = validate_session(candidate)
        assert result.completeness_score == 0
        assert result.missing_fields == list(REQUIRED_FIELDS)
        assert not result.is_complete


def test_raw_text_fills_missing_fields() -> None:
    result = validate_session(
        {
            "name": "Robotics Lab",
            "date_raw": "June 9-13, 2025",
            "time_raw": "9am-3pm",
            "location_raw": "456 Oak Avenue, Portland, OR",
            "age_grade_raw": "Grades K-5",
            "price_raw": "$250.50",
        }
    )

    data = result.normalized_data
    assert result.completeness_score == 100
    assert (data.start_date, data.end_date) == ("2025-06-09", "2025-06-13")
    assert (data.drop_off_hour, data.pick_up_hour) == (9, 15)
    assert (data.min_grade, data.max_grade) == (0, 5)
    assert data.price_in_cents == 25050
    assert data.location == "456 Oak Avenue, Portland, OR"


def test_invalid_date_is_reported_and_missing() -> None:
    result = validate_session(_complete(start_date="2025-02-30"))

    assert "startDate" in result.missing_fields
    error = next(error for error in result.errors if error.field == "startDate")
    assert error.attempted_value == "2025-02-30"


def test_out_of_range_hour_and_minute_are_reported_and_missing() -> None:
    result = validate_session(_complete(drop_off_hour=25, pick_up_hour=15, pick_up_minute=75))

    assert result.missing_fields == ["dropOffTime", "pickUpTime"]
    attempted = {error.field: error.attempted_value for error in result.errors}
    assert attempted == {"dropOffTime": "25", "pickUpTime": "75"}
    assert result.normalized_data.drop_off_hour is None
    assert (result.normalized_data.pick_up_hour, result.normalized_data.pick_up_minute) == (None, None)


def test_out_of_range_price_is_reported_and_dropped() -> None:
    result = validate_session(_complete(price_in_cents=None, price_raw="$25,000,000"))

    assert result.missing_fields == ["price"]
    assert [(error.field, error.attempted_value) for error in result.errors] == [("price", "2500000000")]
    assert result.normalized_data.price_in_cents is None

    negative = validate_session(_complete(price_in_cents=-500))
    assert negative.missing_fields == ["price"]
    assert negative.normalized_data.price_in_cents is None


def test_out_of_range_age_or_grade_is_reported_and_dropped() -> None:
    result = validate_session(_complete(min_age=6, max_age=10_000_000_000))

    assert result.missing_fields == ["ageRequirements"]
    assert result.errors[0].field == "ageRequirements"
    assert result.errors[0].attempted_value == "10000000000"
    assert (result.normalized_data.min_age, result.normalized_data.max_age) == (None, None)
    assert validate_session(_complete(min_age=None, max_age=None, min_grade=-1, max_grade=12)).is_complete
    assert "ageRequirements" in validate_session(_complete(min_age=None, max_age=None, max_grade=13)).missing_fields


def test_unparseable_raw_text_is_reported() -> None:
    result = validate_session(_complete(price_in_cents=None, price_raw="Call for pricing"))

    assert result.missing_fields == ["price"]
    assert result.errors[0].field == "price"
    assert result.errors[0].attempted_value == "Call for pricing"


def test_span_limit_allows_three_weeks_and_flags_longer_ranges() -> None:
    assert "dateRange" not in _error_fields(_complete(start_date="2025-06-01", end_date="2025-06-22"))

    long_result = validate_session(_complete(start_date="2025-06-01", end_date="2025-07-15"))
    error = next(error for error in long_result.errors if error.field == "dateRange")
    assert "44 days" in error.error
    assert long_result.is_complete


def test_flexible_ranges_skip_span_limit() -> None:
    assert "dateRange" not in _error_fields(
        _complete(start_date="2025-06-01", end_date="2025-08-31", is_flexible=True)
    )


def test_generic_or_short_location_is_flagged_but_present() -> None:
    for location in ("Online", "Main Location", "Gym"):
        result = validate_session(_complete(location=location))
        assert result.is_complete
        assert [error.field for error in result.errors] == ["location"]


def test_venue_list_location_is_flagged() -> None:
    venues = (
        "Lincoln Elementary School, Washington Middle School, Jefferson High School, "
        "Roosevelt Community Center, Adams Park"
    )
    result = validate_session(_complete(location=venues))

    messages = [error.error for error in result.errors if error.field == "location"]
    assert any("5 venues" in message for message in messages)


def test_registration_url_must_be_http() -> None:
    assert "registrationUrl" in _error_fields(_complete(registration_url="not a url"))
    assert "registrationUrl" in _error_fields(_complete(registration_url="ftp://example.org/file"))
    assert "registrationUrl" not in _error_fields(_complete(registration_url="http://example.org"))


def test_string_numbers_are_coerced() -> None:
    result = validate_session(_complete(drop_off_hour="9", drop_off_minute="30", price_in_cents="0"))

    assert result.is_complete
    assert result.normalized_data.drop_off_minute == 30
    assert result.normalized_data.price_in_cents == 0
