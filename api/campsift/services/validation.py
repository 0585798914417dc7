"""Session validation.

Scores how complete a scraped session candidate is and collects non-fatal
quality errors for operator review. Nothing in this module raises on bad input:
the worst outcome for a candidate is a completeness score of 0.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping
from urllib.parse import urlparse

from campsift.services.parsing import (
    parse_age_range,
    parse_date_range,
    parse_iso_date,
    parse_price,
    parse_time_range,
    round_half_up,
)

REQUIRED_FIELDS: tuple[str, ...] = (
    "startDate",
    "endDate",
    "dropOffTime",
    "pickUpTime",
    "location",
    "ageRequirements",
    "price",
)
PLACEHOLDER_VALUES: frozenset[str] = frozenset(
    value.casefold() for value in ("<UNKNOWN>", "UNKNOWN", "TBD", "N/A", "null", "undefined")
)
GENERIC_LOCATIONS: frozenset[str] = frozenset(
    value.casefold() for value in ("Main Location", "TBD", "Unknown", "N/A", "Online", "Various")
)
MAX_SESSION_SPAN_DAYS = 21
MIN_LOCATION_LENGTH = 20
VENUE_LIST_MIN_COMMAS = 3
VENUE_LIST_MIN_LENGTH = 100
MAX_PRICE_IN_CENTS = 2_147_483_647
MAX_AGE = 99
MIN_GRADE = -1
MAX_GRADE = 12

_ADDRESS_RE = re.compile(r"\d+\s+[A-Za-z]")
_CITY_TOKEN_RE = re.compile(r",\s*[A-Za-z .'-]+(?:,\s*[A-Z]{2})?(?:\s+\d{5})?\s*$")

_TEXT_FIELDS = (
    "name",
    "description",
    "category",
    "start_date",
    "end_date",
    "date_raw",
    "time_raw",
    "location",
    "location_raw",
    "age_grade_raw",
    "price_raw",
    "registration_url",
    "source_product_id",
    "source_session_id",
)
_INT_FIELDS = (
    "drop_off_hour",
    "drop_off_minute",
    "pick_up_hour",
    "pick_up_minute",
    "min_age",
    "max_age",
    "min_grade",
    "max_grade",
    "price_in_cents",
)


@dataclass(slots=True)
class ValidationError:
    field: str
    error: str
    attempted_value: str | None = None


@dataclass(slots=True)
class NormalizedSession:
    name: str = ""
    description: str | None = None
    category: str | None = None
    categories: list[str] = field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    is_flexible: bool = False
    date_raw: str | None = None
    drop_off_hour: int | None = None
    drop_off_minute: int | None = None
    pick_up_hour: int | None = None
    pick_up_minute: int | None = None
    time_raw: str | None = None
    location: str | None = None
    min_age: int | None = None
    max_age: int | None = None
    min_grade: int | None = None
    max_grade: int | None = None
    age_grade_raw: str | None = None
    price_in_cents: int | None = None
    price_raw: str | None = None
    registration_url: str | None = None
    image_urls: list[str] = field(default_factory=list)
    source_product_id: str | None = None
    source_session_id: str | None = None


@dataclass(slots=True)
class ValidationResult:
    is_complete: bool
    completeness_score: int
    missing_fields: list[str]
    errors: list[ValidationError]
    normalized_data: NormalizedSession

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_placeholder(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    stripped = value.strip()
    return not stripped or stripped.casefold() in PLACEHOLDER_VALUES


def validate_session(candidate: Mapping[str, Any] | None) -> ValidationResult:
    session = normalize_session(candidate)
    raw = _clean_candidate(candidate)
    missing: list[str] = []
    errors: list[ValidationError] = []

    start = _check_date(session.start_date, "startDate", raw.get("start_date"), missing, errors)
    if start is None and "startDate" in missing and session.date_raw and raw.get("start_date") is None:
        errors.append(
            ValidationError(
                field="startDate",
                error="Could not parse start date from raw text",
                attempted_value=session.date_raw,
            )
        )
    end = _check_date(session.end_date, "endDate", raw.get("end_date"), missing, errors)

    if start is not None and end is not None:
        span_days = (end - start).days
        if span_days > MAX_SESSION_SPAN_DAYS and not session.is_flexible:
            errors.append(
                ValidationError(
                    field="dateRange",
                    error=(
                        f"Session spans {span_days} days - likely a program overview, "
                        f"not an individual camp session (max {MAX_SESSION_SPAN_DAYS} days)"
                    ),
                    attempted_value=f"{session.start_date} to {session.end_date}",
                )
            )
        elif span_days < 0:
            errors.append(
                ValidationError(
                    field="dateRange",
                    error="Session ends before it starts",
                    attempted_value=f"{session.start_date} to {session.end_date}",
                )
            )

    if session.registration_url and not is_http_url(session.registration_url):
        errors.append(
            ValidationError(
                field="registrationUrl",
                error="Registration URL is not a valid HTTP/HTTPS URL",
                attempted_value=session.registration_url,
            )
        )

    drop_off_ok = _check_time(
        session.drop_off_hour, session.drop_off_minute, "dropOffTime", missing, errors
    )
    if not drop_off_ok:
        if raw.get("drop_off_hour") is None and session.time_raw:
            errors.append(
                ValidationError(
                    field="dropOffTime",
                    error="Could not parse drop-off time from raw text",
                    attempted_value=session.time_raw,
                )
            )
        session.drop_off_hour = session.drop_off_minute = None
    if not _check_time(session.pick_up_hour, session.pick_up_minute, "pickUpTime", missing, errors):
        session.pick_up_hour = session.pick_up_minute = None

    if session.location is None:
        missing.append("location")
    else:
        errors.extend(_location_errors(session.location))

    has_age = session.min_age is not None or session.max_age is not None
    has_grade = session.min_grade is not None or session.max_grade is not None
    age_error = _age_range_error(session)
    if age_error is not None:
        errors.append(age_error)
        missing.append("ageRequirements")
        session.min_age = session.max_age = session.min_grade = session.max_grade = None
    elif not has_age and not has_grade:
        missing.append("ageRequirements")
        if session.age_grade_raw:
            errors.append(
                ValidationError(
                    field="ageRequirements",
                    error="Could not parse age/grade from raw text",
                    attempted_value=session.age_grade_raw,
                )
            )

    if session.price_in_cents is None:
        missing.append("price")
        if session.price_raw:
            errors.append(
                ValidationError(
                    field="price",
                    error="Could not parse price from raw text",
                    attempted_value=session.price_raw,
                )
            )
    elif not 0 <= session.price_in_cents <= MAX_PRICE_IN_CENTS:
        missing.append("price")
        errors.append(
            ValidationError(
                field="price",
                error="Price cannot be negative" if session.price_in_cents < 0 else "Price is out of range",
                attempted_value=str(session.price_in_cents),
            )
        )
        session.price_in_cents = None

    missing = [name for name in REQUIRED_FIELDS if name in missing]
    present = len(REQUIRED_FIELDS) - len(missing)
    return ValidationResult(
        is_complete=not missing,
        completeness_score=round_half_up(100 * present / len(REQUIRED_FIELDS)),
        missing_fields=missing,
        errors=errors,
        normalized_data=session,
    )


def normalize_session(candidate: Mapping[str, Any] | None) -> NormalizedSession:
    raw = _clean_candidate(candidate)

    start_date = raw.get("start_date")
    end_date = raw.get("end_date")
    is_flexible = bool(raw.get("is_flexible"))
    if start_date is None or end_date is None:
        parsed_dates = parse_date_range(raw.get("date_raw"))
        if parsed_dates is not None:
            start_date = start_date or parsed_dates.start_date
            end_date = end_date or parsed_dates.end_date
            is_flexible = is_flexible or parsed_dates.is_flexible

    drop_off_hour = raw.get("drop_off_hour")
    drop_off_minute = raw.get("drop_off_minute")
    pick_up_hour = raw.get("pick_up_hour")
    pick_up_minute = raw.get("pick_up_minute")
    if drop_off_hour is None or pick_up_hour is None:
        parsed_times = parse_time_range(raw.get("time_raw"))
        if parsed_times is not None:
            if drop_off_hour is None:
                drop_off_hour = parsed_times.drop_off_hour
                drop_off_minute = parsed_times.drop_off_minute
            if pick_up_hour is None:
                pick_up_hour = parsed_times.pick_up_hour
                pick_up_minute = parsed_times.pick_up_minute

    min_age, max_age = raw.get("min_age"), raw.get("max_age")
    min_grade, max_grade = raw.get("min_grade"), raw.get("max_grade")
    if all(value is None for value in (min_age, max_age, min_grade, max_grade)):
        parsed_ages = parse_age_range(raw.get("age_grade_raw"))
        if parsed_ages is not None and parsed_ages.is_grade_range:
            min_grade, max_grade = parsed_ages.min_grade, parsed_ages.max_grade
        elif parsed_ages is not None:
            min_age, max_age = parsed_ages.min_age, parsed_ages.max_age

    price_in_cents = raw.get("price_in_cents")
    if price_in_cents is None:
        price_in_cents = parse_price(raw.get("price_raw"))

    categories = _text_list(raw.get("categories"))
    category = raw.get("category")
    if category and category not in categories:
        categories.insert(0, category)

    return NormalizedSession(
        name=raw.get("name") or "",
        description=raw.get("description"),
        category=category or (categories[0] if categories else None),
        categories=categories,
        start_date=start_date,
        end_date=end_date,
        is_flexible=is_flexible,
        date_raw=raw.get("date_raw"),
        drop_off_hour=drop_off_hour,
        drop_off_minute=_default_minute(drop_off_hour, drop_off_minute),
        pick_up_hour=pick_up_hour,
        pick_up_minute=_default_minute(pick_up_hour, pick_up_minute),
        time_raw=raw.get("time_raw"),
        location=raw.get("location") or raw.get("location_raw"),
        min_age=min_age,
        max_age=max_age,
        min_grade=min_grade,
        max_grade=max_grade,
        age_grade_raw=raw.get("age_grade_raw"),
        price_in_cents=price_in_cents,
        price_raw=raw.get("price_raw"),
        registration_url=raw.get("registration_url"),
        image_urls=_text_list(raw.get("image_urls")),
        source_product_id=raw.get("source_product_id"),
        source_session_id=raw.get("source_session_id"),
    )


def is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc) and " " not in parsed.netloc


def _check_date(
    value: str | None,
    field_name: str,
    supplied: Any,
    missing: list[str],
    errors: list[ValidationError],
):
    if value is None:
        missing.append(field_name)
        return None
    parsed = parse_iso_date(value)
    if parsed is None:
        missing.append(field_name)
        errors.append(
            ValidationError(
                field=field_name,
                error="Invalid date format (expected YYYY-MM-DD)",
                attempted_value=str(supplied if supplied is not None else value),
            )
        )
    return parsed


def _check_time(
    hour: int | None,
    minute: int | None,
    field_name: str,
    missing: list[str],
    errors: list[ValidationError],
) -> bool:
    if hour is None:
        missing.append(field_name)
        return False
    if not 0 <= hour <= 23:
        missing.append(field_name)
        errors.append(
            ValidationError(field=field_name, error="Invalid hour (expected 0-23)", attempted_value=str(hour))
        )
        return False
    if minute is not None and not 0 <= minute <= 59:
        missing.append(field_name)
        errors.append(
            ValidationError(field=field_name, error="Invalid minute (expected 0-59)", attempted_value=str(minute))
        )
        return False
    return True


def _age_range_error(session: NormalizedSession) -> ValidationError | None:
    bounds = (
        ("age", session.min_age, 0, MAX_AGE),
        ("age", session.max_age, 0, MAX_AGE),
        ("grade", session.min_grade, MIN_GRADE, MAX_GRADE),
        ("grade", session.max_grade, MIN_GRADE, MAX_GRADE),
    )
    for kind, value, low, high in bounds:
        if value is not None and not low <= value <= high:
            return ValidationError(
                field="ageRequirements",
                error=f"Invalid {kind} (expected {low}-{high})",
                attempted_value=str(value),
            )
    return None


def _location_errors(location: str) -> list[ValidationError]:
    errors: list[ValidationError] = []
    is_generic = location.casefold() in GENERIC_LOCATIONS
    has_address = bool(_ADDRESS_RE.search(location) or _CITY_TOKEN_RE.search(location))
    if is_generic or (not has_address and len(location) < MIN_LOCATION_LENGTH):
        errors.append(
            ValidationError(
                field="location",
                error="Location appears incomplete or generic - should include street address",
                attempted_value=location,
            )
        )

    comma_count = location.count(",")
    if comma_count >= VENUE_LIST_MIN_COMMAS and len(location) > VENUE_LIST_MIN_LENGTH:
        errors.append(
            ValidationError(
                field="location",
                error=f"Location appears to be a list of {comma_count + 1} venues - should be a single location",
                attempted_value=location[:VENUE_LIST_MIN_LENGTH] + "...",
            )
        )
    return errors


def _clean_candidate(candidate: Mapping[str, Any] | None) -> dict[str, Any]:
    if not isinstance(candidate, Mapping):
        return {}
    cleaned: dict[str, Any] = {}
    for key in _TEXT_FIELDS:
        value = candidate.get(key)
        if isinstance(value, str) and not is_placeholder(value):
            cleaned[key] = value.strip()
    for key in _INT_FIELDS:
        cleaned[key] = _coerce_int(candidate.get(key))
    cleaned["is_flexible"] = candidate.get("is_flexible") is True
    cleaned["categories"] = candidate.get("categories")
    cleaned["image_urls"] = candidate.get("image_urls")
    return cleaned


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and not is_placeholder(value):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _default_minute(hour: int | None, minute: int | None) -> int | None:
    if hour is None:
        return minute
    return 0 if minute is None else minute


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    items: list[str] = []
    for entry in value:
        if isinstance(entry, str) and not is_placeholder(entry):
            items.append(entry.strip())
    return items
