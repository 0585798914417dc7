from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SessionStatus = Literal["active", "draft", "pending_review"]
LooseInt = int | float | str | None


class CandidateIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    description: str | None = None
    category: str | None = None
    categories: list[str] = Field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    date_raw: str | None = None
    is_flexible: bool = False
    drop_off_hour: LooseInt = None
    drop_off_minute: LooseInt = None
    pick_up_hour: LooseInt = None
    pick_up_minute: LooseInt = None
    time_raw: str | None = None
    location: str | None = None
    location_raw: str | None = None
    min_age: LooseInt = None
    max_age: LooseInt = None
    min_grade: LooseInt = None
    max_grade: LooseInt = None
    age_grade_raw: str | None = None
    price_in_cents: LooseInt = None
    price_raw: str | None = None
    registration_url: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    source_product_id: str | None = None
    source_session_id: str | None = None


class ValidationErrorOut(BaseModel):
    field: str
    error: str
    attempted_value: str | None = None


class NormalizedSessionOut(BaseModel):
    name: str
    description: str | None = None
    category: str | None = None
    categories: list[str] = Field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    is_flexible: bool = False
    drop_off_hour: int | None = None
    drop_off_minute: int | None = None
    pick_up_hour: int | None = None
    pick_up_minute: int | None = None
    location: str | None = None
    min_age: int | None = None
    max_age: int | None = None
    min_grade: int | None = None
    max_grade: int | None = None
    price_in_cents: int | None = None
    price_raw: str | None = None
    registration_url: str | None = None
    image_urls: list[str] = Field(default_factory=list)


class ValidationResultOut(BaseModel):
    is_complete: bool
    completeness_score: int
    missing_fields: list[str] = Field(default_factory=list)
    errors: list[ValidationErrorOut] = Field(default_factory=list)
    normalized_data: NormalizedSessionOut | None = None
    status: SessionStatus | None = None


class SessionIngestRequest(BaseModel):
    source_id: str
    candidate: CandidateIn


class SessionOut(BaseModel):
    id: str
    source_id: str
    city_id: str | None = None
    organization_id: str | None = None
    camp_id: str | None = None
    camp_name: str | None = None
    organization_name: str | None = None
    status: SessionStatus
    name: str
    is_public: bool = False
    description: str | None = None
    category: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_flexible: bool = False
    drop_off_hour: int | None = None
    drop_off_minute: int | None = None
    pick_up_hour: int | None = None
    pick_up_minute: int | None = None
    location: str | None = None
    min_age: int | None = None
    max_age: int | None = None
    min_grade: int | None = None
    max_grade: int | None = None
    price_in_cents: int | None = None
    registration_url: str | None = None
    completeness_score: int
    missing_fields: list[str] = Field(default_factory=list)
    validation_errors: list[dict[str, Any]] = Field(default_factory=list)
    dedupe_key: str
    last_scraped_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SessionIngestOut(BaseModel):
    created: bool
    session: SessionOut
    validation: ValidationResultOut
