from datetime import datetime

from pydantic import BaseModel

from campsift.services.quality import QualityTier


class ScrapeRunRequest(BaseModel):
    success: bool
    error: str | None = None


class SourceOut(BaseModel):
    id: str
    name: str
    url: str | None = None
    city_id: str | None = None
    scraper_module: str | None = None
    is_active: bool
    data_quality_score: int | None = None
    quality_tier: QualityTier | None = None
    total_runs: int = 0
    consecutive_failures: int = 0
    success_rate: float = 0.0
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    last_error: str | None = None
    needs_regeneration: bool = False


class SourceQualityOut(BaseModel):
    source_id: str
    score: int
    tier: QualityTier
    session_count: int
    stored_score: int | None = None
    stored_tier: QualityTier | None = None
