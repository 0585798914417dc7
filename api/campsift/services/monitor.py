"""Daily data quality rules evaluated per scrape source.

Rules are pure: they take a source snapshot plus its recent price stats and
return the issues found. Persisting issues as alerts happens in the
repository, which keeps at most one open alert per source and alert type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Mapping

AlertType = Literal["no_scraper", "low_quality", "stale_scrape", "never_succeeded", "high_zero_price"]
AlertSeverity = Literal["info", "warning", "error", "critical"]

DEFAULT_LOW_QUALITY_THRESHOLD = 50
DEFAULT_STALE_SCRAPE_DAYS = 7
DEFAULT_ZERO_PRICE_RATIO_THRESHOLD = 0.5


@dataclass(slots=True)
class SourceHealth:
    source_id: str
    name: str
    scraper_module: str | None = None
    scraper_code: str | None = None
    data_quality_score: int | None = None
    total_runs: int = 0
    consecutive_failures: int = 0
    last_success_at: datetime | None = None


@dataclass(slots=True)
class ZeroPriceStats:
    total_count: int
    zero_price_count: int

    @property
    def ratio(self) -> float:
        if self.total_count <= 0:
            return 0.0
        return self.zero_price_count / self.total_count


@dataclass(slots=True)
class QualityIssue:
    source_id: str
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class MonitorThresholds:
    low_quality_threshold: int = DEFAULT_LOW_QUALITY_THRESHOLD
    stale_scrape_days: int = DEFAULT_STALE_SCRAPE_DAYS
    zero_price_ratio_threshold: float = DEFAULT_ZERO_PRICE_RATIO_THRESHOLD


def source_health_from_row(row: Mapping[str, Any]) -> SourceHealth:
    return SourceHealth(
        source_id=str(row["id"]),
        name=row.get("name") or "",
        scraper_module=row.get("scraper_module"),
        scraper_code=row.get("scraper_code"),
        data_quality_score=row.get("data_quality_score"),
        total_runs=int(row.get("total_runs") or 0),
        consecutive_failures=int(row.get("consecutive_failures") or 0),
        last_success_at=row.get("last_success_at"),
    )


def evaluate_source(
    source: SourceHealth,
    zero_price: ZeroPriceStats | None = None,
    *,
    thresholds: MonitorThresholds | None = None,
    now: datetime | None = None,
) -> list[QualityIssue]:
    limits = thresholds or MonitorThresholds()
    current = now or datetime.now(timezone.utc)
    issues: list[QualityIssue] = []

    if not (source.scraper_module or "").strip() and not (source.scraper_code or "").strip():
        issues.append(
            QualityIssue(
                source_id=source.source_id,
                alert_type="no_scraper",
                severity="warning",
                message=f"Source '{source.name}' has no scraper module or code configured",
            )
        )

    if source.data_quality_score is not None and source.data_quality_score < limits.low_quality_threshold:
        issues.append(
            QualityIssue(
                source_id=source.source_id,
                alert_type="low_quality",
                severity="warning",
                message=f"Source '{source.name}' has low data quality score: {source.data_quality_score}%",
                details={"data_quality_score": source.data_quality_score},
            )
        )

    if source.last_success_at is not None:
        last_success = source.last_success_at
        if last_success.tzinfo is None:
            last_success = last_success.replace(tzinfo=timezone.utc)
        elapsed = current - last_success
        days_since = elapsed.days
        if elapsed > timedelta(days=limits.stale_scrape_days):
            issues.append(
                QualityIssue(
                    source_id=source.source_id,
                    alert_type="stale_scrape",
                    severity="warning",
                    message=f"Source '{source.name}' has not scraped successfully in {days_since} days",
                    details={"days_since_success": days_since},
                )
            )
    elif source.total_runs > 0:
        issues.append(
            QualityIssue(
                source_id=source.source_id,
                alert_type="never_succeeded",
                severity="error",
                message=f"Source '{source.name}' has never had a successful scrape ({source.total_runs} attempts)",
                details={"total_runs": source.total_runs},
            )
        )

    if zero_price is not None and zero_price.total_count > 0:
        ratio = zero_price.ratio
        if ratio > limits.zero_price_ratio_threshold:
            issues.append(
                QualityIssue(
                    source_id=source.source_id,
                    alert_type="high_zero_price",
                    severity="warning",
                    message=(
                        f"Source '{source.name}' has {round(ratio * 100)}% active sessions with $0 price "
                        f"({zero_price.zero_price_count}/{zero_price.total_count})"
                    ),
                    details={
                        "zero_price_count": zero_price.zero_price_count,
                        "total_count": zero_price.total_count,
                        "zero_price_ratio": round(ratio, 4),
                    },
                )
            )

    return issues
