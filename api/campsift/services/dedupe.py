from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

from rapidfuzz.distance import Levenshtein

from campsift.services.parsing import parse_iso_date

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_QUALIFIER_RE = re.compile(r"\s*\((?:grades?|ages?)\b[^)]*\)\s*$")
_TOKEN_RE = re.compile(r"[a-z0-9]+")
_STOP_WORDS = {
    "a",
    "an",
    "and",
    "at",
    "for",
    "in",
    "of",
    "on",
    "the",
    "to",
}

CONTAINMENT_SIMILARITY_FLOOR = 0.5
TOKEN_MATCH_SIMILARITY = 0.66
DEFAULT_CROSS_SOURCE_THRESHOLD = 0.85
RECENCY_WINDOW_DAYS = 30
PRICE_MISMATCH_RATIO = 0.25
LOCATION_MISMATCH_OVERLAP = 0.25


@dataclass(slots=True)
class SessionSnapshot:
    session_id: str
    source_id: str
    name: str
    start_date: str | None
    end_date: str | None = None
    city_id: str | None = None
    location: str | None = None
    status: str = "draft"
    price_in_cents: int | None = None
    completeness_score: int = 0
    registration_url: str | None = None
    description: str | None = None
    last_scraped_at: datetime | None = None
    created_at: datetime | None = None


@dataclass(slots=True)
class MergePlan:
    dedupe_key: str
    keep_id: str
    remove_ids: list[str]
    keeper_score: float


@dataclass(slots=True)
class CrossSourceMatch:
    session_id: str
    duplicate_session_id: str
    similarity: float
    components: dict[str, float] = field(default_factory=dict)
    risk_flags: list[str] = field(default_factory=list)


def normalize_name(name: str | None) -> str:
    if not name:
        return ""
    normalized = _WHITESPACE_RE.sub(" ", name.strip().lower())
    while True:
        stripped = _TRAILING_QUALIFIER_RE.sub("", normalized).strip()
        if stripped == normalized:
            return stripped
        normalized = stripped


def similarity(left: str | None, right: str | None) -> float:
    a = normalize_name(left)
    b = normalize_name(right)
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    score = Levenshtein.normalized_similarity(a, b)
    left_tokens = _tokenize(a)
    right_tokens = _tokenize(b)
    if left_tokens and right_tokens:
        score *= _soft_token_overlap(left_tokens, right_tokens)
    if a in b or b in a:
        score = max(score, CONTAINMENT_SIMILARITY_FLOOR)
    return score


def generate_dedupe_key(source_id: str, name: str | None, start_date: str | None) -> str:
    parsed = parse_iso_date(start_date)
    return f"{source_id}:{normalize_name(name)}:{parsed.isoformat() if parsed else ''}"


def is_mergeable(session: SessionSnapshot) -> bool:
    # Undated rows share an empty date slot, so their keys say nothing about the day.
    return parse_iso_date(session.start_date) is not None


def snapshot_from_row(row: Mapping[str, Any]) -> SessionSnapshot:
    return SessionSnapshot(
        session_id=str(row["id"]),
        source_id=str(row["source_id"]),
        name=row.get("name") or "",
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        city_id=row.get("city_id"),
        location=row.get("location"),
        status=row.get("status") or "draft",
        price_in_cents=row.get("price_in_cents"),
        completeness_score=int(row.get("completeness_score") or 0),
        registration_url=row.get("registration_url"),
        description=row.get("description"),
        last_scraped_at=row.get("last_scraped_at"),
        created_at=row.get("created_at"),
    )


def keeper_score(session: SessionSnapshot, *, now: datetime | None = None) -> float:
    """Rank a session as the row to keep when collapsing duplicates."""
    score = 0.0
    if session.status == "active":
        score += 100
    elif session.status == "draft":
        score += 50
    if session.price_in_cents is not None and session.price_in_cents > 0:
        score += 50
    score += session.completeness_score
    if session.last_scraped_at is not None:
        current = now or datetime.now(timezone.utc)
        age_days = (current - _as_utc(session.last_scraped_at)).total_seconds() / 86400.0
        score += max(0.0, RECENCY_WINDOW_DAYS - age_days)
    if session.registration_url:
        score += 20
    if session.description:
        score += 10
    return score


def plan_within_source_merges(
    sessions: Iterable[SessionSnapshot],
    *,
    now: datetime | None = None,
) -> list[MergePlan]:
    groups: dict[str, list[SessionSnapshot]] = {}
    for session in sessions:
        if not is_mergeable(session):
            continue
        key = generate_dedupe_key(session.source_id, session.name, session.start_date)
        groups.setdefault(key, []).append(session)

    plans: list[MergePlan] = []
    for key in sorted(groups):
        members = groups[key]
        if len(members) < 2:
            continue
        scored = [(keeper_score(member, now=now), member) for member in members]
        scored.sort(key=lambda item: (-item[0], _created_sort_key(item[1].created_at), item[1].session_id))
        best_score, keeper = scored[0]
        plans.append(
            MergePlan(
                dedupe_key=key,
                keep_id=keeper.session_id,
                remove_ids=[member.session_id for _, member in scored[1:]],
                keeper_score=round(best_score, 4),
            )
        )
    return plans


def find_cross_source_matches(
    sessions: Iterable[SessionSnapshot],
    threshold: float = DEFAULT_CROSS_SOURCE_THRESHOLD,
) -> list[CrossSourceMatch]:
    by_city: dict[str, list[SessionSnapshot]] = {}
    for session in sessions:
        if session.city_id:
            by_city.setdefault(session.city_id, []).append(session)

    matches: list[CrossSourceMatch] = []
    for city_id in sorted(by_city):
        members = sorted(by_city[city_id], key=lambda row: row.session_id)
        for index, left in enumerate(members):
            for right in members[index + 1 :]:
                match = score_session_pair(left, right, threshold=threshold)
                if match is not None:
                    matches.append(match)
    return matches


def score_session_pair(
    left: SessionSnapshot,
    right: SessionSnapshot,
    *,
    threshold: float = DEFAULT_CROSS_SOURCE_THRESHOLD,
) -> CrossSourceMatch | None:
    if left.source_id == right.source_id:
        return None
    if not left.city_id or left.city_id != right.city_id:
        return None
    overlap_days = _overlap_days(left, right)
    if overlap_days <= 0:
        return None
    name_similarity = similarity(left.name, right.name)
    if name_similarity < threshold:
        return None

    location_overlap = _jaccard(_tokenize(left.location), _tokenize(right.location))
    risk_flags: list[str] = []
    if left.location and right.location and location_overlap < LOCATION_MISMATCH_OVERLAP:
        risk_flags.append("location_mismatch")
    if left.start_date != right.start_date or left.end_date != right.end_date:
        risk_flags.append("partial_date_overlap")
    if _price_mismatch(left.price_in_cents, right.price_in_cents):
        risk_flags.append("price_mismatch")

    first, second = sorted((left, right), key=lambda row: row.session_id)
    return CrossSourceMatch(
        session_id=first.session_id,
        duplicate_session_id=second.session_id,
        similarity=round(name_similarity, 4),
        components={
            "name_similarity": round(name_similarity, 4),
            "overlap_days": float(overlap_days),
            "location_overlap": round(location_overlap, 4),
        },
        risk_flags=risk_flags,
    )


def _overlap_days(left: SessionSnapshot, right: SessionSnapshot) -> int:
    left_range = _date_range(left)
    right_range = _date_range(right)
    if left_range is None or right_range is None:
        return 0
    start = max(left_range[0], right_range[0])
    end = min(left_range[1], right_range[1])
    return (end - start).days + 1


def _date_range(session: SessionSnapshot) -> tuple[date, date] | None:
    start = parse_iso_date(session.start_date)
    if start is None:
        return None
    end = parse_iso_date(session.end_date) or start
    if end < start:
        return None
    return start, end


def _price_mismatch(left: int | None, right: int | None) -> bool:
    if not left or not right:
        return False
    return abs(left - right) / max(left, right) > PRICE_MISMATCH_RATIO


def _created_sort_key(value: datetime | None) -> float:
    if value is None:
        return float("inf")
    return _as_utc(value).timestamp()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _jaccard(left: set[str], right: set[str]) -> float:
    if not left or not right:
        return 0.0
    intersection = len(left & right)
    union = len(left | right)
    if union <= 0:
        return 0.0
    return intersection / union


def _tokenize(value: str | None) -> set[str]:
    if not value:
        return set()
    tokens = _TOKEN_RE.findall(value.casefold())
    return {token for token in tokens if token and token not in _STOP_WORDS}


def _soft_token_overlap(left: set[str], right: set[str]) -> float:
    left_matched = sum(1 for token in left if _has_token_match(token, right))
    right_matched = sum(1 for token in right if _has_token_match(token, left))
    matched = min(left_matched, right_matched)
    return matched / (len(left) + len(right) - matched)


def _has_token_match(token: str, candidates: set[str]) -> bool:
    return any(Levenshtein.normalized_similarity(token, other) >= TOKEN_MATCH_SIMILARITY for other in candidates)
