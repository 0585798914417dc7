from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from campsift.services.dedupe import (
    SessionSnapshot,
    find_cross_source_matches,
    generate_dedupe_key,
    keeper_score,
    normalize_name,
    plan_within_source_merges,
    similarity,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _session(session_id: str, **overrides: Any) -> SessionSnapshot:
    values: dict[str, Any] = {
        "session_id": session_id,
        "source_id": "source-a",
        "name": "Lego Robotics Camp",
        "start_date": "2025-06-09",
        "end_date": "2025-06-13",
        "city_id": "portland",
        "location": "100 Main St, Portland",
        "status": "draft",
        "price_in_cents": 30000,
        "completeness_score": 86,
        "created_at": NOW - timedelta(days=10),
    }
    values.update(overrides)
    return SessionSnapshot(**values)


def test_similarity_edge_cases() -> None:
    assert similarity("Soccer Camp", "Soccer Camp") == 1.0
    assert similarity("", "Soccer Camp") == 0.0
    assert similarity("Soccer Camp", "") == 0.0
    assert similarity("", "") == 1.0
    assert similarity("Soccer Camp", "SOCCER   camp") == 1.0


def test_similarity_is_symmetric_and_bounded() -> None:
    forward = similarity("Art Explorers", "Art Explorer")
    backward = similarity("Art Explorer", "Art Explorers")
    assert forward == backward
    assert 0.9 < forward < 1.0
    assert 0.0 <= similarity("Chess Club", "Swim Team") < 0.3


def test_similarity_separates_unrelated_names_from_typos() -> None:
    assert similarity("Soccer Camp", "Robotics Camp") < 0.3
    assert similarity("Lego Robotics", "Ballet Basics") < 0.3
    assert similarity("Art Camp", "Basketball Training") < 0.3
    assert similarity("Lego Robotics Camp", "Lego Robotcs Camp") > 0.8
    assert similarity("Soccer Camp", "Socer Camp") > 0.8
    assert similarity("Soccer Camp Week 1", "Soccer Camp Week 2") < 0.8


def test_similarity_containment_floor() -> None:
    assert similarity("Art", "Art Camp Deluxe Edition") >= 0.5
    assert similarity("Robotics", "Lego Robotics") > 0.4


def test_normalize_name_strips_qualifiers_and_is_idempotent() -> None:
    assert normalize_name("  Pottery   Studio (Grades 3-5) ") == "pottery studio"
    assert normalize_name("Pottery Studio (Grades 6-8)") == "pottery studio"
    assert normalize_name("Soccer (Ages 5-7) (Grade 2)") == "soccer"
    for name in ("Pottery Studio (Grades 3-5)", "Camp (Age 4)", "Plain Name", ""):
        once = normalize_name(name)
        assert normalize_name(once) == once


def test_dedupe_key_ignores_case_whitespace_and_grade_qualifiers() -> None:
    first = generate_dedupe_key("source-a", "Soccer (Grades K-2)", "2025-06-09")
    second = generate_dedupe_key("source-a", "soccer   (grades 3-5)", "2025-06-09")
    assert first == second == "source-a:soccer:2025-06-09"
    assert generate_dedupe_key("source-b", "Soccer", "2025-06-09") != first
    assert generate_dedupe_key("source-a", "Soccer", " 2025-06-09 ") == first
    assert generate_dedupe_key("source-a", "Soccer", "June 9") == "source-a:soccer:"


def test_within_source_merge_keeps_best_row() -> None:
    sessions = [
        _session("s1", name="Soccer (Grades K-2)", status="draft"),
        _session("s2", name="Soccer (Grades 3-5)", status="active", registration_url="https://example.org"),
        _session("s3", name="Soccer", start_date="2025-06-16", end_date="2025-06-20"),
    ]

    plans = plan_within_source_merges(sessions, now=NOW)

    assert len(plans) == 1
    assert plans[0].dedupe_key == "source-a:soccer:2025-06-09"
    assert plans[0].keep_id == "s2"
    assert plans[0].remove_ids == ["s1"]


def test_within_source_merge_leaves_undated_sessions_alone() -> None:
    sessions = [
        _session("w1", name="Soccer Camp", start_date=None, end_date=None, location="Park A", price_in_cents=10000),
        _session("w2", name="Soccer Camp", start_date=None, end_date=None, location="Park B", price_in_cents=20000),
        _session("w3", name="Soccer Camp", start_date="TBD", end_date=None),
    ]

    assert plan_within_source_merges(sessions, now=NOW) == []


def test_within_source_merge_breaks_ties_by_creation_then_id() -> None:
    sessions = [
        _session("s2", created_at=NOW - timedelta(days=3)),
        _session("s1", created_at=NOW - timedelta(days=3)),
        _session("s3", created_at=NOW - timedelta(days=30)),
    ]

    plans = plan_within_source_merges(sessions, now=NOW)

    assert plans[0].keep_id == "s3"
    assert plans[0].remove_ids == ["s1", "s2"]


def test_keeper_score_rewards_recent_scrapes() -> None:
    fresh = _session("fresh", last_scraped_at=NOW - timedelta(days=1))
    stale = _session("stale", last_scraped_at=NOW - timedelta(days=45))
    assert keeper_score(fresh, now=NOW) == keeper_score(stale, now=NOW) + 29


def test_cross_source_match_flags_probable_duplicates() -> None:
    left = _session("a1", source_id="source-a")
    right = _session(
        "b1",
        source_id="source-b",
        name="LEGO Robotics Camp (Ages 7-10)",
        start_date="2025-06-10",
        location="Portland Community Center",
    )

    matches = find_cross_source_matches([right, left])

    assert len(matches) == 1
    match = matches[0]
    assert (match.session_id, match.duplicate_session_id) == ("a1", "b1")
    assert match.similarity == 1.0
    assert match.components["overlap_days"] == 4.0
    assert "partial_date_overlap" in match.risk_flags
    assert "location_mismatch" in match.risk_flags


def test_cross_source_ignores_same_source_other_city_and_disjoint_dates() -> None:
    base = _session("a1", source_id="source-a")
    assert find_cross_source_matches([base, _session("a2", source_id="source-a")]) == []
    assert find_cross_source_matches([base, _session("b1", source_id="source-b", city_id="seattle")]) == []
    assert (
        find_cross_source_matches(
            [base, _session("b1", source_id="source-b", start_date="2025-07-07", end_date="2025-07-11")]
        )
        == []
    )
    assert find_cross_source_matches([base, _session("b1", source_id="source-b", name="Ballet Basics")]) == []
