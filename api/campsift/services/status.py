from __future__ import annotations

import re
from typing import Literal

SessionStatus = Literal["active", "draft", "pending_review"]

PUBLIC_STATUSES: frozenset[str] = frozenset({"active"})
DRAFT_MIN_COMPLETENESS = 50
ACTIVE_COMPLETENESS = 100

_FREE_INDICATOR_RE = re.compile(r"\bfree\b", re.IGNORECASE)


def status_for_completeness(completeness_score: int) -> SessionStatus:
    if completeness_score < DRAFT_MIN_COMPLETENESS:
        return "pending_review"
    if completeness_score < ACTIVE_COMPLETENESS:
        return "draft"
    return "active"


def determine_session_status(
    completeness_score: int,
    *,
    price_in_cents: int | None,
    price_raw: str | None,
) -> SessionStatus:
    """Resolve the publication state of a validated session.

    A complete session with a zero price is held back as a draft unless the
    raw price text says it is free, since "$0" is a common scraper miss.
    """
    status = status_for_completeness(completeness_score)
    if status != "active":
        return status
    if price_in_cents is not None and price_in_cents > 0:
        return "active"
    if price_raw and _FREE_INDICATOR_RE.search(price_raw):
        return "active"
    return "draft"


def is_publicly_visible(status: str) -> bool:
    return status in PUBLIC_STATUSES
