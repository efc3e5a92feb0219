"""
Fetch stage schedules from the LoL Esports persisted API.

Each match returned as a ScheduledMatch:
    ScheduledMatch(id="1134...", stage_id="1134...", best_of=3,
                   state="in_progress", score_a=1, score_b=0,
                   start_time="2025-10-14T08:00:00Z")

Only Bo1/Bo3/Bo5 matches are kept. Transient failures are retried with a
short linear backoff; anything still failing raises ScheduleFetchError.

Usage:
    from crystal.schedule.lolesports import fetch_stage_schedule
    matches = fetch_stage_schedule("113475482880934049", api_key=key)
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import requests

from crystal.utils.errors import ScheduleFetchError
from crystal.utils.logging import get_logger

log = get_logger(__name__)

API_HOST = "https://esports-api.lolesports.com/persisted/gw"
DEFAULT_LOCALE = "en-US"
VALID_SERIES_LENGTHS = {1, 3, 5}

UNSTARTED = "unstarted"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"


@dataclass
class ScheduledMatch:
    id: str
    stage_id: str
    best_of: int
    state: str
    score_a: int = 0
    score_b: int = 0
    start_time: str | None = None


def normalize_state(value: str | None) -> str:
    normalized = (value or "").lower()
    if normalized == "completed":
        return COMPLETED
    if normalized in ("inprogress", "in_progress", "live"):
        return IN_PROGRESS
    return UNSTARTED


def _score(value) -> int:
    # gameWins is sometimes null or missing before a match starts
    if isinstance(value, (int, float)) and value == value:
        return max(0, int(value))
    return 0


def _get_with_retry(url: str, params: dict, api_key: str, retries: int, timeout: float):
    last_error: Exception | None = None
    for attempt in range(retries + 1):
        try:
            r = requests.get(url, params=params, headers={"x-api-key": api_key}, timeout=timeout)
            r.raise_for_status()
            return r
        except requests.RequestException as exc:
            last_error = exc
            log.warning("schedule request failed (attempt %d/%d): %s", attempt + 1, retries + 1, exc)
        if attempt < retries:
            time.sleep(0.25 * (attempt + 1))
    raise ScheduleFetchError(f"giving up on {url}: {last_error}") from last_error


def parse_schedule(stage_id: str, payload: dict) -> list[ScheduledMatch]:
    """Turn a getSchedule response body into ScheduledMatch records."""
    events = ((payload.get("data") or {}).get("schedule") or {}).get("events") or []
    matches = []
    for event in events:
        match = event.get("match") or {}
        if not match.get("id"):
            continue
        best_of = (match.get("strategy") or {}).get("count")
        if best_of not in VALID_SERIES_LENGTHS:
            continue
        teams = match.get("teams") or []
        wins = [((t or {}).get("result") or {}).get("gameWins") for t in teams[:2]]
        wins += [None] * (2 - len(wins))
        matches.append(
            ScheduledMatch(
                id=match["id"],
                stage_id=stage_id,
                best_of=best_of,
                state=normalize_state(match.get("state") or event.get("state")),
                score_a=_score(wins[0]),
                score_b=_score(wins[1]),
                start_time=event.get("startTime"),
            )
        )
    return matches


def fetch_stage_schedule(
    stage_id: str,
    api_key: str | None,
    retries: int = 2,
    timeout: float = 15,
) -> list[ScheduledMatch]:
    """Return every Bo1/Bo3/Bo5 match of one stage."""
    if not stage_id:
        raise ValueError("stage_id is required")
    if not api_key:
        raise ScheduleFetchError("missing LOLESPORTS_API_KEY")

    r = _get_with_retry(
        f"{API_HOST}/getSchedule",
        {"hl": DEFAULT_LOCALE, "stageId": stage_id},
        api_key,
        retries,
        timeout,
    )
    matches = parse_schedule(stage_id, r.json())
    log.info("fetched %d matches for stage %s", len(matches), stage_id)
    return matches
