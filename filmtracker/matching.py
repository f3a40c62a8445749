"""
Confidence scoring for CSV rows matched against TMDb.

A score is the sum of three bounded parts: title (60), year (20) and
director (20). Missing years or directors contribute nothing and add no
reason, so a row with partial information is not treated as a mismatch.
"""
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from rapidfuzz.distance import Levenshtein

LOW_CONFIDENCE_THRESHOLD = 70

TITLE_POINTS = 60
YEAR_POINTS = 20
YEAR_OFF_BY_ONE_POINTS = 15
DIRECTOR_POINTS = 20

TITLE_MISMATCH_BELOW = 40
DIRECTOR_MISMATCH_BELOW = 15

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"


@dataclass(frozen=True)
class MatchConfidence:
    score: int
    is_low_confidence: bool
    reasons: Tuple[str, ...] = ()


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def string_similarity(a: str, b: str) -> float:
    """Edit-distance ratio in [0, 1]; 1.0 for identical strings (incl. two empty ones)."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein(a, b)) / longest


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def calculate_match_confidence(
    search_title: str,
    matched_title: str,
    search_year: Optional[int] = None,
    matched_year: Optional[int] = None,
    search_director: Optional[str] = None,
    matched_director: Optional[str] = None,
) -> MatchConfidence:
    score = 0
    reasons = []

    title_score = round_half_up(
        string_similarity(search_title.lower(), matched_title.lower()) * TITLE_POINTS
    )
    score += title_score
    if title_score < TITLE_MISMATCH_BELOW:
        reasons.append("Title mismatch")

    if search_year is not None and matched_year is not None:
        diff = abs(search_year - matched_year)
        if diff == 0:
            score += YEAR_POINTS
        elif diff == 1:
            score += YEAR_OFF_BY_ONE_POINTS
            reasons.append("Year off by 1")
        else:
            reasons.append(f"Year mismatch ({diff} years)")

    if search_director and matched_director:
        director_score = round_half_up(
            string_similarity(search_director.lower(), matched_director.lower()) * DIRECTOR_POINTS
        )
        score += director_score
        if director_score < DIRECTOR_MISMATCH_BELOW:
            reasons.append("Director mismatch")

    return MatchConfidence(
        score=score,
        is_low_confidence=score < LOW_CONFIDENCE_THRESHOLD,
        reasons=tuple(reasons),
    )


def classify_severity(score: int) -> str:
    """Review priority for a confidence score: high < 50 <= medium < 80 <= low."""
    if score < 50:
        return SEVERITY_HIGH
    if score < 80:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


def assess_stored_match(movie_id, csv_title, csv_year, csv_director, title, release_year, director) -> dict:
    """Re-score a stored movie against the CSV snapshot it was imported from."""
    confidence = calculate_match_confidence(
        csv_title or "",
        title or "",
        csv_year,
        release_year,
        csv_director,
        director,
    )
    return {
        "movie_id": movie_id,
        "title": title,
        "csv_title": csv_title,
        "csv_year": csv_year,
        "release_year": release_year,
        "csv_director": csv_director,
        "director": director,
        "confidence_score": confidence.score,
        "severity": classify_severity(confidence.score),
        "reasons": list(confidence.reasons),
    }
