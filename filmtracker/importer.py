"""
CSV-to-TMDb import: look each parsed row up on TMDb, score the candidate
and store it as a pending movie for review.
"""
import time
import logging
import psycopg2
from dataclasses import dataclass, field
from typing import Optional

from .csv_import import ParsedMovie
from .db import insert_imported_movie
from .errors import FilmTrackerError
from .matching import (
    MatchConfidence,
    SEVERITY_HIGH,
    LOW_CONFIDENCE_THRESHOLD,
    calculate_match_confidence,
    classify_severity,
)
from .tmdb import TMDbClient, release_year

log = logging.getLogger(__name__)

NOT_FOUND_REASON = "No TMDB match found - manual review required"
NOT_FOUND_MAX_SCORE = 30


@dataclass
class RowMatch:
    parsed: ParsedMovie
    details: Optional[dict]
    director: Optional[str]
    confidence: MatchConfidence
    severity: str

    @property
    def year_difference(self):
        matched = release_year(self.details)
        if self.parsed.year is None or matched is None:
            return None
        return abs(self.parsed.year - matched)

    def summary_line(self):
        p = self.parsed
        found = (self.details.get("title") or "-") if self.details else "-"
        reasons = ", ".join(self.confidence.reasons) or "ok"
        return (f"  #{p.row_number:<5} {p.title[:40]:<40} -> {found[:40]:<40} "
                f"{self.confidence.score:>3} [{self.severity}] {reasons}")


@dataclass
class ImportStats:
    total: int = 0
    matched: int = 0
    not_found: int = 0
    errors: int = 0
    low_confidence: int = 0
    failures: list = field(default_factory=list)


def not_found_match(parsed):
    conf = calculate_match_confidence(parsed.title, "")
    conf = MatchConfidence(
        score=min(conf.score, NOT_FOUND_MAX_SCORE),
        is_low_confidence=True,
        reasons=(NOT_FOUND_REASON,) + conf.reasons,
    )
    return RowMatch(parsed, None, None, conf, SEVERITY_HIGH)


def match_row(client: TMDbClient, parsed: ParsedMovie) -> RowMatch:
    found = client.search_movie_with_details(parsed.title, parsed.year, parsed.director)
    if not found:
        log.info("row %d: no TMDb match for %r", parsed.row_number, parsed.title)
        return not_found_match(parsed)

    details, director = found
    conf = calculate_match_confidence(
        parsed.title,
        details.get("title") or "",
        parsed.year,
        release_year(details),
        parsed.director,
        director,
    )
    log.debug("row %d: %r -> %r (tmdb %s) score=%d",
              parsed.row_number, parsed.title, details.get("title"), details.get("id"), conf.score)
    return RowMatch(parsed, details, director, conf, classify_severity(conf.score))


def import_rows(conn, client, rows, user_id, dry_run=False, sleep=0.1, on_row=None):
    """
    Match and store every row, one transaction per row. A row that fails is
    rolled back and recorded in stats.failures; the batch carries on.
    """
    stats = ImportStats(total=len(rows))
    for parsed in rows:
        try:
            match = match_row(client, parsed)
            if not dry_run:
                with conn, conn.cursor() as cur:
                    insert_imported_movie(cur, match, user_id)
        except (FilmTrackerError, psycopg2.Error) as e:
            stats.errors += 1
            stats.failures.append((parsed.row_number, parsed.title, str(e)[:900]))
            log.warning("row %d (%s) failed: %s", parsed.row_number, parsed.title, e)
            continue

        if match.details:
            stats.matched += 1
        else:
            stats.not_found += 1
        if match.confidence.score < LOW_CONFIDENCE_THRESHOLD:
            stats.low_confidence += 1
        if on_row:
            on_row(match)
        if sleep:
            time.sleep(sleep)
    return stats
