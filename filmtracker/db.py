import logging
import psycopg2
from psycopg2.extras import DictCursor, Json

from . import config
from .errors import ApprovalError
from .matching import round_half_up

log = logging.getLogger(__name__)

STATUS_APPROVED = "approved"
STATUS_REMOVED = "removed"


def get_conn():
    return psycopg2.connect(**config.DB)


def insert_imported_movie(cur, match, user_id):
    """
    Upsert the movie (TMDb data when found, CSV data otherwise), its match
    analysis and the user's viewing record. Returns the movie id.
    """
    p = match.parsed
    d = match.details
    if d:
        cur.execute("""
            INSERT INTO movies
              (tmdb_id, title, original_title, release_date, director, overview,
               poster_path, backdrop_path, runtime, genres, vote_average, vote_count,
               popularity, tagline, imdb_id,
               csv_row_number, csv_title, csv_director, csv_year, csv_notes, approval_status)
            VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,'pending')
            ON CONFLICT (tmdb_id) DO UPDATE SET
              title=EXCLUDED.title,
              original_title=EXCLUDED.original_title,
              release_date=EXCLUDED.release_date,
              director=EXCLUDED.director,
              overview=EXCLUDED.overview,
              poster_path=EXCLUDED.poster_path,
              csv_row_number=EXCLUDED.csv_row_number,
              csv_title=EXCLUDED.csv_title,
              csv_director=EXCLUDED.csv_director,
              csv_year=EXCLUDED.csv_year,
              csv_notes=EXCLUDED.csv_notes,
              updated_at=now()
            RETURNING id;
        """, (
            d["id"],
            d.get("title") or p.title,
            d.get("original_title"),
            d.get("release_date") or None,
            match.director,
            d.get("overview"),
            d.get("poster_path"),
            d.get("backdrop_path"),
            d.get("runtime"),
            Json(d.get("genres") or []),
            d.get("vote_average"),
            d.get("vote_count"),
            d.get("popularity"),
            d.get("tagline"),
            d.get("imdb_id"),
            p.row_number, p.title, p.director, p.year, p.notes,
        ))
    else:
        cur.execute("""
            INSERT INTO movies
              (title, director, release_date, overview,
               csv_row_number, csv_title, csv_director, csv_year, csv_notes, approval_status)
            VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,'pending')
            RETURNING id;
        """, (
            p.title,
            p.director,
            f"{p.year}-01-01" if p.year else None,
            f"Imported from CSV: {p.notes or 'no description available'}",
            p.row_number, p.title, p.director, p.year, p.notes,
        ))
    movie_id = cur.fetchone()[0]

    cur.execute("""
        INSERT INTO movie_match_analysis
          (movie_id, confidence_score, severity, mismatches, year_difference)
        VALUES (%s,%s,%s,%s,%s)
        ON CONFLICT (movie_id) DO UPDATE SET
          confidence_score=EXCLUDED.confidence_score,
          severity=EXCLUDED.severity,
          mismatches=EXCLUDED.mismatches,
          year_difference=EXCLUDED.year_difference,
          analysis_date=now();
    """, (
        movie_id,
        match.confidence.score,
        match.severity,
        Json(list(match.confidence.reasons)),
        match.year_difference,
    ))

    cur.execute("""
        INSERT INTO user_movies
          (movie_id, user_id, date_watched, personal_rating, notes, buddy_watched_with)
        VALUES (%s,%s,%s,%s,%s,%s)
        ON CONFLICT (user_id, movie_id) DO UPDATE SET
          date_watched=COALESCE(EXCLUDED.date_watched, user_movies.date_watched),
          personal_rating=COALESCE(EXCLUDED.personal_rating, user_movies.personal_rating),
          notes=EXCLUDED.notes,
          buddy_watched_with=EXCLUDED.buddy_watched_with,
          updated_at=now();
    """, (movie_id, user_id, p.date_watched, p.rating, p.notes, p.buddy))

    return movie_id


def list_pending(conn, severity=None, max_confidence=None, limit=50, offset=0):
    where = ["m.approval_status = 'pending'"]
    params = {"limit": limit, "offset": offset}
    if severity:
        where.append("a.severity = %(severity)s")
        params["severity"] = severity
    if max_confidence is not None:
        where.append("a.confidence_score <= %(max_confidence)s")
        params["max_confidence"] = max_confidence

    sql = f"""
        SELECT m.id, m.tmdb_id, m.title, m.director, m.release_date, m.poster_path, m.overview,
               m.csv_row_number, m.csv_title, m.csv_director, m.csv_year, m.csv_notes,
               COALESCE(a.confidence_score, 100) AS confidence_score,
               COALESCE(a.severity, 'low') AS severity,
               COALESCE(a.mismatches, '[]'::jsonb) AS mismatches
        FROM movies m
        LEFT JOIN movie_match_analysis a ON a.movie_id = m.id
        WHERE {' AND '.join(where)}
        ORDER BY m.csv_row_number ASC NULLS LAST, a.confidence_score ASC, m.created_at DESC
        LIMIT %(limit)s OFFSET %(offset)s;
    """
    with conn.cursor(cursor_factory=DictCursor) as cur:
        cur.execute(sql, params)
        return [dict(r) for r in cur.fetchall()]


def approve_movie(conn, movie_id, approved_by=None):
    approved_by = approved_by or config.APPROVED_BY
    with conn, conn.cursor(cursor_factory=DictCursor) as cur:
        cur.execute("SELECT id, title, approval_status FROM movies WHERE id=%s;", (movie_id,))
        row = cur.fetchone()
        if row is None:
            raise ApprovalError(f"Movie {movie_id} not found")
        if row["approval_status"] == STATUS_APPROVED:
            raise ApprovalError(f"Movie {movie_id} is already approved")

        cur.execute("""
            UPDATE movies
            SET approval_status='approved', approved_at=now(), approved_by=%s, updated_at=now()
            WHERE id=%s
            RETURNING id, title, approval_status, approved_at, approved_by;
        """, (approved_by, movie_id))
        approved = dict(cur.fetchone())
    log.info("approved movie %s (%s) by %s", movie_id, row["title"], approved_by)
    return approved


def batch_approve(conn, movie_ids, approved_by=None):
    """Approve every pending movie among movie_ids; others are ignored."""
    approved_by = approved_by or config.APPROVED_BY
    ids = list(movie_ids)
    if not ids:
        return []
    with conn, conn.cursor(cursor_factory=DictCursor) as cur:
        cur.execute("""
            UPDATE movies
            SET approval_status='approved', approved_at=now(), approved_by=%s, updated_at=now()
            WHERE id = ANY(%s) AND approval_status='pending'
            RETURNING id, title;
        """, (approved_by, ids))
        rows = [dict(r) for r in cur.fetchall()]
    log.info("batch approved %d/%d movies", len(rows), len(ids))
    return rows


def pending_ids_above(conn, min_confidence):
    with conn.cursor() as cur:
        cur.execute("""
            SELECT m.id
            FROM movies m
            JOIN movie_match_analysis a ON a.movie_id = m.id
            WHERE m.approval_status='pending' AND a.confidence_score >= %s
            ORDER BY m.id;
        """, (min_confidence,))
        return [r[0] for r in cur.fetchall()]


def remove_movie(conn, movie_id, removed_by=None):
    removed_by = removed_by or config.APPROVED_BY
    with conn, conn.cursor(cursor_factory=DictCursor) as cur:
        cur.execute("SELECT id, title, approval_status FROM movies WHERE id=%s;", (movie_id,))
        row = cur.fetchone()
        if row is None:
            raise ApprovalError(f"Movie {movie_id} not found")
        if row["approval_status"] == STATUS_REMOVED:
            raise ApprovalError(f"Movie {movie_id} is already removed")

        cur.execute("""
            UPDATE movies
            SET approval_status='removed', approved_at=now(), approved_by=%s, updated_at=now()
            WHERE id=%s
            RETURNING id, title, approval_status, approved_at, approved_by;
        """, (removed_by, movie_id))
        removed = dict(cur.fetchone())
    log.info("removed movie %s (%s) by %s", movie_id, row["title"], removed_by)
    return removed


def approval_stats(conn):
    with conn.cursor(cursor_factory=DictCursor) as cur:
        cur.execute("""
            SELECT COUNT(*) AS total,
                   COUNT(*) FILTER (WHERE approval_status='pending') AS pending,
                   COUNT(*) FILTER (WHERE approval_status='approved') AS approved,
                   COUNT(*) FILTER (WHERE csv_row_number IS NOT NULL) AS with_csv
            FROM movies;
        """)
        stats = dict(cur.fetchone())
        cur.execute("""
            SELECT id, title, approved_at, approved_by
            FROM movies
            WHERE approval_status='approved'
            ORDER BY approved_at DESC
            LIMIT 5;
        """)
        stats["recent_approvals"] = [dict(r) for r in cur.fetchall()]

    total = stats["total"]
    stats["approval_rate"] = round_half_up(stats["approved"] * 100 / total) if total else 0
    return stats


def fetch_csv_matches(conn):
    """Movies that came from a CSV import, with what is needed to re-score them."""
    with conn.cursor(cursor_factory=DictCursor) as cur:
        cur.execute("""
            SELECT id, title, director, EXTRACT(YEAR FROM release_date)::int AS release_year,
                   csv_title, csv_director, csv_year
            FROM movies
            WHERE csv_row_number IS NOT NULL
            ORDER BY id;
        """)
        return [dict(r) for r in cur.fetchall()]
