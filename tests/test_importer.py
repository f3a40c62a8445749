"""
Tests for the import pipeline: matching rows and batch behaviour.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from filmtracker.csv_import import ParsedMovie
from filmtracker.errors import TMDbError
from filmtracker.importer import NOT_FOUND_REASON, import_rows, match_row
from conftest import FakeResponse


@pytest.fixture
def client(matrix_details):
    c = MagicMock()
    c.search_movie_with_details.return_value = (matrix_details, "Lana Wachowski")
    return c


def parsed(title="The Matrix", year=1999, director="Lana Wachowski", row_number=1):
    return ParsedMovie(row_number=row_number, title=title, year=year, director=director,
                       date_watched=date(2023, 3, 15))


class TestMatchRow:

    def test_confident_match(self, client):
        m = match_row(client, parsed())
        client.search_movie_with_details.assert_called_once_with("The Matrix", 1999, "Lana Wachowski")
        assert m.details["id"] == 603
        assert m.director == "Lana Wachowski"
        assert m.confidence.score == 100
        assert m.severity == "low"
        assert m.year_difference == 0

    def test_year_difference(self, client):
        m = match_row(client, parsed(year=1997))
        assert m.year_difference == 2
        assert m.confidence.reasons == ("Year mismatch (2 years)",)
        assert m.confidence.score == 80
        assert m.severity == "low"

    def test_year_difference_unknown(self, client):
        assert match_row(client, parsed(year=None)).year_difference is None

    def test_not_found(self, client):
        client.search_movie_with_details.return_value = None
        m = match_row(client, parsed(title="Some Home Video"))
        assert m.details is None
        assert m.confidence.score <= 30
        assert m.confidence.is_low_confidence
        assert m.confidence.reasons[0] == NOT_FOUND_REASON
        assert m.severity == "high"


class TestImportRows:

    def test_dry_run_writes_nothing(self, client):
        client.search_movie_with_details.side_effect = [
            (client.search_movie_with_details.return_value[0], "Lana Wachowski"),
            None,
        ]
        seen = []
        stats = import_rows(None, client, [parsed(), parsed("Unknown", row_number=2)], 1,
                            dry_run=True, sleep=0, on_row=seen.append)
        assert (stats.total, stats.matched, stats.not_found, stats.errors) == (2, 1, 1, 0)
        assert stats.low_confidence == 1
        assert [m.parsed.row_number for m in seen] == [1, 2]

    @patch("filmtracker.importer.insert_imported_movie")
    def test_stores_each_row(self, insert, client, mock_conn):
        conn, cur = mock_conn
        stats = import_rows(conn, client, [parsed(), parsed(row_number=2)], 5, sleep=0)
        assert stats.matched == 2
        assert insert.call_count == 2
        c_arg, match_arg, user_arg = insert.call_args[0]
        assert c_arg is cur
        assert match_arg.parsed.row_number == 2
        assert user_arg == 5

    @patch("filmtracker.importer.insert_imported_movie")
    def test_failed_rows_do_not_stop_the_batch(self, insert, client, mock_conn):
        conn, _ = mock_conn
        client.search_movie_with_details.side_effect = [
            TMDbError("boom"),
            (client.search_movie_with_details.return_value[0], "Lana Wachowski"),
        ]
        insert.side_effect = [psycopg2.Error("db down")]
        rows = [parsed(row_number=1), parsed(row_number=2)]
        stats = import_rows(conn, client, rows, 1, sleep=0)
        assert stats.errors == 2
        assert stats.matched == 0
        assert [f[0] for f in stats.failures] == [1, 2]
        assert stats.failures[0][2] == "boom"

    def test_invalid_tmdb_body_does_not_stop_the_batch(self, tmdb_client, fake_session):
        fake_session.routes["/search/movie"] = lambda params: FakeResponse(body_is_json=False)
        rows = [parsed(row_number=1), parsed("Heat", 1995, "Michael Mann", row_number=2)]
        seen = []
        stats = import_rows(None, tmdb_client, rows, 1, dry_run=True, sleep=0, on_row=seen.append)
        assert (stats.total, stats.matched, stats.not_found, stats.errors) == (2, 0, 2, 0)
        assert [m.confidence.reasons[0] for m in seen] == [NOT_FOUND_REASON] * 2

    def test_invalid_details_body_falls_back_to_not_found(self, tmdb_client, fake_session):
        fake_session.routes.update({
            "/search/movie": {"results": [{"id": 603, "title": "The Matrix"}]},
            "/movie/603": lambda params: FakeResponse(body_is_json=False),
        })
        stats = import_rows(None, tmdb_client, [parsed(row_number=1), parsed(row_number=2)], 1,
                            dry_run=True, sleep=0)
        assert (stats.total, stats.not_found, stats.errors) == (2, 2, 0)


class TestSummaryLine:

    def test_matched_row(self, client):
        line = match_row(client, parsed(year=1997)).summary_line()
        assert "#1" in line
        assert "-> The Matrix" in line
        assert " 80 [low] Year mismatch (2 years)" in line

    def test_details_without_title(self, client):
        client.search_movie_with_details.return_value = ({"id": 1, "title": None}, None)
        line = match_row(client, parsed(title="Untitled")).summary_line()
        assert "-> -" in line
        assert "[high]" in line

    def test_not_found_row(self, client):
        client.search_movie_with_details.return_value = None
        line = match_row(client, parsed(title="Home Video")).summary_line()
        assert "-> -" in line
        assert NOT_FOUND_REASON in line
