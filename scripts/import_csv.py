# scripts/import_csv.py
import argparse
import logging

from filmtracker import config
from filmtracker.csv_import import read_csv, parse_rows
from filmtracker.db import get_conn
from filmtracker.importer import import_rows
from filmtracker.tmdb import TMDbClient


def print_row(match):
    print(match.summary_line())


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--csv", required=True, help="Path to the collection CSV export")
    ap.add_argument("--dry-run", action="store_true", help="Match and score only, write nothing")
    ap.add_argument("--limit", type=int, default=None, help="Max rows to import")
    ap.add_argument("--skip", type=int, default=0, help="Rows to skip after the header")
    ap.add_argument("--sleep", type=float, default=0.1)
    ap.add_argument("--user-id", type=int, default=config.DEFAULT_USER_ID)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    df = read_csv(args.csv)
    rows = parse_rows(df, skip=args.skip, limit=args.limit)
    print(f"[import_csv] rows: {len(rows)} (dry_run={args.dry_run})")

    client = TMDbClient()
    conn = None if args.dry_run else get_conn()
    try:
        stats = import_rows(conn, client, rows, args.user_id,
                            dry_run=args.dry_run, sleep=args.sleep, on_row=print_row)
    finally:
        if conn is not None:
            conn.close()

    print(f"[import_csv] total={stats.total} matched={stats.matched} "
          f"not_found={stats.not_found} low_confidence={stats.low_confidence} errors={stats.errors}")
    for row_number, title, err in stats.failures:
        print(f"  ERROR #{row_number} {title}: {err}")
    print("Done.")


if __name__ == "__main__":
    main()
