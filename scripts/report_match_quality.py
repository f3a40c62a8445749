# scripts/report_match_quality.py
import os
import csv
import argparse

from filmtracker.db import get_conn, fetch_csv_matches
from filmtracker.matching import assess_stored_match


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--threshold", type=int, default=80, help="Keep assessments scoring at or below this")
    ap.add_argument("--severity", choices=["high", "medium", "low"], default=None)
    ap.add_argument("--out", default="reports/match_quality.csv", help="Output CSV path")
    ap.add_argument("--limit", type=int, default=20, help="Rows printed in the preview (0 = all)")
    args = ap.parse_args()

    conn = get_conn()
    try:
        movies = fetch_csv_matches(conn)
    finally:
        conn.close()

    assessments = [
        assess_stored_match(m["id"], m["csv_title"], m["csv_year"], m["csv_director"],
                            m["title"], m["release_year"], m["director"])
        for m in movies
    ]
    flagged = [a for a in assessments if a["confidence_score"] <= args.threshold]
    if args.severity:
        flagged = [a for a in flagged if a["severity"] == args.severity]
    flagged.sort(key=lambda a: a["confidence_score"])

    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    fieldnames = ["movie_id", "confidence_score", "severity", "csv_title", "title",
                  "csv_year", "release_year", "csv_director", "director", "reasons"]
    with open(args.out, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for a in flagged:
            w.writerow({**a, "reasons": " | ".join(a["reasons"])})

    by_sev = {s: sum(1 for a in assessments if a["severity"] == s) for s in ("high", "medium", "low")}
    print(f"Assessed {len(assessments)} imported movies: high={by_sev['high']} "
          f"medium={by_sev['medium']} low={by_sev['low']}")
    print(f"{len(flagged)} at or below {args.threshold}. CSV written to: {args.out}")

    n = len(flagged) if args.limit == 0 else min(args.limit, len(flagged))
    for a in flagged[:n]:
        print(f"- [{a['severity']}] {a['confidence_score']:>3} | csv: {a['csv_title']} ({a['csv_year']}) "
              f"-> {a['title']} ({a['release_year']})")
        if a["reasons"]:
            print(f"  reasons: {', '.join(a['reasons'])}")


if __name__ == "__main__":
    main()
