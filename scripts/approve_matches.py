# scripts/approve_matches.py
import argparse

from filmtracker.db import get_conn, approve_movie, batch_approve, pending_ids_above, approval_stats
from filmtracker.errors import ApprovalError


def print_stats(conn):
    s = approval_stats(conn)
    print(f"[approval] total={s['total']} pending={s['pending']} approved={s['approved']} "
          f"with_csv={s['with_csv']} rate={s['approval_rate']}%")
    for r in s["recent_approvals"]:
        print(f"  {r['approved_at']:%Y-%m-%d %H:%M} | {r['title']} (id={r['id']}) by {r['approved_by']}")


def main():
    ap = argparse.ArgumentParser()
    g = ap.add_mutually_exclusive_group(required=True)
    g.add_argument("--id", type=int, nargs="+", help="Movie id(s) to approve")
    g.add_argument("--all-above", type=int, metavar="SCORE",
                   help="Approve every pending movie scoring at least SCORE")
    g.add_argument("--stats", action="store_true", help="Print approval statistics")
    ap.add_argument("--by", default=None, help="Reviewer name stored in approved_by")
    args = ap.parse_args()

    conn = get_conn()
    try:
        if args.stats:
            print_stats(conn)
        elif args.id and len(args.id) == 1:
            try:
                m = approve_movie(conn, args.id[0], args.by)
            except ApprovalError as e:
                raise SystemExit(str(e))
            print(f"Approved \"{m['title']}\" (id={m['id']})")
        else:
            ids = args.id or pending_ids_above(conn, args.all_above)
            rows = batch_approve(conn, ids, args.by)
            print(f"Approved {len(rows)} movie(s)")
            for r in rows:
                print(f"  - {r['title']} (id={r['id']})")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
