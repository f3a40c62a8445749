# -*- coding: utf-8 -*-
import pandas as pd
import streamlit as st

from filmtracker import config
from filmtracker.db import get_conn, list_pending, approve_movie, remove_movie, approval_stats
from filmtracker.errors import ApprovalError
from filmtracker.tmdb import TMDbClient

PAGE_SIZE = 20
SEVERITY_BADGE = {"high": "🔴 high", "medium": "🟠 medium", "low": "🟢 low"}

# ===============================
# DATA
# ===============================

def load_stats():
    conn = get_conn()
    try:
        return approval_stats(conn)
    finally:
        conn.close()


def load_pending(severity, max_confidence, page):
    conn = get_conn()
    try:
        return list_pending(conn, severity=severity, max_confidence=max_confidence,
                            limit=PAGE_SIZE, offset=(page - 1) * PAGE_SIZE)
    finally:
        conn.close()


def act(fn, *args):
    conn = get_conn()
    try:
        fn(conn, *args)
    except ApprovalError as e:
        st.error(str(e))
    finally:
        conn.close()


def comparison_frame(m):
    year = m["release_date"].year if m["release_date"] else None
    return pd.DataFrame(
        {"CSV": [m["csv_title"], m["csv_year"], m["csv_director"]],
         "TMDb": [m["title"], year, m["director"]]},
        index=["Title", "Year", "Director"],
    ).astype(str)

# ===============================
# STREAMLIT UI
# ===============================
st.set_page_config(page_title="Match review", layout="wide")
st.title("🎬 Match review")

stats = load_stats()
c1, c2, c3, c4 = st.columns(4)
c1.metric("Movies", stats["total"])
c2.metric("Pending", stats["pending"])
c3.metric("Approved", stats["approved"])
c4.metric("Approval rate", f"{stats['approval_rate']}%")

with st.sidebar:
    severity = st.selectbox("Severity", ["all", "high", "medium", "low"])
    max_confidence = st.slider("Max confidence", 0, 100, 100)
    page = st.number_input("Page", min_value=1, value=1, step=1)

movies = load_pending(None if severity == "all" else severity,
                      max_confidence if max_confidence < 100 else None,
                      int(page))

if not movies:
    st.success("Nothing left to review.")

for m in movies:
    with st.container():
        left, right = st.columns([1, 3])
        poster = TMDbClient.poster_url(m["poster_path"], "w200")
        if poster:
            left.image(poster)
        right.subheader(f"{m['title']}  ·  {m['confidence_score']}/100")
        right.caption(f"{SEVERITY_BADGE.get(m['severity'], m['severity'])} | CSV row {m['csv_row_number']}")
        right.table(comparison_frame(m))
        for reason in m["mismatches"]:
            right.warning(reason)
        if m["csv_notes"]:
            right.caption(f"Notes: {m['csv_notes']}")

        b1, b2, _ = right.columns([1, 1, 4])
        if b1.button("Approve", key=f"approve-{m['id']}"):
            act(approve_movie, m["id"], config.APPROVED_BY)
            st.rerun()
        if b2.button("Remove", key=f"remove-{m['id']}"):
            act(remove_movie, m["id"], config.APPROVED_BY)
            st.rerun()
        st.divider()
