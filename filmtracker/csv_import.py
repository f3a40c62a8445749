import re
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from .errors import CSVImportError

log = logging.getLogger(__name__)


@dataclass
class ParsedMovie:
    row_number: int
    title: str
    year: Optional[int] = None
    director: Optional[str] = None
    date_watched: Optional[date] = None
    rating: Optional[float] = None
    notes: Optional[str] = None
    buddy: Optional[str] = None


SEPARATORS = ("\t", ";", ",")
ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")


def detect_sep_and_encoding(csv_path: str):
    """
    Guess the separator from the header line and the encoding from the first
    complete lines. Exports saved from spreadsheet apps are often cp1252.
    """
    with open(csv_path, "rb") as f:
        raw = f.read(4096)
    if len(raw) == 4096 and b"\n" in raw:
        raw = raw[:raw.rfind(b"\n")]
    for enc in ENCODINGS:
        try:
            sample = raw.decode(enc)
            break
        except UnicodeDecodeError:
            continue
    header = sample.splitlines()[0] if sample else ""
    sep = max(SEPARATORS, key=header.count)
    if not header.count(sep):
        sep = ","
    return sep, enc


def norm_col(name: str) -> str:
    name = re.sub(r"[\s\-]+", "_", (name or "").strip().lower())
    return name.rstrip(".")


def pick_col(columns_by_norm: dict, *aliases):
    for alias in aliases:
        found = columns_by_norm.get(norm_col(alias))
        if found:
            return found
    return None


def parse_year(x):
    if x is None or pd.isna(x):
        return None
    if isinstance(x, (int, float)):
        return int(x) if 1800 <= x < 2100 else None
    m = re.search(r"\b(18|19|20)\d{2}\b", str(x))
    return int(m.group(0)) if m else None


def parse_rating(x):
    if x is None or pd.isna(x):
        return None
    s = str(x).strip().replace(",", ".")
    if not s:
        return None
    try:
        v = float(s)
    except ValueError:
        return None
    return v if 0 <= v <= 10 else None


def parse_watched_date(x):
    """
    Collection exports write completion dates as M.D.YY (or M.D.YYYY);
    anything else goes through pandas with day-first parsing.
    """
    if x is None or pd.isna(x):
        return None
    s = str(x).strip()
    if not s:
        return None
    m = re.fullmatch(r"(\d{1,2})\.(\d{1,2})\.(\d{2}|\d{4})", s)
    if m:
        month, day, year = m.groups()
        if len(year) == 2:
            year = "20" + year
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            return None
    d = pd.to_datetime(s, dayfirst=True, errors="coerce")
    return None if pd.isna(d) else d.date()


def detect_buddy(notes):
    m = re.search(r"\bwith\s+([A-Za-z][\w'-]*)", notes or "", flags=re.IGNORECASE)
    return m.group(1).capitalize() if m else None


def read_csv(csv_path: str) -> pd.DataFrame:
    sep, enc = detect_sep_and_encoding(csv_path)
    df = pd.read_csv(csv_path, sep=sep, encoding=enc, dtype=str, keep_default_na=False)
    df.columns = [c.strip() for c in df.columns]
    log.debug("read %s: separator=%r columns=%s", csv_path, sep, list(df.columns))
    return df


def map_columns(df: pd.DataFrame) -> dict:
    df_cols_norm = {norm_col(c): c for c in df.columns}
    cols = {
        "title": pick_col(df_cols_norm, "title", "titre"),
        "year": pick_col(df_cols_norm, "yr", "year", "annee", "année"),
        "director": pick_col(df_cols_norm, "dir.", "director", "directors", "realisateur", "réalisateur"),
        "date": pick_col(df_cols_norm, "completed", "date watched", "watched_date", "watcheddate", "date"),
        "rating": pick_col(df_cols_norm, "rating", "rating10", "rating_10", "note", "score"),
        "notes": pick_col(df_cols_norm, "notes", "comment", "commentaire", "review"),
    }
    if not cols["title"]:
        raise CSVImportError("No title column found (expected 'Title' or 'title').")
    return cols


def parse_rows(df: pd.DataFrame, skip: int = 0, limit: Optional[int] = None):
    cols = map_columns(df)

    def cell(r, key):
        c = cols[key]
        return (r.get(c) or "").strip() if c else ""

    rows = []
    for i, (_, r) in enumerate(df.iterrows(), 1):
        if i <= skip:
            continue
        if limit is not None and len(rows) >= limit:
            break
        title = cell(r, "title")
        if not title:
            continue
        notes = cell(r, "notes") or None
        rows.append(ParsedMovie(
            row_number=i,
            title=title,
            year=parse_year(cell(r, "year")),
            director=cell(r, "director") or None,
            date_watched=parse_watched_date(cell(r, "date")),
            rating=parse_rating(cell(r, "rating")),
            notes=notes,
            buddy=detect_buddy(notes),
        ))
    return rows
