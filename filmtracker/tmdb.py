import re
import time
import logging
import requests

from . import config
from .errors import TMDbError, TMDbRateLimitError
from .matching import calculate_match_confidence

log = logging.getLogger(__name__)

EMPTY_SEARCH = {"page": 1, "results": [], "total_pages": 0, "total_results": 0}

URL_PATTERNS = [
    re.compile(r"themoviedb\.org/movie/(\d+)"),
    re.compile(r"tmdb\.org/movie/(\d+)"),
    re.compile(r"/movie/(\d+)"),
]


def release_year(movie):
    rd = (movie or {}).get("release_date") or ""
    return int(rd[:4]) if re.match(r"^\d{4}", rd) else None


class TMDbClient:
    def __init__(self, api_key=None, base=None, language=None, session=None,
                 retry=3, timeout=30):
        self.api_key = api_key or config.require_tmdb_key()
        self.base = base or config.TMDB_BASE
        self.language = language or config.TMDB_LANGUAGE
        self.session = session or requests.Session()
        self.retry = retry
        self.timeout = timeout

    def get(self, path, params=None):
        params = dict(params or {})
        params["api_key"] = self.api_key
        params.setdefault("language", self.language)
        for i in range(self.retry):
            try:
                r = self.session.get(f"{self.base}{path}", params=params, timeout=self.timeout)
            except requests.RequestException as e:
                raise TMDbError(f"TMDb request failed on {path}: {e}") from e
            if r.status_code == 429:
                time.sleep(1.5 + i)
                continue
            try:
                r.raise_for_status()
            except requests.HTTPError as e:
                raise TMDbError(f"TMDb error {r.status_code} on {path}") from e
            try:
                return r.json()
            except ValueError as e:
                raise TMDbError(f"TMDb returned invalid JSON on {path}") from e
        raise TMDbRateLimitError(f"TMDb rate-limited too long on {path}")

    def search_movies(self, query, year=None, page=1, include_adult=False):
        params = {
            "query": query,
            "page": page,
            "include_adult": "true" if include_adult else "false",
        }
        if year:
            params["year"] = year
        return self.get("/search/movie", params)

    @staticmethod
    def clean_query(query):
        q = re.sub(r"[^\w\s]", "", query)
        q = re.sub(r"\b(the|a|an)\b", "", q, flags=re.IGNORECASE)
        return re.sub(r"\s+", " ", q).strip()

    def search_movies_enhanced(self, query, year=None):
        """Try progressively looser searches and return the first non-empty response."""
        strategies = [("exact", lambda: self.search_movies(query, year))]
        if year:
            strategies.append(("no-year", lambda: self.search_movies(query)))
        strategies.append(("adult", lambda: self.search_movies(query, year, include_adult=True)))

        cleaned = self.clean_query(query)
        if cleaned and cleaned != query:
            strategies.append(("cleaned", lambda: self.search_movies(cleaned, year)))

        for name, run in strategies:
            try:
                res = run()
            except TMDbError as e:
                log.info("%s search failed for %r: %s", name, query, e)
                continue
            if res.get("results"):
                log.debug("%s search found %d results for %r", name, len(res["results"]), query)
                return res

        words = [w for w in query.split(" ") if len(w) > 2]
        if len(words) > 1:
            lowered = [w.lower() for w in words]
            for word in words:
                try:
                    res = self.search_movies(word, year)
                except TMDbError as e:
                    log.info("word search failed for %r: %s", word, e)
                    continue
                kept = [m for m in res.get("results", [])
                        if any(w in (m.get("title") or "").lower() for w in lowered)]
                if kept:
                    log.debug("word search for %r kept %d results", word, len(kept))
                    return {**res, "results": kept}

        log.info("all search strategies failed for %r", query)
        return dict(EMPTY_SEARCH, results=[])

    def get_movie_details(self, tmdb_id):
        return self.get(f"/movie/{tmdb_id}")

    def get_movie_credits(self, tmdb_id):
        return self.get(f"/movie/{tmdb_id}/credits")

    @staticmethod
    def find_director(credits):
        for c in (credits or {}).get("crew", []):
            if c.get("job") == "Director":
                return c.get("name")
        return None

    @staticmethod
    def extract_tmdb_id(text):
        s = str(text or "").strip()
        if s.isdigit():
            return int(s) if int(s) > 0 else None
        for pat in URL_PATTERNS:
            m = pat.search(s)
            if m and int(m.group(1)) > 0:
                return int(m.group(1))
        return None

    def get_movie_by_id_or_url(self, text):
        tmdb_id = self.extract_tmdb_id(text)
        if not tmdb_id:
            return None
        try:
            return self.get_movie_details(tmdb_id)
        except TMDbError as e:
            log.error("could not fetch movie %s: %s", tmdb_id, e)
            return None

    def search_movie_with_details(self, query, year=None, director=None, candidates=5):
        """
        Search, then fetch details and credits for the top candidates and keep
        the one scoring highest against the query. Returns (details, director)
        or None.
        """
        results = self.search_movies_enhanced(query, year).get("results", [])
        if not results:
            return None

        best = None
        for cand in results[:candidates]:
            try:
                details = self.get_movie_details(cand["id"])
                cand_director = self.find_director(self.get_movie_credits(cand["id"]))
            except TMDbError as e:
                log.warning("skipping candidate %s for %r: %s", cand["id"], query, e)
                continue
            conf = calculate_match_confidence(
                query, details.get("title") or "", year, release_year(details),
                director, cand_director,
            )
            if best is None or conf.score > best[0]:
                best = (conf.score, details, cand_director)
            if conf.score == 100:
                break
        if best is None:
            return None
        return best[1], best[2]

    @staticmethod
    def poster_url(path, size="w500"):
        if not path:
            return None
        return f"{config.TMDB_IMAGE_BASE}/{size}{path}"
