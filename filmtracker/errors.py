class FilmTrackerError(Exception):
    """Base class for errors raised by filmtracker."""


class ConfigError(FilmTrackerError):
    pass


class TMDbError(FilmTrackerError):
    """A TMDb request failed."""


class TMDbRateLimitError(TMDbError):
    """TMDb kept answering 429 after every retry."""


class CSVImportError(FilmTrackerError):
    pass


class ApprovalError(FilmTrackerError):
    """Movie is missing or not in a state that allows the transition."""
