"""Personal film collection: CSV import, TMDb matching and match review."""

__version__ = "0.1.0"
