"""
Source errors surfaced to consumers.

Only fetch failures cross the loader boundary; malformed rows and cells are
absorbed by the coercion layer and logged.
"""
from __future__ import annotations


class SourceError(Exception):
    """Base class for errors tied to one data source."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class FetchError(SourceError):
    """A source could not be retrieved or decoded. Terminal for that load attempt."""
