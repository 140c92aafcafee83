"""Typed errors raised to callers of the scoring engine.

Only two kinds exist.  Missing data for a single factor is *not* an
error: it degrades the factor to an estimated default and lowers the
confidence instead.
"""

from __future__ import annotations


class SeatScoutError(Exception):
    """Base class for errors surfaced to callers."""


class InvalidRequestError(SeatScoutError, ValueError):
    """The request carries an unrecognised or malformed value.

    Caller's fault; retrying the same request will fail again.
    """


class DataUnavailableError(SeatScoutError, LookupError):
    """Facility, child or history context could not be resolved.

    Often transient, so callers may retry with backoff.
    """
