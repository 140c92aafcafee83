"""Collaborator interfaces consumed by the scoring engine.

The engine only depends on these protocols; the SQLite store in
``seat_scout.services.history_store`` is one implementation.
"""

from __future__ import annotations

from typing import Protocol

from seat_scout.models.admission import (
    ChildProfile,
    FacilityMetadata,
    HistoricalCase,
    TargetClass,
)


class FacilityHistoryProvider(Protocol):
    """Source of past admission outcomes."""

    def get_cases(self, facility_id: str, target_class: TargetClass) -> list[HistoricalCase]:
        """Return cases for the facility (and its comparable group) and class.

        Raise ``DataUnavailableError`` when the history cannot be read.
        """
        ...


class FacilityMetadataProvider(Protocol):
    """Source of facility statistics."""

    def get(self, facility_id: str) -> FacilityMetadata | None:
        """Return facility metadata, or ``None`` for an unknown facility."""
        ...


class ChildProfileProvider(Protocol):
    """Optional source used to check that the child exists."""

    def get(self, child_id: str) -> ChildProfile | None: ...
