"""ProgressTracker — enrollment and distance logging over :class:`RouteStorage`."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from race_route.errors import NotFound, ProgressError
from race_route.progress.models import ACTIVE, ProgressEntry, ProgressRecord, ProgressView
from race_route.progress.resolver import ProgressResolver
from race_route.route.route import Route

if TYPE_CHECKING:
    from race_route.storage import RouteStorage

_logger = logging.getLogger(__name__)


class ProgressTracker:
    """Participant-facing progress operations.

    Parameters
    ----------
    storage:
        Open :class:`RouteStorage`; the caller owns its lifetime.
    resolver:
        Optional resolver for :meth:`view`; defaults to :class:`ProgressResolver`.
    """

    def __init__(self, storage: RouteStorage, resolver: ProgressResolver | None = None) -> None:
        self._storage = storage
        self._resolver = resolver or ProgressResolver()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enroll(self, participant_id: str, route_id: int) -> ProgressRecord:
        """Start (or resume) a route.

        An abandoned record is reactivated with its distance preserved.

        Raises:
            NotFound: The route does not exist.
            ProgressError: The participant is already active on or has
                completed the route.
        """
        route = self._route(route_id)
        record = self._storage.get_progress(participant_id, route_id)
        if record is None:
            record = ProgressRecord(
                participant_id=participant_id,
                route_id=route_id,
                is_passive=route.is_passive,
            )
        else:
            record.reactivate()
            _logger.info(
                "Re-enrolled %s on route %d at %.2f mi",
                participant_id, route_id, record.cumulative_distance,
            )
        self._storage.save_progress(record)
        return record

    def log_distance(
        self,
        participant_id: str,
        route_id: int,
        distance: float,
        duration_s: float | None = None,
        notes: str | None = None,
    ) -> tuple[ProgressRecord, bool]:
        """Add *distance* miles to an active record.

        Returns ``(record, completed)`` where *completed* is True when this
        entry took the record past the finish.
        """
        route = self._route(route_id)
        record = self._storage.get_progress(participant_id, route_id)
        if record is None or record.status != ACTIVE:
            raise ProgressError("Active route not found for this participant")

        entry = ProgressEntry(distance=distance, duration_s=duration_s, notes=notes)
        completed = record.log(entry, route.total_distance)
        self._storage.record_log(record, entry)
        if completed:
            _logger.info("Participant %s completed route %d (%s)", participant_id, route_id, route.name)
        return record, completed

    def abandon(self, participant_id: str, route_id: int) -> ProgressRecord:
        record = self._storage.get_progress(participant_id, route_id)
        if record is None:
            raise ProgressError("Not enrolled in this route")
        record.abandon()
        self._storage.save_progress(record)
        return record

    def log_to_all_active(
        self,
        participant_id: str,
        distance: float,
        duration_s: float | None = None,
    ) -> list[int]:
        """Count one workout towards every active route of the participant.

        Returns the ids of routes the workout completed.
        """
        if not distance or not math.isfinite(distance) or distance <= 0:
            return []
        finished: list[int] = []
        for record in self._storage.list_progress(participant_id, status=ACTIVE):
            _, completed = self.log_distance(
                participant_id, record.route_id, distance, duration_s
            )
            if completed:
                finished.append(record.route_id)
        return finished

    def ensure_passive(self, participant_id: str) -> list[int]:
        """Enroll the participant in every active passive route they lack.

        Returns the ids of newly enrolled routes.
        """
        enrolled: list[int] = []
        for route in self._storage.list_routes(active_only=True):
            if not route.is_passive or route.id is None:
                continue
            if self._storage.get_progress(participant_id, route.id) is None:
                self.enroll(participant_id, route.id)
                enrolled.append(route.id)
        return enrolled

    def list_for(
        self, participant_id: str, status: str | None = None
    ) -> list[tuple[ProgressRecord, Route]]:
        """Return the participant's records with their routes, passive routes first."""
        pairs: list[tuple[ProgressRecord, Route]] = []
        for record in self._storage.list_progress(participant_id, status=status):
            route = self._storage.get_route(record.route_id)
            if route is None:
                _logger.warning(
                    "Progress for %s points at missing route %d", participant_id, record.route_id
                )
                continue
            pairs.append((record, route))
        return pairs

    def log_workout(
        self,
        participant_id: str,
        distance: float,
        duration_s: float | None = None,
    ) -> tuple[list[int], list[int]]:
        """Count a finished workout towards the participant's routes.

        Passive routes are joined first, so a participant's first workout
        already counts towards them.  Returns ``(newly_enrolled, completed)``
        route ids.
        """
        enrolled = self.ensure_passive(participant_id)
        completed = self.log_to_all_active(participant_id, distance, duration_s)
        return enrolled, completed

    def view(self, participant_id: str, route_id: int) -> ProgressView:
        """Resolve the participant's current position on the route."""
        route = self._route(route_id)
        record = self._storage.get_progress(participant_id, route_id)
        if record is None:
            raise NotFound(f"No progress for {participant_id!r} on route {route_id}")
        return self._resolver.resolve(route, record)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _route(self, route_id: int) -> Route:
        route = self._storage.get_route(route_id)
        if route is None:
            raise NotFound(f"Route not found: {route_id}")
        return route
