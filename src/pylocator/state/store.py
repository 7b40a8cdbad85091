"""In-memory owner of the current location fix."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

from pylocator.models.fix import FixSource, LocationFix
from pylocator.state.policy import intent_priority, should_accept_fix

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FixTicket:
    """Issued when a producer starts; presented again with its result.

    ``sources`` lists every tag the producer may legitimately emit (the
    automatic cascade yields either ``gps`` or ``ip``).
    """

    sequence: int
    sources: frozenset[FixSource]

    @property
    def intent(self) -> FixSource:
        return max(self.sources, key=intent_priority)


class FixStore:
    """Holds exactly one current fix (or none).

    Writes are whole-fix replacements; fixes are never merged. Every
    :meth:`issue` and every write draws from one monotonically increasing
    sequence, so "was this written after that request started?" is a plain
    integer comparison.
    """

    def __init__(self) -> None:
        self._sequence = itertools.count(1)
        self._fix: LocationFix | None = None
        self._written_at = 0
        self._written_source: FixSource | None = None

    @property
    def current(self) -> LocationFix | None:
        return self._fix

    def issue(self, *sources: FixSource) -> FixTicket:
        """Reserve a position in the write order for a request that starts now."""
        if not sources:
            raise ValueError("a ticket needs at least one source")
        return FixTicket(next(self._sequence), frozenset(sources))

    def is_superseded(self, ticket: FixTicket, source: FixSource | None = None) -> bool:
        """Whether a write made since *ticket* was issued would reject its result."""
        return not should_accept_fix(
            ticket=ticket.sequence,
            current_written_at=self._written_at,
            current_source=self._written_source,
            incoming_source=source if source is not None else ticket.intent,
        )

    def offer(self, ticket: FixTicket, fix: LocationFix) -> bool:
        """Apply *fix* unless the policy rejects it. Returns whether it was applied."""
        if fix.source not in ticket.sources:
            raise ValueError(f"fix source {fix.source} was not issued on this ticket")
        if self.is_superseded(ticket, fix.source):
            _logger.debug(
                "Discarding late %s fix (ticket=%d, current written at %d by %s)",
                fix.source,
                ticket.sequence,
                self._written_at,
                self._written_source,
            )
            return False
        self._write(fix, fix.source)
        return True

    def put(self, fix: LocationFix) -> None:
        """Apply *fix* unconditionally (producers that complete synchronously)."""
        self._write(fix, fix.source)

    def clear(self) -> None:
        """Drop the current fix. Counts as a manual-intent write."""
        self._write(None, None)

    def _write(self, fix: LocationFix | None, source: FixSource | None) -> None:
        self._fix = fix
        self._written_at = next(self._sequence)
        self._written_source = source
