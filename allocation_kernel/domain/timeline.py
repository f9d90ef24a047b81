"""
Timeline -- ordered, time-keyed state map.

Responsibility:
    ``TimedStateMap`` stores "the state effective from this instant onward"
    as an ordered sequence of (instant, state) pairs and answers point-in-time
    lookups.  It knows nothing about which transitions are legal; that is the
    job of a per-state policy such as ``TokenStatusPolicy``.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Invariants enforced:
    - Instants are strictly increasing.
    - The map is never empty.
    - Every instant is timezone-aware and normalized to UTC.

Failure modes:
    - MalformedTimelineError from ``build()`` on empty, unordered or naive input.
    - NoValueDefinedError from ``value_at()`` for an instant before the first key.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Generic, TypeVar

from allocation_kernel.exceptions import MalformedTimelineError, NoValueDefinedError

S = TypeVar("S")

# Sentinel for "since the beginning": every token status map starts here.
START_OF_TIME = datetime(1970, 1, 1, tzinfo=UTC)


class OrderedPairsView(Generic[S]):
    """Restartable view over a timeline's (instant, state) pairs.

    Each ``iter()`` walks the stored sequence from the start; views share no
    cursor.
    """

    __slots__ = ("_instants", "_values")

    def __init__(self, instants: tuple[datetime, ...], values: tuple[S, ...]):
        self._instants = instants
        self._values = values

    def __iter__(self) -> Iterator[tuple[datetime, S]]:
        for index in range(len(self._instants)):
            yield self._instants[index], self._values[index]

    def __len__(self) -> int:
        return len(self._instants)

    def __repr__(self) -> str:
        return f"OrderedPairsView({list(self)!r})"


@dataclass(frozen=True)
class TimedStateMap(Generic[S]):
    """
    Immutable map from instant to the state effective from that instant.

    Contract:
        Construct through ``build()``; the raw constructor assumes its inputs
        are already validated and sorted.

    Guarantees:
        - Equality and hashing are structural over the pair sequence.
        - ``value_at()`` is O(log n) via binary search over the instants.
    """

    instants: tuple[datetime, ...]
    values: tuple[S, ...]

    @classmethod
    def build(cls, ordered_pairs: Iterable[tuple[datetime, S]]) -> TimedStateMap[S]:
        """
        Build a map from caller-supplied (instant, state) pairs.

        Preconditions: pairs are in strictly increasing instant order.
        Postconditions: returns a map holding the same pairs, instants in UTC.

        Raises:
            MalformedTimelineError: empty input, a naive instant, or instants
                that are not strictly increasing.
        """
        instants: list[datetime] = []
        values: list[S] = []
        for instant, value in ordered_pairs:
            if not isinstance(instant, datetime):
                raise MalformedTimelineError(
                    f"Timeline keys must be datetimes, got {instant!r}"
                )
            if instant.tzinfo is None:
                raise MalformedTimelineError(
                    f"Timeline instant {instant.isoformat()} has no timezone"
                )
            normalized = instant.astimezone(UTC)
            if instants and normalized <= instants[-1]:
                raise MalformedTimelineError(
                    "Timeline instants must be strictly increasing: "
                    f"{normalized.isoformat()} follows {instants[-1].isoformat()}"
                )
            instants.append(normalized)
            values.append(value)

        if not instants:
            raise MalformedTimelineError("Timeline must contain at least one entry")

        return cls(instants=tuple(instants), values=tuple(values))

    @classmethod
    def constant(cls, value: S, since: datetime = START_OF_TIME) -> TimedStateMap[S]:
        """Single-entry map: ``value`` from ``since`` onward."""
        return cls.build([(since, value)])

    def value_at(self, instant: datetime) -> S:
        """
        State effective at ``instant``.

        Raises:
            NoValueDefinedError: ``instant`` precedes the first key.
        """
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        index = bisect_right(self.instants, instant)
        if index == 0:
            raise NoValueDefinedError(instant, self.instants[0])
        return self.values[index - 1]

    def as_ordered_pairs(self) -> OrderedPairsView[S]:
        """(instant, state) pairs in ascending time order."""
        return OrderedPairsView(self.instants, self.values)

    def to_value_map(self) -> dict[datetime, S]:
        return dict(zip(self.instants, self.values))

    @property
    def first_instant(self) -> datetime:
        return self.instants[0]

    @property
    def initial_value(self) -> S:
        return self.values[0]

    @property
    def final_value(self) -> S:
        return self.values[-1]

    def __iter__(self) -> Iterator[tuple[datetime, S]]:
        return iter(self.as_ordered_pairs())

    def __len__(self) -> int:
        return len(self.instants)
