"""
Field values -- optional-update variant and option-text parsers.

Responsibility:
    ``UNSET`` / ``SetTo(value)`` model one optional field of an update: UNSET
    leaves the stored value alone, ``SetTo`` replaces it (``SetTo("")`` on a
    set-valued field clears it).  The two never collapse into ``None``.

    The ``parse_*`` functions turn option text (or an already-typed value)
    into the typed field value.  Enum and action matching is table-driven:
    normalized upper-case text is looked up in a dict built once from the
    enum's members.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Failure modes:
    - InvalidParameterValueError: enum text not in the table.
    - UnknownActionError: an EPP action name not in the vocabulary.
    - MalformedParameterError: text not parseable as the field's type.
    - ValueOutOfRangeError: number outside the field's range.
    - MalformedTimelineError: status timeline with unordered instants.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from allocation_kernel.domain.timeline import START_OF_TIME, TimedStateMap
from allocation_kernel.domain.token_types import EppAction, TokenStatus
from allocation_kernel.exceptions import (
    InvalidParameterValueError,
    MalformedParameterError,
    UnknownActionError,
    ValueOutOfRangeError,
)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


class _Unset:
    """Singleton marker: the caller did not supply this field."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class SetTo(Generic[T]):
    """The caller supplied ``value`` for this field (possibly empty)."""

    value: T


FieldValue = Union[_Unset, SetTo[T]]


def is_set(field: FieldValue[Any]) -> bool:
    return isinstance(field, SetTo)


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------


def enum_table(enum_cls: type[E]) -> dict[str, E]:
    """Upper-case member name -> member, in declaration order."""
    return {member.name.upper(): member for member in enum_cls}


_ACTIONS: dict[str, EppAction] = enum_table(EppAction)
_STATUSES: dict[str, TokenStatus] = enum_table(TokenStatus)
_BOOLEANS: dict[str, bool] = {"TRUE": True, "FALSE": False}

START_OF_TIME_LITERAL = "START_OF_TIME"


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def _split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_string_set(value: str | Iterable[str]) -> frozenset[str]:
    """Comma list (or iterable) to a set; empty input yields the empty set."""
    if isinstance(value, str):
        return frozenset(_split_list(value))
    return frozenset(str(item).strip() for item in value if str(item).strip())


def parse_epp_actions(value: str | Iterable[str | EppAction]) -> frozenset[EppAction]:
    """Comma list of action names, matched case-insensitively."""
    raw_items = _split_list(value) if isinstance(value, str) else list(value)
    actions: set[EppAction] = set()
    for raw in raw_items:
        if isinstance(raw, EppAction):
            actions.add(raw)
            continue
        action = _ACTIONS.get(str(raw).strip().upper())
        if action is None:
            raise UnknownActionError(str(raw))
        actions.add(action)
    return frozenset(actions)


def parse_enum(parameter: str, enum_cls: type[E], value: str | E) -> E:
    """Case-insensitive enum lookup; unknown or empty text is rejected."""
    if isinstance(value, enum_cls):
        return value
    table = enum_table(enum_cls)
    member = table.get(str(value).strip().upper()) if value is not None else None
    if member is None:
        raise InvalidParameterValueError(
            parameter, value, tuple(m.name for m in enum_cls),
        )
    return member


def parse_bool(parameter: str, value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    result = _BOOLEANS.get(str(value).strip().upper())
    if result is None:
        raise MalformedParameterError(parameter, value, "expected true or false")
    return result


def parse_discount_fraction(value: str | Decimal | int) -> Decimal:
    parameter = "discount_fraction"
    if isinstance(value, float):
        value = repr(value)
    try:
        fraction = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise MalformedParameterError(parameter, value, "expected a decimal number") from None
    if not fraction.is_finite() or fraction < 0 or fraction > 1:
        raise ValueOutOfRangeError(
            parameter, value, "Discount fraction must be between 0 and 1 inclusive",
        )
    return fraction


def parse_discount_years(value: str | int) -> int:
    parameter = "discount_years"
    if isinstance(value, bool):
        raise MalformedParameterError(parameter, value, "expected an integer")
    try:
        years = value if isinstance(value, int) else int(str(value).strip())
    except ValueError:
        raise MalformedParameterError(parameter, value, "expected an integer") from None
    if years < 1:
        raise ValueOutOfRangeError(parameter, value, "Discount years must be at least 1")
    return years


def parse_instant(parameter: str, text: str) -> datetime:
    """ISO 8601 instant (``Z`` accepted) or the START_OF_TIME literal."""
    stripped = text.strip()
    if stripped.upper() == START_OF_TIME_LITERAL:
        return START_OF_TIME
    try:
        instant = datetime.fromisoformat(stripped)
    except ValueError:
        raise MalformedParameterError(
            parameter, text, "expected an ISO 8601 instant or START_OF_TIME",
        ) from None
    if instant.tzinfo is None:
        raise MalformedParameterError(parameter, text, "instant must carry a UTC offset")
    return instant


def parse_status_transitions(
    value: str
    | TimedStateMap[TokenStatus]
    | Mapping[datetime, TokenStatus | str]
    | Iterable[tuple[datetime | str, TokenStatus | str]],
) -> TimedStateMap[TokenStatus]:
    """
    Parse a status timeline.

    Text form: ``INSTANT=STATUS,INSTANT=STATUS,...``, optionally wrapped in
    double quotes.  Pairs are taken in the order given; ``TimedStateMap.build``
    rejects out-of-order instants.
    """
    parameter = "token_status_transitions"
    if isinstance(value, TimedStateMap):
        return value

    if isinstance(value, str):
        text = value.strip()
        if len(text) >= 2 and text[0] == text[-1] == '"':
            text = text[1:-1]
        raw_pairs: list[tuple[Any, Any]] = []
        for entry in _split_list(text):
            instant_text, sep, status_text = entry.rpartition("=")
            if not sep or not instant_text.strip():
                raise MalformedParameterError(parameter, value, f"expected INSTANT=STATUS, got '{entry}'")
            raw_pairs.append((instant_text, status_text))
    elif isinstance(value, Mapping):
        raw_pairs = list(value.items())
    else:
        raw_pairs = list(value)

    pairs: list[tuple[datetime, TokenStatus]] = []
    for raw_instant, raw_status in raw_pairs:
        instant = (
            raw_instant if isinstance(raw_instant, datetime)
            else parse_instant(parameter, str(raw_instant))
        )
        status = (
            raw_status if isinstance(raw_status, TokenStatus)
            else _STATUSES.get(str(raw_status).strip().upper())
        )
        if status is None:
            raise InvalidParameterValueError(
                parameter, raw_status, tuple(s.name for s in TokenStatus),
            )
        pairs.append((instant, status))
    return TimedStateMap.build(pairs)


def format_status_transitions(timeline: TimedStateMap[TokenStatus]) -> str:
    """Inverse of the text form accepted by ``parse_status_transitions``."""
    return ",".join(
        f"{instant.isoformat()}={status.name}"
        for instant, status in timeline.as_ordered_pairs()
    )
