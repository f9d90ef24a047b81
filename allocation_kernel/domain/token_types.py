"""
Token enumerations shared by the domain, model and service layers.

Every enum is a ``str`` Enum whose value equals its name, so a member
round-trips through a String column and through option text unchanged.
Parsing option text into these members is table-driven (see
``domain/field_values.py``); nothing here introspects types at runtime.
"""

from enum import Enum


class TokenType(str, Enum):
    """Kind of allocation token.  Immutable after creation."""

    SINGLE_USE = "SINGLE_USE"
    UNLIMITED_USE = "UNLIMITED_USE"
    BULK_PRICING = "BULK_PRICING"


class TokenStatus(str, Enum):
    """Token lifecycle status.

    Contract: NOT_STARTED -> VALID -> {CANCELLED, ENDED}.  CANCELLED and
    ENDED are terminal.  See ``domain/token_status.py``.
    """

    NOT_STARTED = "NOT_STARTED"
    VALID = "VALID"
    CANCELLED = "CANCELLED"
    ENDED = "ENDED"


class RenewalPriceBehavior(str, Enum):
    """How renewals of domains created with the token are priced."""

    DEFAULT = "DEFAULT"
    NONPREMIUM = "NONPREMIUM"
    SPECIFIED = "SPECIFIED"


class RegistrationBehavior(str, Enum):
    """Special registration handling granted by the token."""

    DEFAULT = "DEFAULT"
    BYPASS_TLD_STATE = "BYPASS_TLD_STATE"
    ANCHOR_TENANT = "ANCHOR_TENANT"
    NONPREMIUM_CREATE = "NONPREMIUM_CREATE"


class EppAction(str, Enum):
    """EPP commands a token may be restricted to."""

    CREATE = "CREATE"
    RENEW = "RENEW"
    TRANSFER = "TRANSFER"
    RESTORE = "RESTORE"
    UPDATE = "UPDATE"
