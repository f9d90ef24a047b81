"""
Typed Exception Hierarchy for the Allocation Token Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Batch tooling in this domain matches on message text, so message wording is
part of the external contract.  Callers inside Python should still never
parse messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        orchestrator.run(request)
    except Exception as e:
        if "can not end its promotion" in str(e):  # FRAGILE
            notify_billing()

Example - RIGHT way (what this module enables):
    try:
        orchestrator.run(request)
    except PromotionStillActiveError as e:
        log.warning(f"{e.token_identifier} still has {e.domain_count} domains")
        api_response(code=e.code, token=e.token_identifier)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from AllocationKernelError:

    AllocationKernelError (base)
    |
    +-- SelectorError
    |   +-- AmbiguousSelectorError
    |   +-- InvalidSelectorError
    |   +-- UnknownTokenError
    |       +-- UnknownBulkPricingPackageError
    |
    +-- FieldValidationError
    |   +-- UnknownActionError
    |   +-- InvalidParameterValueError
    |   +-- MalformedParameterError
    |   +-- ValueOutOfRangeError
    |   +-- AnchorTenantRequiresDomainError
    |   +-- TokenConstraintError
    |
    +-- TimelineError
    |   +-- MalformedTimelineError
    |   +-- NoValueDefinedError
    |
    +-- LifecycleError
    |   +-- IllegalTransitionError
    |   +-- PromotionStillActiveError
    |
    +-- StoreError
        +-- TokenStoreError
        +-- TokenAlreadyExistsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-----------------------------------
Selector        | AMBIGUOUS_SELECTOR            | Both or neither of tokens/prefix
                | INVALID_SELECTOR              | Blank prefix
                | UNKNOWN_TOKEN                 | Token identifier not stored
                | UNKNOWN_BULK_PRICING_PACKAGE  | No package for token identifier
----------------|-------------------------------|-----------------------------------
Field           | UNKNOWN_ACTION                | EPP action not in vocabulary
                | INVALID_PARAMETER_VALUE       | Enum text not recognized
                | MALFORMED_PARAMETER           | Text not parseable for field
                | VALUE_OUT_OF_RANGE            | Numeric field outside bounds
                | ANCHOR_TENANT_REQUIRES_DOMAIN | ANCHOR_TENANT without domain
                | TOKEN_CONSTRAINT_VIOLATION    | Cross-field rule broken
----------------|-------------------------------|-----------------------------------
Timeline        | MALFORMED_TIMELINE            | Empty / unordered instants
                | NO_VALUE_DEFINED              | Lookup before first instant
----------------|-------------------------------|-----------------------------------
Lifecycle       | ILLEGAL_TRANSITION            | Edge not in transition table
                | PROMOTION_STILL_ACTIVE        | Bulk token still bound to domains
----------------|-------------------------------|-----------------------------------
Store           | TOKEN_STORE_FAILURE           | Transaction aborted by store
                | TOKEN_ALREADY_EXISTS          | Duplicate identifier on create

===============================================================================
HANDLING PATTERNS
===============================================================================

1. SELECTOR AND FIELD ERRORS are caller-input errors: report them, never
   retry.  Nothing was written.

2. LIFECYCLE ERRORS carry the offending states or the blocking domain count:

    except IllegalTransitionError as e:
        return {"error": e.code, "from": e.from_status, "to": e.to_status}

3. STORE ERRORS are the only category worth retrying, and the kernel never
   retries on its own:

    except TokenStoreError:
        schedule_retry(request)

===============================================================================
"""


class AllocationKernelError(Exception):
    """
    Base exception for all allocation kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ALLOCATION_KERNEL_ERROR"


# Selector exceptions


class SelectorError(AllocationKernelError):
    """Base exception for target-resolution errors."""

    code: str = "SELECTOR_ERROR"


class AmbiguousSelectorError(SelectorError):
    """Both or neither of an identifier list and a prefix were supplied."""

    code: str = "AMBIGUOUS_SELECTOR"

    def __init__(self) -> None:
        super().__init__("Must provide one of --tokens or --prefix, not both / neither")


class InvalidSelectorError(SelectorError):
    """Prefix selector was empty or whitespace."""

    code: str = "INVALID_SELECTOR"

    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__("Provided prefix should not be blank")


class UnknownTokenError(SelectorError):
    """Token with given identifier does not exist."""

    code: str = "UNKNOWN_TOKEN"

    def __init__(self, token_identifier: str, message: str | None = None):
        self.token_identifier = token_identifier
        super().__init__(message or f"Token with id {token_identifier} does not exist")


class UnknownBulkPricingPackageError(UnknownTokenError):
    """No bulk pricing package is keyed off the given token identifier."""

    code: str = "UNKNOWN_BULK_PRICING_PACKAGE"

    def __init__(self, token_identifier: str):
        super().__init__(
            token_identifier,
            f"BulkPricingPackage with token {token_identifier} does not exist",
        )


# Field validation exceptions


class FieldValidationError(AllocationKernelError):
    """
    Base exception for a rejected field value.

    ``token_identifier`` names the token being updated when the error came
    out of a batch; it is None for standalone parsing.
    """

    code: str = "FIELD_VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        value: object = None,
        token_identifier: str | None = None,
    ):
        self.parameter = parameter
        self.value = value
        self.token_identifier = token_identifier
        super().__init__(message)


class UnknownActionError(FieldValidationError):
    """EPP action name is not in the known vocabulary."""

    code: str = "UNKNOWN_ACTION"

    def __init__(self, raw: str, token_identifier: str | None = None):
        self.raw = raw
        super().__init__(
            "Invalid EPP action name. Valid actions are CREATE, RENEW, TRANSFER,"
            " RESTORE, and UPDATE",
            parameter="allowed_epp_actions",
            value=raw,
            token_identifier=token_identifier,
        )


class InvalidParameterValueError(FieldValidationError):
    """Enumerated option text did not match any allowed value."""

    code: str = "INVALID_PARAMETER_VALUE"

    def __init__(
        self,
        parameter: str,
        value: object,
        allowed_values: tuple[str, ...],
        token_identifier: str | None = None,
    ):
        self.allowed_values = allowed_values
        super().__init__(
            f"Invalid value for --{parameter} parameter. "
            f"Allowed values:[{', '.join(allowed_values)}]",
            parameter=parameter,
            value=value,
            token_identifier=token_identifier,
        )


class MalformedParameterError(FieldValidationError):
    """Option text could not be parsed into the field's type."""

    code: str = "MALFORMED_PARAMETER"

    def __init__(
        self,
        parameter: str,
        value: object,
        reason: str,
        token_identifier: str | None = None,
    ):
        self.reason = reason
        super().__init__(
            f"Invalid value '{value}' for --{parameter}: {reason}",
            parameter=parameter,
            value=value,
            token_identifier=token_identifier,
        )


class ValueOutOfRangeError(FieldValidationError):
    """Numeric option outside its allowed range."""

    code: str = "VALUE_OUT_OF_RANGE"

    def __init__(
        self,
        parameter: str,
        value: object,
        message: str,
        token_identifier: str | None = None,
    ):
        super().__init__(
            message,
            parameter=parameter,
            value=value,
            token_identifier=token_identifier,
        )


class AnchorTenantRequiresDomainError(FieldValidationError):
    """ANCHOR_TENANT registration behavior on a token with no domain."""

    code: str = "ANCHOR_TENANT_REQUIRES_DOMAIN"

    def __init__(self, token_identifier: str | None = None):
        super().__init__(
            "ANCHOR_TENANT tokens must be tied to a domain",
            parameter="registration_behavior",
            value="ANCHOR_TENANT",
            token_identifier=token_identifier,
        )


class TokenConstraintError(FieldValidationError):
    """A cross-field rule on the resulting token state was violated."""

    code: str = "TOKEN_CONSTRAINT_VIOLATION"

    def __init__(self, message: str, token_identifier: str | None = None):
        super().__init__(message, token_identifier=token_identifier)


# Timeline exceptions


class TimelineError(AllocationKernelError):
    """Base exception for time-keyed state map errors."""

    code: str = "TIMELINE_ERROR"


class MalformedTimelineError(TimelineError):
    """Timeline is empty, unordered, or has naive instants."""

    code: str = "MALFORMED_TIMELINE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class NoValueDefinedError(TimelineError):
    """Lookup instant precedes the first entry of the timeline."""

    code: str = "NO_VALUE_DEFINED"

    def __init__(self, instant, first_instant):
        self.instant = instant
        self.first_instant = first_instant
        super().__init__(
            f"No value defined at {instant.isoformat()}: "
            f"timeline starts at {first_instant.isoformat()}"
        )


# Lifecycle exceptions


class LifecycleError(AllocationKernelError):
    """Base exception for token status lifecycle errors."""

    code: str = "LIFECYCLE_ERROR"


class IllegalTransitionError(LifecycleError):
    """Consecutive statuses are not an edge of the transition table."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(
        self,
        from_status: str,
        to_status: str,
        token_identifier: str | None = None,
    ):
        self.from_status = from_status
        self.to_status = to_status
        self.token_identifier = token_identifier
        super().__init__(
            f"tokenStatusTransitions map cannot transition from "
            f"{from_status} to {to_status}."
        )


class PromotionStillActiveError(LifecycleError):
    """Bulk token cannot end while domains still reference it."""

    code: str = "PROMOTION_STILL_ACTIVE"

    def __init__(self, token_identifier: str, domain_count: int):
        self.token_identifier = token_identifier
        self.domain_count = domain_count
        super().__init__(
            f"Bulk token {token_identifier} can not end its promotion because "
            f"it still has {domain_count} domains in the promotion"
        )


# Store exceptions


class StoreError(AllocationKernelError):
    """Base exception for persistence errors."""

    code: str = "STORE_ERROR"


class TokenStoreError(StoreError):
    """The store aborted the batch transaction; nothing was committed."""

    code: str = "TOKEN_STORE_FAILURE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store transaction failed during {operation}: {reason}")


class TokenAlreadyExistsError(StoreError):
    """A token with the same identifier is already stored."""

    code: str = "TOKEN_ALREADY_EXISTS"

    def __init__(self, token_identifier: str):
        self.token_identifier = token_identifier
        super().__init__(f"Token with id {token_identifier} already exists")
