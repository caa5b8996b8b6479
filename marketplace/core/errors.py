"""Error taxonomy shared by the lifecycle engine, guard and API layer."""

from __future__ import annotations

ERROR_VALIDATION = "VALIDATION"
ERROR_UNAUTHORIZED = "UNAUTHORIZED"
ERROR_NOT_FOUND = "NOT_FOUND"
ERROR_INVALID_STATE = "INVALID_STATE"
ERROR_INTERNAL = "INTERNAL"

DENY_UNAUTHENTICATED = "UNAUTHENTICATED"
DENY_WRONG_ROLE = "WRONG_ROLE"
DENY_NOT_OWNER = "NOT_OWNER"
DENY_INVALID_STATE = "INVALID_STATE"

HTTP_STATUS_BY_KIND: dict[str, int] = {
    ERROR_VALIDATION: 400,
    ERROR_UNAUTHORIZED: 403,
    ERROR_NOT_FOUND: 404,
    ERROR_INVALID_STATE: 409,
    ERROR_INTERNAL: 500,
}


class MarketplaceError(Exception):
    """Base class for failures reported to callers as a tagged result."""

    kind: str = ERROR_INTERNAL
    retryable: bool = False

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason

    @property
    def status_code(self) -> int:
        if self.kind == ERROR_UNAUTHORIZED and self.reason == DENY_UNAUTHENTICATED:
            return 401
        return HTTP_STATUS_BY_KIND[self.kind]


class InputValidationError(MarketplaceError):
    """Missing or malformed input."""

    kind = ERROR_VALIDATION


class NotAuthorizedError(MarketplaceError):
    """Role or ownership mismatch."""

    kind = ERROR_UNAUTHORIZED


class NotFoundError(MarketplaceError):
    """Resource id does not resolve."""

    kind = ERROR_NOT_FOUND


class InvalidStateError(MarketplaceError):
    """Operation is not legal from the resource's current status."""

    kind = ERROR_INVALID_STATE

    def __init__(self, message: str) -> None:
        super().__init__(message, reason=DENY_INVALID_STATE)


class ConsistencyError(MarketplaceError):
    """History records disagree with the canonical order status."""

    kind = ERROR_INTERNAL

    def __init__(self, message: str, problems: list[str]) -> None:
        super().__init__(message)
        self.problems = problems


class PartnerNotOnboardedError(NotAuthorizedError):
    """Authenticated partner user has no Partner record."""

    def __init__(self, message: str = "Partner profile not found") -> None:
        super().__init__(message, reason=DENY_NOT_OWNER)


class StoreError(MarketplaceError):
    """Persistence failure; safe to retry."""

    kind = ERROR_INTERNAL
    retryable = True
