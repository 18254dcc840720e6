"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly.  Each class carries a short
``code`` so callers can branch on the kind of failure without parsing the
message text.
"""


class DomainException(Exception):
    """Base class for all domain errors."""

    code = "domain_error"

    def __init__(self, message: str = "", code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    code = "validation_error"


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""

    code = "not_found"


class InsufficientStockError(ValidationError):
    """A reservation asked for more units than are available."""

    code = "insufficient_stock"


class PriceChangedError(ValidationError):
    """The price the client saw no longer matches the catalog."""

    code = "price_changed"


class InvalidTransitionError(ValidationError):
    """A state machine rejected the requested transition."""

    code = "invalid_transition"


class PermissionDeniedError(DomainException):
    """The acting user does not own the entity."""

    code = "permission_denied"


class ConcurrencyConflictError(DomainException):
    """An entity changed between load and save (stale version)."""

    code = "concurrency_conflict"


class LockUnavailableError(DomainException):
    """An advisory lock is held by another request; try again."""

    code = "lock_unavailable"


class DuplicateOrderNumberError(DomainException):
    """An order with the same order number is already stored."""

    code = "duplicate_order_no"


class PaymentMismatchError(ValidationError):
    """A payment notification does not match the order amount."""

    code = "payment_mismatch"


class PaymentGatewayError(DomainException):
    """The payment gateway could not complete the request."""

    code = "payment_gateway_error"
