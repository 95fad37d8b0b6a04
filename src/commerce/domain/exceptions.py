"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so callers can catch them uniformly.  Every exception carries a stable,
machine-readable ``code`` alongside its human-readable message.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    code = "VALIDATION_ERROR"


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""

    code = "NOT_FOUND"


# --- Numeric input -----------------------------------------------------------


class InvalidQuantity(ValidationError):
    """A quantity was zero, negative or otherwise malformed."""

    code = "INVALID_QUANTITY"


class InvalidAmount(ValidationError):
    """A monetary amount was out of range for the operation."""

    code = "INVALID_AMOUNT"


# --- Stock ledger ------------------------------------------------------------


class InsufficientStock(DomainException):
    code = "INSUFFICIENT_STOCK"


class InvalidReservation(DomainException):
    code = "INVALID_RESERVATION"


# --- State machines ----------------------------------------------------------


class InvalidStatusTransition(DomainException):
    """An Order, Payment or Refund was asked to move along a forbidden edge."""

    code = "INVALID_STATUS_TRANSITION"


# --- Coupons -----------------------------------------------------------------


class InvalidDiscount(ValidationError):
    code = "INVALID_DISCOUNT"


class CouponError(DomainException):
    """Base class for coupon validation failures."""

    code = "COUPON_ERROR"


class CouponInactive(CouponError):
    code = "COUPON_INACTIVE"


class CouponNotStarted(CouponError):
    code = "COUPON_NOT_STARTED"


class CouponExpired(CouponError):
    code = "COUPON_EXPIRED"


class UsageLimitExceeded(CouponError):
    code = "USAGE_LIMIT_EXCEEDED"


class MinOrderNotMet(CouponError):
    code = "MIN_ORDER_NOT_MET"


# --- Persistence boundary ----------------------------------------------------


class ConcurrentModification(DomainException):
    """The stored version no longer matches the version read at load time.

    Raised by repositories, never by aggregates.  Callers must discard the
    in-memory aggregate, reload and retry (or give up).
    """

    code = "CONCURRENT_MODIFICATION"
