"""Typed failures raised by the commerce engine."""

from libs.common.errors import ServiceError


class CommerceError(ServiceError):
    """Base class for every commerce failure."""


class NotFound(CommerceError):
    status_code = 404
    error_code = "not_found"


class Unauthorized(CommerceError):
    status_code = 403
    error_code = "unauthorized"


class InsufficientStock(CommerceError):
    status_code = 409
    error_code = "insufficient_stock"


class InvalidTransition(CommerceError):
    status_code = 409
    error_code = "invalid_transition"


class InvalidRefund(CommerceError):
    status_code = 400
    error_code = "invalid_refund"


class DuplicateEntity(CommerceError):
    status_code = 409
    error_code = "duplicate_entity"


class InvalidCoupon(CommerceError):
    status_code = 400
    error_code = "invalid_coupon"


class CouponNotApplicable(CommerceError):
    status_code = 400
    error_code = "coupon_not_applicable"


class InvalidOrder(CommerceError):
    status_code = 400
    error_code = "invalid_order"
