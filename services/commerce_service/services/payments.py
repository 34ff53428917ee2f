"""Payment reconciliation: payment and refund state machines and their cascade."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    DuplicateEntity,
    InvalidRefund,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from services.commerce_service.models import (
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)
from services.commerce_service.services import notifications
from services.commerce_service.services.orders import (
    load_order,
    mark_order_paid,
)
from services.commerce_service.services.reservations import pin_order_reservations
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: frozenset(
        {
            PaymentStatus.PROCESSING,
            PaymentStatus.SUCCESS,
            PaymentStatus.FAILED,
            PaymentStatus.CANCELLED,
        }
    ),
    PaymentStatus.PROCESSING: frozenset(
        {PaymentStatus.SUCCESS, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
    ),
    # Retry
    PaymentStatus.FAILED: frozenset({PaymentStatus.PROCESSING, PaymentStatus.SUCCESS}),
    # Only through a completed refund
    PaymentStatus.SUCCESS: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}

REFUND_TRANSITIONS = {
    RefundStatus.REQUESTED: frozenset(
        {RefundStatus.PROCESSING, RefundStatus.COMPLETED, RefundStatus.REJECTED}
    ),
    RefundStatus.PROCESSING: frozenset({RefundStatus.COMPLETED, RefundStatus.REJECTED}),
}

# A payment in one of these states blocks a second payment for the same order
INACTIVE_STATUSES = frozenset({PaymentStatus.FAILED, PaymentStatus.CANCELLED})


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------


def _transition(payment: Payment, target: PaymentStatus) -> None:
    if target not in PAYMENT_TRANSITIONS[payment.status]:
        raise InvalidTransition(
            f"Cannot move payment {payment.transaction_id} from "
            f"{payment.status.value} to {target.value}"
        )
    payment.status = target


def mark_success(
    payment: Payment,
    gateway_response: Optional[dict[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
) -> bool:
    """Returns False if the payment had already succeeded (nothing changes)."""
    if payment.status == PaymentStatus.SUCCESS:
        return False
    _transition(payment, PaymentStatus.SUCCESS)
    payment.payment_date = now or utc_now()
    payment.gateway_response = gateway_response
    payment.failure_reason = None
    return True


def mark_failed(payment: Payment, reason: Optional[str] = None) -> None:
    _transition(payment, PaymentStatus.FAILED)
    payment.failure_reason = reason
    payment.retry_count = (payment.retry_count or 0) + 1


def request_refund(
    payment: Payment, amount, reason: Optional[str] = None
) -> None:
    amount = Decimal(amount)
    if payment.status != PaymentStatus.SUCCESS:
        raise InvalidRefund("Can only refund successful payments")
    if payment.refund_status == RefundStatus.COMPLETED:
        raise InvalidRefund("Payment already refunded")
    if payment.refund_status in (RefundStatus.REQUESTED, RefundStatus.PROCESSING):
        raise InvalidRefund("A refund is already in progress for this payment")
    if amount <= 0:
        raise InvalidRefund("Refund amount must be positive")
    if amount > Decimal(payment.amount):
        raise InvalidRefund("Refund amount cannot exceed payment amount")

    payment.refund_status = RefundStatus.REQUESTED
    payment.refund_amount = amount
    payment.refund_reason = reason


def update_refund_status(
    payment: Payment,
    status: RefundStatus,
    reference: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> None:
    """Advance the refund. Completing it marks the payment refunded."""
    if status not in REFUND_TRANSITIONS.get(payment.refund_status, frozenset()):
        raise InvalidRefund(
            f"Cannot move refund from {payment.refund_status.value} to {status.value}"
        )

    payment.refund_status = status
    if reference:
        payment.refund_reference = reference
    if status == RefundStatus.COMPLETED:
        payment.refund_date = now or utc_now()
        _transition(payment, PaymentStatus.REFUNDED)


def ensure_can_access_payment(actor: AuthUser, payment: Payment) -> None:
    if not (actor.is_admin or actor.owns(payment.user_id)):
        raise Unauthorized("Not authorized to access this payment")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def _load_payment(
    db: AsyncSession, payment_id: uuid.UUID, *, for_update: bool = False
) -> Payment:
    query = select(Payment).where(Payment.id == payment_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFound(f"Payment {payment_id} not found")
    return payment


async def get_payment(
    db: AsyncSession, actor: AuthUser, payment_id: uuid.UUID
) -> Payment:
    payment = await _load_payment(db, payment_id)
    ensure_can_access_payment(actor, payment)
    return payment


async def get_payment_for_order(
    db: AsyncSession, actor: AuthUser, order_id: uuid.UUID
) -> Payment:
    """The order's most recent payment."""
    result = await db.execute(
        select(Payment)
        .where(Payment.order_id == order_id)
        .order_by(Payment.created_at.desc())
        .limit(1)
    )
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFound(f"Payment not found for order {order_id}")
    ensure_can_access_payment(actor, payment)
    return payment


async def list_payments_for_user(db: AsyncSession, user_id: str) -> list[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc())
    )
    return list(result.scalars().all())


async def list_payments(
    db: AsyncSession,
    *,
    status: Optional[PaymentStatus] = None,
    payment_method: Optional[PaymentMethod] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Payment]:
    query = select(Payment)
    if status:
        query = query.where(Payment.status == status)
    if payment_method:
        query = query.where(Payment.payment_method == payment_method)
    query = query.order_by(Payment.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_payment(
    db: AsyncSession,
    actor: AuthUser,
    *,
    order_id: uuid.UUID,
    payment_method: Optional[PaymentMethod] = None,
    payment_gateway: Optional[str] = None,
) -> Payment:
    """Open a payment for the full order total.

    Cash starts pending (collected on delivery); other methods go straight to
    processing at the gateway.
    """
    order = await load_order(db, order_id, for_update=True)
    if not actor.owns(order.user_id):
        raise Unauthorized("Not authorized to create payment for this order")
    if order.status == OrderStatus.CANCELLED:
        raise InvalidTransition(f"Order {order.order_number} is cancelled")

    existing = await db.execute(
        select(Payment.id).where(
            Payment.order_id == order_id,
            Payment.status.not_in(INACTIVE_STATUSES),
        )
    )
    if existing.first():
        raise DuplicateEntity("Payment already exists for this order")

    method = payment_method or order.payment_method
    payment = Payment(
        order_id=order.id,
        user_id=order.user_id,
        transaction_id=Payment.generate_transaction_id(),
        payment_method=method,
        payment_gateway=payment_gateway,
        amount=order.total_price,
        currency=get_settings().DEFAULT_CURRENCY,
        status=(
            PaymentStatus.PENDING
            if method == PaymentMethod.CASH
            else PaymentStatus.PROCESSING
        ),
        retry_count=0,
        refund_status=RefundStatus.NONE,
    )
    db.add(payment)
    await db.commit()
    await db.refresh(payment)

    logger.info(
        "Created payment %s for order %s (%s %s, %s)",
        payment.transaction_id,
        order.order_number,
        payment.amount,
        payment.currency,
        payment.status.value,
    )
    return payment


async def _confirm(
    db: AsyncSession,
    payment: Payment,
    gateway_response: Optional[dict[str, Any]],
) -> Payment:
    try:
        changed = mark_success(payment, gateway_response)
        order = None
        if changed:
            try:
                order = await load_order(db, payment.order_id, for_update=True)
            except NotFound:
                logger.error(
                    "Inconsistency: payment %s references missing order %s",
                    payment.transaction_id,
                    payment.order_id,
                )
            if order is not None:
                mark_order_paid(order, gateway_response)
                if order.status == OrderStatus.CANCELLED:
                    logger.error(
                        "Inconsistency: payment %s succeeded for cancelled order %s; "
                        "refund required",
                        payment.transaction_id,
                        order.order_number,
                    )
                else:
                    await pin_order_reservations(db, order.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if not changed:
        logger.info("Payment %s already confirmed", payment.transaction_id)
        return payment

    logger.info("Payment %s succeeded", payment.transaction_id)
    await notifications.notify(
        notifications.PAYMENT_SUCCEEDED,
        recipient=payment.user_id,
        data={"transaction_id": payment.transaction_id, "amount": str(payment.amount)},
    )
    if order is not None:
        await notifications.notify(
            notifications.ORDER_PAID,
            recipient=order.user_id,
            data={"order_number": order.order_number},
        )
    await db.refresh(payment)
    return payment


async def confirm_payment(
    db: AsyncSession,
    actor: AuthUser,
    payment_id: uuid.UUID,
    gateway_response: Optional[dict[str, Any]] = None,
) -> Payment:
    """Mark a payment successful, the order paid, and pin its stock holds."""
    payment = await _load_payment(db, payment_id, for_update=True)
    ensure_can_access_payment(actor, payment)
    return await _confirm(db, payment, gateway_response)


async def verify_payment(
    db: AsyncSession,
    transaction_id: str,
    gateway_response: Optional[dict[str, Any]] = None,
) -> Payment:
    """Gateway callback: confirm by transaction id."""
    result = await db.execute(
        select(Payment)
        .where(Payment.transaction_id == transaction_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFound("Payment not found")
    return await _confirm(db, payment, gateway_response)


async def fail_payment(
    db: AsyncSession,
    actor: AuthUser,
    payment_id: uuid.UUID,
    reason: Optional[str] = None,
) -> Payment:
    payment = await _load_payment(db, payment_id, for_update=True)
    ensure_can_access_payment(actor, payment)
    mark_failed(payment, reason)
    await db.commit()
    await db.refresh(payment)

    logger.info(
        "Payment %s failed (attempt %d): %s",
        payment.transaction_id,
        payment.retry_count,
        reason,
    )
    await notifications.notify(
        notifications.PAYMENT_FAILED,
        recipient=payment.user_id,
        data={"transaction_id": payment.transaction_id, "reason": reason},
    )
    return payment


async def refund_payment(
    db: AsyncSession,
    actor: AuthUser,
    payment_id: uuid.UUID,
    *,
    amount,
    reason: Optional[str] = None,
) -> Payment:
    """Open a refund request on a successful payment (admin)."""
    if not actor.is_admin:
        raise Unauthorized("Only administrators can refund payments")

    payment = await _load_payment(db, payment_id, for_update=True)
    request_refund(payment, amount, reason)
    await db.commit()
    await db.refresh(payment)

    logger.info(
        "Refund of %s requested for payment %s by %s",
        payment.refund_amount,
        payment.transaction_id,
        actor.user_id,
    )
    await notifications.notify(
        notifications.PAYMENT_REFUND_REQUESTED,
        recipient=payment.user_id,
        data={
            "transaction_id": payment.transaction_id,
            "amount": str(payment.refund_amount),
        },
    )
    return payment


async def set_refund_status(
    db: AsyncSession,
    actor: AuthUser,
    payment_id: uuid.UUID,
    *,
    status: RefundStatus,
    reference: Optional[str] = None,
) -> Payment:
    if not actor.is_admin:
        raise Unauthorized("Only administrators can update refunds")

    payment = await _load_payment(db, payment_id, for_update=True)
    previous = payment.refund_status
    update_refund_status(payment, status, reference)
    await db.commit()
    await db.refresh(payment)

    logger.info(
        "Refund for payment %s %s -> %s",
        payment.transaction_id,
        previous.value,
        status.value,
    )
    await notifications.notify(
        notifications.PAYMENT_REFUND_UPDATED,
        recipient=payment.user_id,
        data={"transaction_id": payment.transaction_id, "refund_status": status.value},
    )
    return payment
