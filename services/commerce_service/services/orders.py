"""Order lifecycle: checkout, status transitions and cancellation."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    InvalidCoupon,
    InvalidOrder,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from services.commerce_service.models import (
    DeliveryStatus,
    InventoryStatus,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    Product,
)
from services.commerce_service.services import coupons as coupon_ops
from services.commerce_service.services import notifications
from services.commerce_service.services.inventory import lock_inventory_for_pair
from services.commerce_service.services.reservations import (
    commit_order_reservations,
    release_order_reservations,
    reserve_for_order,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

# Forward order of fulfilment; any forward jump is allowed.
FULFILMENT_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
# Stock leaves the shelf by the time an order reaches one of these
FULFILLED_STATUSES = frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED})

# Delivery milestones that move the order along
DELIVERY_TO_ORDER_STATUS = {
    DeliveryStatus.OUT_FOR_DELIVERY: OrderStatus.SHIPPED,
    DeliveryStatus.DELIVERED: OrderStatus.DELIVERED,
}


@dataclass(frozen=True)
class OrderLine:
    product_id: uuid.UUID
    quantity: int


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if current == target:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return FULFILMENT_SEQUENCE.index(target) > FULFILMENT_SEQUENCE.index(current)


def transition_order_status(
    order: Order, target: OrderStatus, *, now: Optional[datetime] = None
) -> bool:
    """Move an order to ``target``. Returns False when it is already there."""
    if order.status == target:
        return False
    if not can_transition(order.status, target):
        raise InvalidTransition(
            f"Cannot move order {order.order_number} from "
            f"{order.status.value} to {target.value}"
        )

    now = now or utc_now()
    order.status = target
    if target == OrderStatus.DELIVERED:
        order.is_delivered = True
        order.delivered_at = now
    elif target == OrderStatus.CANCELLED:
        order.cancelled_at = now
    return True


def cancel(order: Order, *, now: Optional[datetime] = None) -> None:
    if order.is_delivered:
        raise InvalidTransition(
            f"Order {order.order_number} has been delivered and cannot be cancelled"
        )
    if order.status == OrderStatus.CANCELLED:
        raise InvalidTransition(f"Order {order.order_number} is already cancelled")
    transition_order_status(order, OrderStatus.CANCELLED, now=now)


def mark_order_paid(
    order: Order,
    payment_result: Optional[dict[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
) -> None:
    """Record payment. Independent of the fulfilment status."""
    order.is_paid = True
    order.paid_at = now or utc_now()
    order.payment_result = payment_result


def apply_delivery_status(
    order: Order,
    delivery_status: DeliveryStatus,
    *,
    now: Optional[datetime] = None,
) -> Optional[OrderStatus]:
    """Cascade a delivery milestone onto its order.

    Returns the order's new status, or None when the order did not change.
    An order that cannot follow (e.g. already cancelled) is logged and left
    as it is.
    """
    target = DELIVERY_TO_ORDER_STATUS.get(delivery_status)
    if target is None:
        return None
    try:
        changed = transition_order_status(order, target, now=now)
    except InvalidTransition:
        logger.warning(
            "Inconsistency: delivery for order %s is %s but order is %s",
            order.order_number,
            delivery_status.value,
            order.status.value,
        )
        return None
    return target if changed else None


def ensure_can_access(actor: AuthUser, order: Order) -> None:
    if not (actor.is_admin or actor.owns(order.user_id)):
        raise Unauthorized("Not authorized to access this order")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def load_order(
    db: AsyncSession, order_id: uuid.UUID, *, for_update: bool = False
) -> Order:
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if not order:
        raise NotFound(f"Order {order_id} not found")
    return order


async def get_order(db: AsyncSession, actor: AuthUser, order_id: uuid.UUID) -> Order:
    order = await load_order(db, order_id)
    ensure_can_access(actor, order)
    return order


async def list_orders_for_user(
    db: AsyncSession,
    user_id: str,
    *,
    status: Optional[OrderStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Order]:
    query = (
        select(Order)
        .where(Order.user_id == user_id)
        .options(selectinload(Order.items))
    )
    if status:
        query = query.where(Order.status == status)
    query = query.order_by(Order.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_orders(
    db: AsyncSession,
    *,
    status: Optional[OrderStatus] = None,
    store_id: Optional[uuid.UUID] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Order]:
    query = select(Order).options(selectinload(Order.items))
    if status:
        query = query.where(Order.status == status)
    if store_id:
        query = query.where(Order.store_id == store_id)
    query = query.order_by(Order.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


async def _load_products(
    db: AsyncSession, lines: Sequence[OrderLine]
) -> dict[uuid.UUID, Product]:
    product_ids = {line.product_id for line in lines}
    result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {product.id: product for product in result.scalars().all()}

    for product_id in product_ids:
        product = products.get(product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found")
        if not product.is_active:
            raise InvalidOrder(f"Product {product.name} is not available")
    return products


async def place_order(
    db: AsyncSession,
    actor: AuthUser,
    *,
    store_id: uuid.UUID,
    items: Sequence[OrderLine],
    payment_method: PaymentMethod,
    shipping_address: Optional[dict[str, Any]] = None,
    tax_price=Decimal("0"),
    shipping_price=Decimal("0"),
    coupon_code: Optional[str] = None,
) -> Order:
    """Create an order, holding stock for every line.

    Prices are snapshotted from the product (``discount_price`` when set).
    Reservations, the coupon redemption and the order itself are written in
    one transaction: any failure leaves nothing behind.
    """
    if not items:
        raise InvalidOrder("No order items")
    for line in items:
        if line.quantity <= 0:
            raise InvalidOrder(f"Invalid quantity {line.quantity} for {line.product_id}")

    now = utc_now()
    try:
        products = await _load_products(db, items)

        order_items = []
        for position, line in enumerate(items):
            product = products[line.product_id]
            price = Decimal(product.selling_price)
            order_items.append(
                OrderItem(
                    position=position,
                    product_id=product.id,
                    category_id=product.category_id,
                    name=product.name,
                    quantity=line.quantity,
                    price=price,
                    line_total=price * line.quantity,
                )
            )
        items_price = sum((oi.line_total for oi in order_items), Decimal("0"))

        discount = Decimal("0")
        if coupon_code:
            try:
                coupon = await coupon_ops.get_coupon_by_code(db, coupon_code)
            except NotFound:
                raise InvalidCoupon("Invalid coupon code")
            quote = coupon_ops.quote(
                coupon,
                items_price,
                product_ids=[oi.product_id for oi in order_items],
                category_ids=[oi.category_id for oi in order_items],
                now=now,
            )
            discount = quote.discount
            coupon_code = coupon.code
            await coupon_ops.redeem_coupon(db, coupon.id)

        tax_price = Decimal(tax_price)
        shipping_price = Decimal(shipping_price)
        order = Order(
            order_number=Order.generate_order_number(),
            user_id=actor.user_id,
            store_id=store_id,
            shipping_address=shipping_address,
            payment_method=payment_method,
            items_price=items_price,
            discount_amount=discount,
            coupon_code=coupon_code or None,
            tax_price=tax_price,
            shipping_price=shipping_price,
            total_price=items_price - discount + tax_price + shipping_price,
            status=OrderStatus.PENDING,
            is_paid=False,
            is_delivered=False,
            items=order_items,
        )
        db.add(order)
        await db.flush()

        # Lock rows in a stable order so concurrent checkouts cannot deadlock
        for line in sorted(items, key=lambda line: str(line.product_id)):
            item = await lock_inventory_for_pair(db, line.product_id, store_id)
            if item.status == InventoryStatus.DISCONTINUED:
                raise InvalidOrder(
                    f"Product {products[line.product_id].name} has been discontinued"
                )
            await reserve_for_order(
                db, order=order, item=item, quantity=line.quantity, now=now
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Placed order %s for %s (%d item(s), total=%s)",
        order.order_number,
        actor.user_id,
        len(order_items),
        order.total_price,
    )
    await notifications.notify(
        notifications.ORDER_CREATED,
        recipient=actor.user_id,
        data={"order_number": order.order_number, "total_price": str(order.total_price)},
    )
    return await load_order(db, order.id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def cancel_order(db: AsyncSession, actor: AuthUser, order_id: uuid.UUID) -> Order:
    """Cancel an order and release the stock it holds, in one transaction."""
    try:
        order = await load_order(db, order_id, for_update=True)
        ensure_can_access(actor, order)
        cancel(order)
        await release_order_reservations(db, order.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Order %s cancelled by %s", order.order_number, actor.user_id)
    if order.is_paid:
        logger.info("Cancelled order %s was paid; refund must be requested", order.order_number)
    await notifications.notify(
        notifications.ORDER_CANCELLED,
        recipient=order.user_id,
        data={"order_number": order.order_number},
    )
    return await load_order(db, order.id)


async def update_order_status(
    db: AsyncSession,
    actor: AuthUser,
    order_id: uuid.UUID,
    status: OrderStatus,
) -> Order:
    """Administrative status change, validated by the transition table.

    Shipping or delivering an order deducts any stock it still holds.
    """
    if not actor.is_admin:
        raise Unauthorized("Only administrators can change order status")

    if status == OrderStatus.CANCELLED:
        return await cancel_order(db, actor, order_id)

    try:
        order = await load_order(db, order_id, for_update=True)
        previous = order.status
        changed = transition_order_status(order, status)
        if status in FULFILLED_STATUSES:
            await commit_order_reservations(db, order=order, actor=actor.user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if changed:
        logger.info(
            "Order %s status %s -> %s by %s",
            order.order_number,
            previous.value,
            status.value,
            actor.user_id,
        )
        await notifications.notify(
            notifications.ORDER_STATUS_CHANGED,
            recipient=order.user_id,
            data={"order_number": order.order_number, "status": status.value},
        )
    return await load_order(db, order.id)
