"""Delivery tracking and its cascade onto orders and stock."""

import uuid
from datetime import datetime
from typing import Any, Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    DuplicateEntity,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from services.commerce_service.models import (
    Delivery,
    DeliveryStatus,
    DeliveryStatusEvent,
    OrderStatus,
)
from services.commerce_service.services import notifications
from services.commerce_service.services.orders import (
    FULFILLED_STATUSES,
    apply_delivery_status,
    ensure_can_access,
    load_order,
)
from services.commerce_service.services.reservations import (
    commit_order_reservations,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------


def update_delivery_status(
    delivery: Delivery,
    status: DeliveryStatus,
    remarks: Optional[str] = None,
    location: Optional[dict[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
) -> DeliveryStatusEvent:
    """Set the status and return the history event to append.

    Any status may follow any other so admins can correct mistakes. Pickup and
    delivery times are stamped the first time those states are entered.
    """
    now = now or utc_now()

    delivery.status = status
    delivery.status_version = (delivery.status_version or 0) + 1

    if status == DeliveryStatus.PICKED_UP and delivery.pickup_time is None:
        delivery.pickup_time = now
    elif status == DeliveryStatus.DELIVERED and delivery.actual_delivery_time is None:
        delivery.actual_delivery_time = now
    elif status == DeliveryStatus.FAILED:
        delivery.delivery_attempts = (delivery.delivery_attempts or 0) + 1
        if remarks:
            delivery.failure_reason = remarks
    elif status == DeliveryStatus.RETURNED and remarks:
        delivery.return_reason = remarks

    return DeliveryStatusEvent(
        delivery_id=delivery.id,
        sequence=delivery.status_version,
        status=status,
        remarks=remarks,
        location=location,
        created_at=now,
    )


def assign(
    delivery: Delivery,
    *,
    name: str,
    phone: Optional[str] = None,
    vehicle_number: Optional[str] = None,
    photo: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DeliveryStatusEvent:
    delivery.courier_name = name
    delivery.courier_phone = phone
    delivery.vehicle_number = vehicle_number
    delivery.courier_photo = photo
    return update_delivery_status(
        delivery, DeliveryStatus.ASSIGNED, f"Assigned to {name}", now=now
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def _load_delivery(
    db: AsyncSession, delivery_id: uuid.UUID, *, for_update: bool = False
) -> Delivery:
    query = select(Delivery).where(Delivery.id == delivery_id)
    if for_update:
        query = query.with_for_update()
    else:
        query = query.options(selectinload(Delivery.history))
    result = await db.execute(query.execution_options(populate_existing=True))
    delivery = result.scalar_one_or_none()
    if not delivery:
        raise NotFound(f"Delivery {delivery_id} not found")
    return delivery


async def get_delivery(db: AsyncSession, delivery_id: uuid.UUID) -> Delivery:
    return await _load_delivery(db, delivery_id)


async def get_delivery_for_order(
    db: AsyncSession, actor: AuthUser, order_id: uuid.UUID
) -> Delivery:
    order = await load_order(db, order_id)
    ensure_can_access(actor, order)

    result = await db.execute(
        select(Delivery)
        .where(Delivery.order_id == order_id)
        .options(selectinload(Delivery.history))
        .execution_options(populate_existing=True)
    )
    delivery = result.scalar_one_or_none()
    if not delivery:
        raise NotFound(f"Delivery not found for order {order_id}")
    return delivery


async def track_delivery(db: AsyncSession, tracking_number: str) -> Delivery:
    result = await db.execute(
        select(Delivery)
        .where(Delivery.tracking_number == tracking_number)
        .options(selectinload(Delivery.history))
    )
    delivery = result.scalar_one_or_none()
    if not delivery:
        raise NotFound(f"Delivery not found with tracking number {tracking_number}")
    return delivery


async def list_deliveries(
    db: AsyncSession,
    *,
    status: Optional[DeliveryStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Delivery]:
    query = select(Delivery).options(selectinload(Delivery.history))
    if status:
        query = query.where(Delivery.status == status)
    query = query.order_by(Delivery.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_delivery(
    db: AsyncSession,
    actor: AuthUser,
    *,
    order_id: uuid.UUID,
    estimated_delivery_time: Optional[datetime] = None,
    delivery_notes: Optional[str] = None,
) -> Delivery:
    order = await load_order(db, order_id)
    if order.status == OrderStatus.CANCELLED:
        raise InvalidTransition(
            f"Order {order.order_number} is cancelled and cannot be delivered"
        )

    existing = await db.execute(select(Delivery.id).where(Delivery.order_id == order_id))
    if existing.scalar_one_or_none():
        raise DuplicateEntity("Delivery already exists for this order")

    delivery = Delivery(
        order_id=order_id,
        tracking_number=Delivery.generate_tracking_number(),
        status=DeliveryStatus.PENDING,
        status_version=0,
        estimated_delivery_time=estimated_delivery_time,
        delivery_notes=delivery_notes,
        delivery_attempts=0,
    )
    db.add(delivery)
    await db.flush()
    db.add(update_delivery_status(delivery, DeliveryStatus.PENDING, "Delivery created"))
    await db.commit()

    logger.info(
        "Created delivery %s for order %s by %s",
        delivery.tracking_number,
        order.order_number,
        actor.user_id,
    )
    return await _load_delivery(db, delivery.id)


async def assign_courier(
    db: AsyncSession,
    delivery_id: uuid.UUID,
    *,
    name: str,
    phone: Optional[str] = None,
    vehicle_number: Optional[str] = None,
    photo: Optional[str] = None,
) -> Delivery:
    delivery = await _load_delivery(db, delivery_id, for_update=True)
    db.add(
        assign(
            delivery,
            name=name,
            phone=phone,
            vehicle_number=vehicle_number,
            photo=photo,
        )
    )
    await db.commit()
    logger.info("Delivery %s assigned to %s", delivery.tracking_number, name)
    return await _load_delivery(db, delivery_id)


async def update_location(
    db: AsyncSession,
    delivery_id: uuid.UUID,
    *,
    latitude: float,
    longitude: float,
    address: Optional[str] = None,
) -> Delivery:
    delivery = await _load_delivery(db, delivery_id, for_update=True)
    delivery.current_location = {
        "latitude": latitude,
        "longitude": longitude,
        "address": address,
        "updated_at": utc_now().isoformat(),
    }
    await db.commit()
    return await _load_delivery(db, delivery_id)


async def record_proof_of_delivery(
    db: AsyncSession,
    delivery_id: uuid.UUID,
    *,
    signature: Optional[str] = None,
    photo: Optional[str] = None,
    received_by: Optional[str] = None,
) -> Delivery:
    delivery = await _load_delivery(db, delivery_id, for_update=True)
    delivery.proof_of_delivery = {
        "signature": signature,
        "photo": photo,
        "received_by": received_by,
    }
    await db.commit()
    logger.info("Proof of delivery recorded for %s", delivery.tracking_number)
    return await _load_delivery(db, delivery_id)


async def change_delivery_status(
    db: AsyncSession,
    actor: AuthUser,
    delivery_id: uuid.UUID,
    *,
    status: DeliveryStatus,
    remarks: Optional[str] = None,
    location: Optional[dict[str, Any]] = None,
) -> Delivery:
    """Change a delivery's status and cascade it, in one transaction.

    Out-for-delivery ships the order and delivered completes it. The first
    pickup turns the order's stock holds into deductions; a delivery that
    skips pickup does so when the order ships or completes.
    """
    order = None
    order_status = None
    try:
        delivery = await _load_delivery(db, delivery_id, for_update=True)
        first_pickup = (
            status == DeliveryStatus.PICKED_UP and delivery.pickup_time is None
        )
        previous = delivery.status
        db.add(update_delivery_status(delivery, status, remarks, location))

        try:
            order = await load_order(db, delivery.order_id, for_update=True)
        except NotFound:
            logger.error(
                "Inconsistency: delivery %s references missing order %s",
                delivery.tracking_number,
                delivery.order_id,
            )
        if order is not None:
            order_status = apply_delivery_status(order, status)
            if order.status != OrderStatus.CANCELLED and (
                first_pickup or order.status in FULFILLED_STATUSES
            ):
                await commit_order_reservations(db, order=order, actor=actor.user_id)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Delivery %s status %s -> %s by %s",
        delivery.tracking_number,
        previous.value,
        status.value,
        actor.user_id,
    )

    if order is not None:
        await notifications.notify(
            notifications.DELIVERY_STATUS_CHANGED,
            recipient=order.user_id,
            data={
                "tracking_number": delivery.tracking_number,
                "order_number": order.order_number,
                "status": status.value,
            },
        )
        if order_status is not None:
            await notifications.notify(
                notifications.ORDER_STATUS_CHANGED,
                recipient=order.user_id,
                data={"order_number": order.order_number, "status": order_status.value},
            )
    return await _load_delivery(db, delivery_id)


async def rate_delivery(
    db: AsyncSession,
    actor: AuthUser,
    delivery_id: uuid.UUID,
    *,
    rating: int,
    feedback: Optional[str] = None,
) -> Delivery:
    """Customer rating; only the order's owner, only once delivered."""
    if not 1 <= rating <= 5:
        raise ValueError("Rating must be between 1 and 5")

    delivery = await _load_delivery(db, delivery_id, for_update=True)
    order = await load_order(db, delivery.order_id)
    if not actor.owns(order.user_id):
        raise Unauthorized("Not authorized to rate this delivery")
    if delivery.status != DeliveryStatus.DELIVERED:
        raise InvalidTransition("Can only rate completed deliveries")

    delivery.rating = rating
    delivery.feedback = feedback
    await db.commit()

    logger.info("Delivery %s rated %d", delivery.tracking_number, rating)
    return await _load_delivery(db, delivery_id)
