"""Unit tests for delivery status bookkeeping."""

from datetime import datetime, timedelta, timezone

import pytest
from services.commerce_service.models import DeliveryStatus
from services.commerce_service.services import deliveries
from tests.factories import DeliveryFactory

T0 = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


@pytest.mark.unit
def test_each_update_appends_a_sequenced_event():
    delivery = DeliveryFactory.create()

    first = deliveries.update_delivery_status(
        delivery, DeliveryStatus.ASSIGNED, "Rider on the way", now=T0
    )
    second = deliveries.update_delivery_status(
        delivery, DeliveryStatus.IN_TRANSIT, location={"latitude": 12.9}, now=T0
    )

    assert (first.sequence, second.sequence) == (1, 2)
    assert first.delivery_id == delivery.id
    assert first.remarks == "Rider on the way"
    assert second.location == {"latitude": 12.9}
    assert delivery.status == DeliveryStatus.IN_TRANSIT
    assert delivery.status_version == 2


@pytest.mark.unit
def test_pickup_time_is_stamped_once():
    delivery = DeliveryFactory.create()

    deliveries.update_delivery_status(delivery, DeliveryStatus.PICKED_UP, now=T0)
    deliveries.update_delivery_status(delivery, DeliveryStatus.IN_TRANSIT, now=T0)
    deliveries.update_delivery_status(
        delivery, DeliveryStatus.PICKED_UP, now=T0 + timedelta(hours=2)
    )

    assert delivery.pickup_time == T0


@pytest.mark.unit
def test_delivered_stamps_actual_delivery_time():
    delivery = DeliveryFactory.create()
    deliveries.update_delivery_status(delivery, DeliveryStatus.DELIVERED, now=T0)
    assert delivery.actual_delivery_time == T0


@pytest.mark.unit
def test_failed_attempts_are_counted():
    delivery = DeliveryFactory.create()

    deliveries.update_delivery_status(delivery, DeliveryStatus.FAILED, "Nobody home")
    deliveries.update_delivery_status(delivery, DeliveryStatus.OUT_FOR_DELIVERY)
    deliveries.update_delivery_status(delivery, DeliveryStatus.FAILED, "Gate locked")

    assert delivery.delivery_attempts == 2
    assert delivery.failure_reason == "Gate locked"


@pytest.mark.unit
def test_returned_records_reason():
    delivery = DeliveryFactory.create()
    deliveries.update_delivery_status(delivery, DeliveryStatus.RETURNED, "Refused")
    assert delivery.return_reason == "Refused"


@pytest.mark.unit
def test_any_status_may_follow_any_other():
    delivery = DeliveryFactory.create()
    deliveries.update_delivery_status(delivery, DeliveryStatus.DELIVERED)
    deliveries.update_delivery_status(delivery, DeliveryStatus.IN_TRANSIT)
    assert delivery.status == DeliveryStatus.IN_TRANSIT


@pytest.mark.unit
def test_assign_sets_courier_and_status():
    delivery = DeliveryFactory.create()

    event = deliveries.assign(
        delivery, name="Ravi", phone="+91 90000 00000", vehicle_number="KA01AB1234"
    )

    assert delivery.courier_name == "Ravi"
    assert delivery.vehicle_number == "KA01AB1234"
    assert delivery.status == DeliveryStatus.ASSIGNED
    assert event.remarks == "Assigned to Ravi"
