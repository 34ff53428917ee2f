"""Unit tests for coupon evaluation (validity window, discount maths, restrictions)."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from services.commerce_service.errors import CouponNotApplicable, InvalidCoupon
from services.commerce_service.models import DiscountType
from services.commerce_service.services import coupons
from tests.factories import CouponFactory

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _coupon(**overrides):
    defaults = {
        "start_date": NOW - timedelta(days=1),
        "end_date": NOW + timedelta(days=1),
    }
    defaults.update(overrides)
    return CouponFactory.create(**defaults)


# ---------------------------------------------------------------------------
# is_valid
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_valid_inside_window():
    assert coupons.is_valid(_coupon(), NOW)


@pytest.mark.unit
def test_invalid_one_millisecond_after_end():
    coupon = _coupon(end_date=NOW)
    assert coupons.is_valid(coupon, NOW)
    assert not coupons.is_valid(coupon, NOW + timedelta(milliseconds=1))


@pytest.mark.unit
def test_invalid_before_start():
    coupon = _coupon(start_date=NOW + timedelta(minutes=1))
    assert not coupons.is_valid(coupon, NOW)


@pytest.mark.unit
def test_invalid_when_inactive():
    assert not coupons.is_valid(_coupon(is_active=False), NOW)


@pytest.mark.unit
def test_invalid_when_usage_limit_reached():
    assert coupons.is_valid(_coupon(usage_limit=3, used_count=2), NOW)
    assert not coupons.is_valid(_coupon(usage_limit=3, used_count=3), NOW)


@pytest.mark.unit
def test_naive_dates_are_treated_as_utc():
    coupon = _coupon(
        start_date=(NOW - timedelta(days=1)).replace(tzinfo=None),
        end_date=(NOW + timedelta(days=1)).replace(tzinfo=None),
    )
    assert coupons.is_valid(coupon, NOW)


# ---------------------------------------------------------------------------
# calculate_discount
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_percentage_discount_is_capped():
    coupon = _coupon(
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        max_discount_amount=Decimal("50"),
    )
    assert coupons.calculate_discount(coupon, Decimal("1000"), NOW) == Decimal("50.00")


@pytest.mark.unit
def test_percentage_discount_without_cap():
    coupon = _coupon(discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("15"))
    assert coupons.calculate_discount(coupon, Decimal("200"), NOW) == Decimal("30.00")


@pytest.mark.unit
def test_fixed_discount_never_exceeds_order_amount():
    coupon = _coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("20"))
    assert coupons.calculate_discount(coupon, Decimal("15"), NOW) == Decimal("15.00")


@pytest.mark.unit
def test_discount_rounds_half_up_to_cents():
    coupon = _coupon(discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("12.5"))
    # 12.5% of 0.99 = 0.12375
    assert coupons.calculate_discount(coupon, Decimal("0.99"), NOW) == Decimal("0.12")
    # 12.5% of 1.00 = 0.125
    assert coupons.calculate_discount(coupon, Decimal("1.00"), NOW) == Decimal("0.13")


@pytest.mark.unit
def test_no_discount_below_minimum_or_when_invalid():
    coupon = _coupon(min_order_amount=Decimal("500"))
    assert coupons.calculate_discount(coupon, Decimal("499.99"), NOW) == Decimal("0")
    expired = _coupon(end_date=NOW - timedelta(seconds=1))
    assert coupons.calculate_discount(expired, Decimal("1000"), NOW) == Decimal("0")


# ---------------------------------------------------------------------------
# Restrictions & quotes
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_empty_restrictions_apply_to_anything():
    coupons.check_applicability(_coupon(), [uuid.uuid4()], [uuid.uuid4()])


@pytest.mark.unit
def test_product_restriction_must_intersect():
    product_id = uuid.uuid4()
    coupon = _coupon(applicable_products=[str(product_id)])

    coupons.check_applicability(coupon, [product_id, uuid.uuid4()], [])
    with pytest.raises(CouponNotApplicable):
        coupons.check_applicability(coupon, [uuid.uuid4()], [])


@pytest.mark.unit
def test_category_restriction_must_intersect():
    category_id = uuid.uuid4()
    coupon = _coupon(applicable_categories=[str(category_id)])

    coupons.check_applicability(coupon, [], [None, category_id])
    with pytest.raises(CouponNotApplicable):
        coupons.check_applicability(coupon, [], [uuid.uuid4()])


@pytest.mark.unit
def test_quote_reports_discount_and_final_amount():
    coupon = _coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("25"))

    result = coupons.quote(coupon, Decimal("120"), now=NOW)

    assert result.coupon_id == coupon.id
    assert result.discount == Decimal("25.00")
    assert result.final_amount == Decimal("95.00")


@pytest.mark.unit
def test_quote_rejects_expired_and_below_minimum():
    with pytest.raises(InvalidCoupon):
        coupons.quote(_coupon(is_active=False), Decimal("100"), now=NOW)
    with pytest.raises(InvalidCoupon):
        coupons.quote(_coupon(min_order_amount=Decimal("150")), Decimal("100"), now=NOW)
