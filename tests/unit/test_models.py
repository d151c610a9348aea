"""
Unit tests for SQLAlchemy models.
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from app.models import Discount, DiscountType, UserDiscount, utcnow


def build_discount(**kwargs):
    values = dict(
        code='UNIT',
        name='Unit Discount',
        type=DiscountType.PERCENTAGE,
        value=Decimal('10'),
        priority=0,
        is_active=True,
        current_total_usage=0,
    )
    values.update(kwargs)
    return Discount(**values)


class TestDiscountModel:
    """Tests for Discount validity rules."""

    def test_active_open_ended_discount_is_valid(self):
        assert build_discount().is_valid() is True

    def test_inactive_discount_is_not_valid(self):
        discount = build_discount(is_active=False)
        assert discount.is_valid() is False
        assert discount.invalid_reason() == 'inactive'

    def test_window_bounds_are_inclusive(self):
        now = utcnow()
        discount = build_discount(starts_at=now, expires_at=now)
        assert discount.is_valid(now) is True
        assert discount.is_valid(now - timedelta(seconds=1)) is False
        assert discount.is_valid(now + timedelta(seconds=1)) is False

    def test_not_started_and_expired_reasons(self):
        now = utcnow()
        assert build_discount(starts_at=now + timedelta(days=1)).invalid_reason(now) == 'not started'
        assert build_discount(expires_at=now - timedelta(days=1)).invalid_reason(now) == 'expired'

    def test_total_limit(self):
        discount = build_discount(max_total_usage=3, current_total_usage=2)
        assert discount.has_reached_total_limit() is False
        assert discount.is_valid() is True

        discount.current_total_usage = 3
        assert discount.has_reached_total_limit() is True
        assert discount.is_valid() is False
        assert discount.invalid_reason() == 'total usage limit reached'

    def test_unlimited_total_usage(self):
        discount = build_discount(max_total_usage=None, current_total_usage=10_000)
        assert discount.has_reached_total_limit() is False

    def test_valid_discount_has_no_reason(self):
        assert build_discount().invalid_reason() is None

    def test_to_dict(self):
        discount = build_discount(type=DiscountType.FIXED, value=Decimal('15.50'))
        data = discount.to_dict()
        assert data['type'] == 'fixed'
        assert data['value'] == '15.50'
        assert data['expires_at'] is None


class TestUserDiscountModel:
    """Tests for UserDiscount usage rules."""

    @pytest.mark.parametrize('usage_count, cap, reached', [
        (0, None, False),
        (99, None, False),
        (1, 2, False),
        (2, 2, True),
        (3, 2, True),
    ])
    def test_usage_limit(self, usage_count, cap, reached):
        discount = build_discount(max_usage_per_user=cap)
        user_discount = UserDiscount(user_id=1, usage_count=usage_count, assigned_at=utcnow())
        assert user_discount.has_reached_usage_limit(discount) is reached

    def test_revoked_flag(self):
        user_discount = UserDiscount(user_id=1, usage_count=0, assigned_at=utcnow())
        assert user_discount.is_revoked() is False
        user_discount.revoked_at = utcnow()
        assert user_discount.is_revoked() is True
