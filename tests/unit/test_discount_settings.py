"""
Unit tests for discount policy settings and amount parsing.
"""

import pytest
from decimal import Decimal
from app.services.discount_settings import (
    DiscountSettings, RoundingPolicy, StackingOrder, ASC, DESC
)
from app.utils.number_format import parse_amount, format_amount


class TestRoundingPolicy:

    @pytest.mark.parametrize('mode, expected', [
        ('up', Decimal('66.67')),
        ('down', Decimal('66.66')),
        ('nearest', Decimal('66.67')),
        ('none', Decimal('66.667')),
    ])
    def test_modes(self, mode, expected):
        assert RoundingPolicy(mode, 2).apply(Decimal('66.667')) == expected

    def test_nearest_rounds_half_away_from_zero(self):
        assert RoundingPolicy('nearest', 2).apply(Decimal('10.125')) == Decimal('10.13')

    def test_precision_zero(self):
        assert RoundingPolicy('up', 0).apply(Decimal('10.01')) == Decimal('11')
        assert RoundingPolicy('down', 0).apply(Decimal('10.99')) == Decimal('10')

    def test_unknown_mode_falls_back_to_nearest(self):
        policy = RoundingPolicy('banker', 2)
        assert policy.mode == 'nearest'
        assert policy.apply(Decimal('1.005')) == Decimal('1.01')

    def test_round_trip_through_dict(self):
        policy = RoundingPolicy('down', 3)
        assert RoundingPolicy.from_dict(policy.to_dict()) == policy

    def test_from_empty_dict_uses_defaults(self):
        assert RoundingPolicy.from_dict(None) == RoundingPolicy('nearest', 2)


class TestStackingOrder:

    def test_defaults_are_ascending(self):
        order = StackingOrder()
        assert (order.priority, order.id) == (ASC, ASC)

    def test_unknown_direction_falls_back_to_asc(self):
        order = StackingOrder(priority='sideways', id='DESC')
        assert order.priority == ASC
        assert order.id == DESC


class TestDiscountSettings:

    def test_defaults(self):
        settings = DiscountSettings()
        assert settings.max_percentage_cap == Decimal('100')
        assert settings.rounding == RoundingPolicy('nearest', 2)
        assert settings.stacking_order == StackingOrder(ASC, ASC)

    def test_from_config(self):
        settings = DiscountSettings.from_config({
            'DISCOUNT_STACKING_PRIORITY': 'desc',
            'DISCOUNT_STACKING_ID': 'asc',
            'DISCOUNT_MAX_PERCENTAGE_CAP': '50',
            'DISCOUNT_ROUNDING': 'down',
            'DISCOUNT_ROUNDING_PRECISION': 1,
        })
        assert settings.stacking_order == StackingOrder(DESC, ASC)
        assert settings.max_percentage_cap == Decimal('50')
        assert settings.rounding == RoundingPolicy('down', 1)

    def test_invalid_cap_uses_default(self):
        assert DiscountSettings(max_percentage_cap='lots').max_percentage_cap == Decimal('100')


class TestParseAmount:

    @pytest.mark.parametrize('raw, expected', [
        ('100', Decimal('100')),
        ('84.50', Decimal('84.50')),
        (' 12.5 ', Decimal('12.5')),
        (100, Decimal('100')),
        (15.5, Decimal('15.5')),
        (Decimal('7.25'), Decimal('7.25')),
    ])
    def test_valid(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize('raw', [None, '', 'abc', '1,234.56', '-5', -5, True, 'NaN', float('inf')])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)

    def test_format_amount_has_no_exponent(self):
        assert format_amount(Decimal('1E+2')) == '100'
        assert format_amount(Decimal('72.00')) == '72.00'
