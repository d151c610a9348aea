"""
Discount policy settings.

Resolved once from the application config and handed to DiscountService,
so each call works against an explicit policy value.
"""
import logging
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, InvalidOperation
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

ASC = 'asc'
DESC = 'desc'
DIRECTIONS = (ASC, DESC)

ROUND_UP = 'up'
ROUND_DOWN = 'down'
ROUND_NEAREST = 'nearest'
ROUND_NONE = 'none'
ROUNDING_MODES = {
    ROUND_UP: ROUND_CEILING,
    ROUND_DOWN: ROUND_FLOOR,
    ROUND_NEAREST: ROUND_HALF_UP,
}


def _direction(value: Optional[str], key: str) -> str:
    normalized = (value or ASC).strip().lower()
    if normalized not in DIRECTIONS:
        logger.warning(f"Unknown {key} direction {value!r}, using '{ASC}'")
        return ASC
    return normalized


class StackingOrder:
    """Sort directions for discount priority and discount id."""

    def __init__(self, priority: str = ASC, id: str = ASC):
        self.priority = _direction(priority, 'priority')
        self.id = _direction(id, 'id')

    def __eq__(self, other):
        if not isinstance(other, StackingOrder):
            return NotImplemented
        return (self.priority, self.id) == (other.priority, other.id)

    def __repr__(self):
        return f"<StackingOrder(priority={self.priority}, id={self.id})>"


class RoundingPolicy:
    """How the final amount is rounded after stacking."""

    def __init__(self, mode: str = ROUND_NEAREST, precision: int = 2):
        normalized = (mode or ROUND_NEAREST).strip().lower()
        if normalized != ROUND_NONE and normalized not in ROUNDING_MODES:
            logger.warning(f"Unknown rounding mode {mode!r}, falling back to '{ROUND_NEAREST}'")
            normalized = ROUND_NEAREST
        self.mode = normalized
        self.precision = int(precision)

    def apply(self, amount: Decimal) -> Decimal:
        """Round amount to `precision` decimal places using `mode`."""
        if self.mode == ROUND_NONE:
            return amount
        exponent = Decimal(1).scaleb(-self.precision)
        return amount.quantize(exponent, rounding=ROUNDING_MODES[self.mode])

    def to_dict(self):
        return {'mode': self.mode, 'precision': self.precision}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'RoundingPolicy':
        data = data or {}
        return cls(data.get('mode', ROUND_NEAREST), data.get('precision', 2))

    def __eq__(self, other):
        if not isinstance(other, RoundingPolicy):
            return NotImplemented
        return (self.mode, self.precision) == (other.mode, other.precision)

    def __repr__(self):
        return f"<RoundingPolicy(mode={self.mode}, precision={self.precision})>"


class DiscountSettings:
    """Stacking order, percentage cap and rounding policy."""

    def __init__(
        self,
        stacking_order: Optional[StackingOrder] = None,
        max_percentage_cap: Any = 100,
        rounding: Optional[RoundingPolicy] = None
    ):
        self.stacking_order = stacking_order or StackingOrder()
        self.max_percentage_cap = _to_decimal(max_percentage_cap, Decimal('100'))
        self.rounding = rounding or RoundingPolicy()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'DiscountSettings':
        """Build settings from a Flask config (or any mapping with DISCOUNT_* keys)."""
        return cls(
            stacking_order=StackingOrder(
                priority=config.get('DISCOUNT_STACKING_PRIORITY', ASC),
                id=config.get('DISCOUNT_STACKING_ID', ASC)
            ),
            max_percentage_cap=config.get('DISCOUNT_MAX_PERCENTAGE_CAP', 100),
            rounding=RoundingPolicy(
                mode=config.get('DISCOUNT_ROUNDING', ROUND_NEAREST),
                precision=config.get('DISCOUNT_ROUNDING_PRECISION', 2)
            )
        )

    def __repr__(self):
        return (
            f"<DiscountSettings(stacking_order={self.stacking_order!r}, "
            f"max_percentage_cap={self.max_percentage_cap}, rounding={self.rounding!r})>"
        )


def _to_decimal(value: Any, default: Decimal) -> Decimal:
    if value is None:
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.warning(f"Invalid decimal setting {value!r}, using {default}")
        return default
