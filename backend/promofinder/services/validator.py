"""Discount validation.

A candidate's discount is only real when both prices are present and
positive, the sale price is strictly below the original, and the derived
percentage falls inside the configured floor/ceiling band. The discount
is always recomputed from the two prices; whatever percentage a source
reports is ignored.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from promofinder.config import settings


class RejectionReason(str, Enum):
    """Why a candidate was rejected by the validator."""

    MISSING_PRICE = "missing_price"
    NOT_A_DISCOUNT = "not_a_discount"
    DISCOUNT_TOO_SMALL = "discount_too_small"
    DISCOUNT_IMPLAUSIBLE = "discount_implausible"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one price pair."""

    valid: bool
    discount_percentage: Optional[int] = None
    reason: Optional[RejectionReason] = None

    @classmethod
    def accept(cls, discount: int) -> "ValidationResult":
        return cls(valid=True, discount_percentage=discount)

    @classmethod
    def reject(
        cls, reason: RejectionReason, discount: Optional[int] = None
    ) -> "ValidationResult":
        return cls(valid=False, discount_percentage=discount, reason=reason)


def compute_discount(original_price: Decimal, sale_price: Decimal) -> int:
    """Percentage off the original price, rounded half-up to an integer.

    Args:
        original_price: Positive original price
        sale_price: Sale price

    Returns:
        Integer percentage
    """
    ratio = (original_price - sale_price) * 100 / original_price
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class DiscountValidator:
    """Pure validator for claimed discounts.

    Failures are returned as ValidationResult values and never raised.
    """

    def __init__(self, floor: Optional[int] = None, ceiling: Optional[int] = None):
        """Initialize validator.

        Args:
            floor: Minimum accepted discount percent (default DISCOUNT_FLOOR)
            ceiling: Maximum accepted discount percent (default DISCOUNT_CEILING)

        Raises:
            ValueError: If floor > ceiling or either is outside 0..100
        """
        self.floor = settings.DISCOUNT_FLOOR if floor is None else floor
        self.ceiling = settings.DISCOUNT_CEILING if ceiling is None else ceiling
        if not 0 <= self.floor <= self.ceiling <= 100:
            raise ValueError(
                f"Invalid discount bounds: floor={self.floor} ceiling={self.ceiling}"
            )

    def validate(
        self,
        original_price: Optional[Decimal],
        sale_price: Optional[Decimal],
    ) -> ValidationResult:
        """Validate a claimed original/sale price pair.

        Args:
            original_price: Claimed original price
            sale_price: Claimed sale price

        Returns:
            ValidationResult with the derived discount when valid
        """
        if original_price is None or sale_price is None:
            return ValidationResult.reject(RejectionReason.MISSING_PRICE)

        try:
            original = Decimal(str(original_price))
            sale = Decimal(str(sale_price))
        except InvalidOperation:
            return ValidationResult.reject(RejectionReason.MISSING_PRICE)
        # NaN and Infinity count as absent prices
        if not original.is_finite() or not sale.is_finite():
            return ValidationResult.reject(RejectionReason.MISSING_PRICE)
        if original <= 0 or sale <= 0:
            return ValidationResult.reject(RejectionReason.MISSING_PRICE)

        if sale >= original:
            return ValidationResult.reject(RejectionReason.NOT_A_DISCOUNT)

        discount = compute_discount(original, sale)

        if discount < self.floor:
            return ValidationResult.reject(RejectionReason.DISCOUNT_TOO_SMALL, discount)
        if discount > self.ceiling:
            return ValidationResult.reject(RejectionReason.DISCOUNT_IMPLAUSIBLE, discount)

        return ValidationResult.accept(discount)
