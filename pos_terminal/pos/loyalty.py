"""
pos_terminal/pos/loyalty.py
---------------------------
Loyalty point redemption and accrual for member customers.

The balance on the CustomerRef is a read-only snapshot; the backend applies
the real ledger change (earned − redeemed) when the sale is created.
"""
from decimal import Decimal, ROUND_FLOOR

from pos_terminal.utils.money import ZERO


def _floor_div(amount: Decimal, divisor: Decimal) -> int:
    if divisor <= 0 or amount <= 0:
        return 0
    return int((amount / divisor).to_integral_value(rounding=ROUND_FLOOR))


def max_redeemable_points(account, total_before_points: Decimal, point_value: Decimal) -> int:
    """
    min(balance, floor(total_before_points / point_value)) for members,
    0 for walk-ins and non-members.
    """
    if account is None or not account.is_member:
        return 0
    return max(0, min(account.loyalty_points, _floor_div(total_before_points, point_value)))


def points_to_earn(account, total_before_points: Decimal,
                   min_purchase_per_point: Decimal, cart_empty: bool = False) -> int:
    """floor(total_before_points / min_purchase_per_point) for members with a cart."""
    if account is None or not account.is_member or cart_empty:
        return 0
    return _floor_div(total_before_points, min_purchase_per_point)


def can_redeem(max_redeemable: int, min_redeem: int, cart_empty: bool) -> bool:
    """The redemption toggle is only offered above the configured threshold."""
    return not cart_empty and max_redeemable >= min_redeem


def clamp_points(requested: int, max_redeemable: int) -> int:
    return min(max_redeemable, max(0, int(requested or 0)))


def redemption_value(points: int, point_value: Decimal) -> Decimal:
    if points <= 0:
        return ZERO
    return Decimal(points) * point_value
