"""
pos_terminal/pos/totals.py
--------------------------
Totals aggregation for the POS cart.

    subtotal            = Σ line_total
    tax_amount          = subtotal × rate / 100        (0 when tax is off)
    discount_amount     = compute_discount(policy, subtotal)
    total_before_points = subtotal + tax_amount − discount_amount
    points_value        = points_redeemed × point_value (0 when redemption is off)
    total_amount        = max(0, total_before_points − points_value)
    change_amount       = tendered − total_amount      (may be negative)

Full Decimal precision throughout; rounding happens only at display time.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from pos_terminal.pos.discounts import compute_discount
from pos_terminal.pos.loyalty import (
    max_redeemable_points, points_to_earn, can_redeem,
    clamp_points, redemption_value,
)
from pos_terminal.utils.money import ZERO, money_str, format_rupiah


@dataclass
class CartTotals:
    subtotal:                Decimal = ZERO
    tax_rate:                Decimal = ZERO
    tax_amount:              Decimal = ZERO
    discount_amount:         Decimal = ZERO
    total_before_points:     Decimal = ZERO
    points_redeemed:         int     = 0
    points_redemption_value: Decimal = ZERO
    total_amount:            Decimal = ZERO
    max_redeemable_points:   int     = 0
    can_redeem_points:       bool    = False
    points_to_earn:          int     = 0
    tendered:                Optional[Decimal] = None
    change_amount:           Optional[Decimal] = None
    currency_symbol:         str = field(default='Rp', repr=False)

    @property
    def is_payable(self) -> bool:
        """Payment is only permitted once the tender covers the total."""
        return self.tendered is not None and self.tendered >= self.total_amount

    def to_dict(self) -> dict:
        money = {
            'subtotal':                self.subtotal,
            'tax_rate':                self.tax_rate,
            'tax_amount':              self.tax_amount,
            'discount_amount':         self.discount_amount,
            'total_before_points':     self.total_before_points,
            'points_redemption_value': self.points_redemption_value,
            'total_amount':            self.total_amount,
        }
        out = {key: money_str(value) for key, value in money.items()}
        out.update({
            'points_redeemed':       self.points_redeemed,
            'max_redeemable_points': self.max_redeemable_points,
            'can_redeem_points':     self.can_redeem_points,
            'points_to_earn':        self.points_to_earn,
            'tendered':      money_str(self.tendered) if self.tendered is not None else None,
            'change_amount': money_str(self.change_amount) if self.change_amount is not None else None,
            'is_payable':    self.is_payable,
            'display': {
                'subtotal':        format_rupiah(self.subtotal, self.currency_symbol),
                'tax_amount':      format_rupiah(self.tax_amount, self.currency_symbol),
                'discount_amount': format_rupiah(self.discount_amount, self.currency_symbol),
                'points_redemption_value': format_rupiah(self.points_redemption_value,
                                                         self.currency_symbol),
                'total_amount':    format_rupiah(self.total_amount, self.currency_symbol),
                'change_amount':   (format_rupiah(self.change_amount, self.currency_symbol)
                                    if self.change_amount is not None else None),
            },
        })
        return out


def compute_totals(cart, settings, tax_enabled: bool = True,
                   tax_rate: Decimal = None, tendered: Decimal = None) -> CartTotals:
    """
    Derive every figure the cashier sees from the cart and the terminal
    settings. Pure: nothing on `cart` is modified.

    Args:
        cart:        Cart (lines, customer, discount, points selection)
        settings:    PosSettings (point value, loyalty thresholds, tax default)
        tax_enabled: the cashier's tax toggle
        tax_rate:    override for settings.tax_rate (percent)
        tendered:    amount handed over; None while not yet entered
    """
    rate = settings.tax_rate if tax_rate is None else tax_rate

    subtotal   = cart.subtotal
    tax_amount = subtotal * rate / Decimal('100') if tax_enabled else ZERO
    discount   = compute_discount(cart.discount, subtotal)

    total_before_points = subtotal + tax_amount - discount

    max_points = max_redeemable_points(cart.customer, total_before_points, settings.point_value)
    redeemed   = clamp_points(cart.points_to_redeem, max_points) if cart.use_points else 0
    points_val = redemption_value(redeemed, settings.point_value)

    total_amount = max(ZERO, total_before_points - points_val)

    totals = CartTotals(
        subtotal=subtotal,
        tax_rate=rate if tax_enabled else ZERO,
        tax_amount=tax_amount,
        discount_amount=discount,
        total_before_points=total_before_points,
        points_redeemed=redeemed,
        points_redemption_value=points_val,
        total_amount=total_amount,
        max_redeemable_points=max_points,
        can_redeem_points=can_redeem(max_points, settings.loyalty_min_redeem, cart.is_empty),
        points_to_earn=points_to_earn(cart.customer, total_before_points,
                                      settings.loyalty_min_purchase, cart.is_empty),
        currency_symbol=settings.currency_symbol,
    )

    if tendered is not None:
        totals.tendered = tendered
        totals.change_amount = tendered - total_amount

    return totals
