"""
pos_terminal/pos/submission.py
------------------------------
Turns the cart into a sale on the backend.

Flow
────
1. Local validation, in this order, before any network call:
   store selected → cart not empty → tendered ≥ total.
2. POST /sales with the assembled draft. The backend decrements stock,
   updates the loyalty ledger and persists the totals.
3. On success GET /sales/:id for the receipt. If that second call fails
   the payment still stands (stock and points are already committed);
   the receipt is simply not returned and the sale waits in the print
   queue.
4. On success the cart is cleared (lines, customer, discount, points).
   On failure nothing local is touched and the draft is dropped.

Nothing is retried.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from pos_terminal import db
from pos_terminal.errors import (
    BackendAuthError, BackendError, EmptyCartError, InsufficientTenderError,
    NoStoreSelectedError, SubmissionError,
)
from pos_terminal.pos.models import SaleJournal
from pos_terminal.pos.payments import PaymentMethod


def _wire(amount: Decimal):
    """Decimal → JSON number for the backend (it stores float64)."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


@dataclass
class SaleDraft:
    store_id:                int
    items:                   List[Dict[str, Any]]
    payments:                List[Dict[str, Any]]
    tax_amount:              Decimal
    discount_amount:         Decimal    # policy discount + points redemption value
    points_redeemed:         int = 0
    points_redemption_value: Decimal = Decimal('0')
    customer_id:             Optional[int] = None
    discount_id:             Optional[int] = None
    notes:                   str = ''

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            'store_id':                self.store_id,
            'points_redeemed':         self.points_redeemed,
            'points_redemption_value': _wire(self.points_redemption_value),
            'items':                   self.items,
            'payments':                self.payments,
            'discount_amount':         _wire(self.discount_amount),
            'tax_amount':              _wire(self.tax_amount),
        }
        if self.customer_id:
            payload['customer_id'] = self.customer_id
        if self.discount_id:
            payload['discount_id'] = self.discount_id
        if self.notes:
            payload['notes'] = self.notes
        return payload


@dataclass
class SubmissionResult:
    sale_id:       Optional[int]
    sale_number:   Optional[str]
    total_amount:  Decimal
    paid_amount:   Decimal
    change_amount: Decimal
    points_earned: int
    receipt:       Optional[Dict[str, Any]] = None
    sale:          Dict[str, Any] = field(default_factory=dict)

    @property
    def receipt_available(self) -> bool:
        return self.receipt is not None


# ── Validation ────────────────────────────────────────────────────

def validate_cart(store_id: Optional[int], cart) -> None:
    """Store and cart checks; they need no totals and so no settings fetch."""
    if not store_id:
        raise NoStoreSelectedError()
    if cart.is_empty:
        raise EmptyCartError()


def validate_checkout(store_id: Optional[int], cart, totals, tendered: Decimal) -> None:
    """Raise the first failing local check; each is a distinct error."""
    validate_cart(store_id, cart)
    if tendered is None or tendered < totals.total_amount:
        raise InsufficientTenderError()


# ── Draft assembly ────────────────────────────────────────────────

def build_draft(cart, totals, store_id: int, payment_method: PaymentMethod,
                tendered: Decimal) -> SaleDraft:
    items = [
        {
            'product_id':      line.product_id,
            'quantity':        line.quantity,
            'unit_price':      _wire(line.unit_price),
            'discount_amount': _wire(line.line_discount),
            'total_price':     _wire(line.line_total),
        }
        for line in cart.lines
    ]
    payments = [{
        'payment_method': payment_method.value,
        'amount':         _wire(tendered),
        'status':         'completed',
    }]
    return SaleDraft(
        store_id=store_id,
        customer_id=cart.customer.id if cart.customer else None,
        discount_id=cart.discount.id if cart.discount else None,
        items=items,
        payments=payments,
        tax_amount=totals.tax_amount,
        discount_amount=totals.discount_amount + totals.points_redemption_value,
        points_redeemed=totals.points_redeemed,
        points_redemption_value=totals.points_redemption_value,
        notes=cart.notes,
    )


# ── Submission ────────────────────────────────────────────────────

def submit_sale(client, cart, totals, store_id: Optional[int],
                payment_method: PaymentMethod, tendered: Decimal,
                terminal_key: str, cashier: str = None) -> SubmissionResult:
    """
    Validate, post and reconcile one sale. Clears `cart` only on success.

    Raises:
        NoStoreSelectedError / EmptyCartError / InsufficientTenderError
        BackendAuthError   — token rejected; nothing submitted
        SubmissionError    — backend refused or was unreachable
    """
    validate_checkout(store_id, cart, totals, tendered)
    draft = build_draft(cart, totals, store_id, payment_method, tendered)

    try:
        created = client.create_sale(draft.to_payload())
    except BackendAuthError:
        raise
    except BackendError as exc:
        current_app.logger.warning(
            f"Sale rejected (store {store_id}, terminal {terminal_key}): {exc.message}"
        )
        raise SubmissionError(exc.detail, exc.backend_status) from exc

    sale_id = created.get('id')
    result = SubmissionResult(
        sale_id=sale_id,
        sale_number=created.get('sale_number'),
        total_amount=totals.total_amount,
        paid_amount=tendered,
        change_amount=tendered - totals.total_amount,
        points_earned=totals.points_to_earn,
        sale=created,
    )

    if sale_id:
        try:
            result.receipt = client.get_sale(sale_id)
            result.sale_number = result.receipt.get('sale_number') or result.sale_number
        except BackendError as exc:
            # Sale is committed on the backend; only the receipt is missing.
            current_app.logger.warning(f"Receipt fetch failed for sale {sale_id}: {exc.message}")

    current_app.logger.info(
        f"Sale completed by {cashier or 'unknown'}: {result.sale_number or sale_id} | "
        f"Total: {result.total_amount} | Paid: {tendered} | Method: {payment_method.value}"
    )

    if sale_id:
        _journal(result, store_id, cart, payment_method, totals, terminal_key, cashier)

    cart.clear()
    return result


def _journal(result: SubmissionResult, store_id: int, cart, payment_method: PaymentMethod,
             totals, terminal_key: str, cashier: str) -> None:
    entry = SaleJournal(
        backend_sale_id=result.sale_id,
        sale_number=result.sale_number,
        terminal_key=terminal_key,
        store_id=store_id,
        customer_id=cart.customer.id if cart.customer else None,
        cashier=cashier,
        total_amount=result.total_amount,
        paid_amount=result.paid_amount,
        change_amount=result.change_amount,
        payment_method=payment_method.value,
        points_redeemed=totals.points_redeemed,
        points_earned=result.points_earned,
        receipt_printed=result.receipt_available,
    )
    db.session.add(entry)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        # The sale itself is already committed upstream.
        current_app.logger.error(f"Journal write failed for sale {result.sale_id}: {exc}")
