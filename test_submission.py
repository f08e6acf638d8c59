"""
test_submission.py — Checkout validation, sale payload and the outcome
handling around POST /sales.
Run: pytest test_submission.py -v
"""
import pytest
from decimal import Decimal

from pos_terminal.errors import (
    BackendError, BackendAuthError, EmptyCartError, InsufficientTenderError,
    NoStoreSelectedError, SubmissionError,
)
from pos_terminal.pos.cart import Cart, CustomerRef
from pos_terminal.pos.catalog import StockItem
from pos_terminal.pos.discounts import DiscountPolicy
from pos_terminal.pos.models import SaleJournal
from pos_terminal.pos.payments import PaymentMethod
from pos_terminal.pos.settings import PosSettings
from pos_terminal.pos.submission import build_draft, submit_sale, validate_checkout
from pos_terminal.pos.totals import compute_totals

SETTINGS = PosSettings()
MEMBER = CustomerRef(id=7, name='Budi', is_member=True, loyalty_points=50)
PROMO = DiscountPolicy.from_api({'id': 1, 'name': 'Promo', 'discount_type': 'percentage',
                                 'discount_value': 10, 'max_discount': 4000})


def filled_cart(**kwargs):
    cart = Cart(**kwargs)
    cart.add_line(StockItem(product_id=10, name='Beras', sku='BRS', unit_price=Decimal('50000'),
                            available_stock=5))
    return cart


def submit(backend, cart, tendered='100000', store_id=1, tax_enabled=False):
    totals = compute_totals(cart, SETTINGS, tax_enabled=tax_enabled)
    return submit_sale(backend, cart, totals, store_id, PaymentMethod.cash,
                       Decimal(tendered), terminal_key='term-1', cashier='kasir')


# ── Local validation order ────────────────────────────────────────

def test_store_checked_first():
    totals = compute_totals(Cart(), SETTINGS)
    with pytest.raises(NoStoreSelectedError):
        validate_checkout(None, Cart(), totals, Decimal('0'))


def test_empty_cart_checked_before_tender():
    totals = compute_totals(Cart(), SETTINGS)
    with pytest.raises(EmptyCartError):
        validate_checkout(1, Cart(), totals, None)


def test_missing_tender_rejected():
    cart = filled_cart()
    with pytest.raises(InsufficientTenderError):
        validate_checkout(1, cart, compute_totals(cart, SETTINGS), None)


def test_validation_failure_makes_no_network_call(app, backend):
    with pytest.raises(EmptyCartError):
        submit(backend, Cart())
    assert backend.posted == []


# ── Payload ───────────────────────────────────────────────────────

def test_draft_folds_points_value_into_discount_amount():
    cart = filled_cart(customer=MEMBER, discount=PROMO, use_points=True, points_to_redeem=50)
    totals = compute_totals(cart, SETTINGS, tax_enabled=False)
    payload = build_draft(cart, totals, 1, PaymentMethod.cash, Decimal('50000')).to_payload()

    assert payload['customer_id'] == 7
    assert payload['discount_id'] == 1
    assert payload['points_redeemed'] == 50
    assert payload['points_redemption_value'] == 5000
    assert payload['discount_amount'] == 9000          # 4.000 promo + 5.000 points
    assert payload['items'] == [{'product_id': 10, 'quantity': 1, 'unit_price': 50000,
                                 'discount_amount': 0, 'total_price': 50000}]
    assert payload['payments'] == [{'payment_method': 'cash', 'amount': 50000,
                                    'status': 'completed'}]


def test_walk_in_payload_omits_optional_keys():
    cart = filled_cart()
    totals = compute_totals(cart, SETTINGS)
    payload = build_draft(cart, totals, 1, PaymentMethod.card, Decimal('55500')).to_payload()
    assert 'customer_id' not in payload
    assert 'discount_id' not in payload
    assert 'notes' not in payload
    assert payload['tax_amount'] == 5500


# ── Outcomes ──────────────────────────────────────────────────────

def test_success_clears_cart_and_journals(app, backend):
    cart = filled_cart(customer=MEMBER, discount=PROMO)
    result = submit(backend, cart)

    assert result.sale_id == 100
    assert result.sale_number == 'INV-100'
    assert result.change_amount == Decimal('54000')
    assert result.receipt_available
    assert cart == Cart()

    entry = SaleJournal.query.filter_by(backend_sale_id=100).one()
    assert entry.receipt_printed is True
    assert entry.cashier == 'kasir'


def test_backend_rejection_keeps_cart(app, backend):
    backend.fail_sale = BackendError('insufficient stock', 400, detail='insufficient stock')
    cart = filled_cart(customer=MEMBER)
    with pytest.raises(SubmissionError) as exc:
        submit(backend, cart)
    assert exc.value.message == 'insufficient stock'
    assert exc.value.status_code == 400
    assert len(cart.lines) == 1
    assert cart.customer == MEMBER
    assert SaleJournal.query.count() == 0


def test_unreachable_backend_uses_generic_message(app, backend):
    backend.fail_sale = BackendError('Backend is unreachable. Please try again.')
    with pytest.raises(SubmissionError) as exc:
        submit(backend, filled_cart())
    assert exc.value.message == 'Failed to process payment.'


def test_server_error_maps_to_bad_gateway(app, backend):
    backend.fail_sale = BackendError(None, 500)
    with pytest.raises(SubmissionError) as exc:
        submit(backend, filled_cart())
    assert exc.value.status_code == 502


def test_auth_failure_propagates(app, backend):
    backend.fail_sale = BackendAuthError()
    with pytest.raises(BackendAuthError):
        submit(backend, filled_cart())


def test_receipt_fetch_failure_is_soft(app, backend):
    backend.fail_receipt = True
    cart = filled_cart()
    result = submit(backend, cart)

    assert result.sale_id == 100
    assert not result.receipt_available
    assert cart.is_empty
    assert SaleJournal.query.filter_by(backend_sale_id=100).one().receipt_printed is False
