from decimal import Decimal

from flask import request, session, jsonify, current_app, Response

from pos_terminal import db
from pos_terminal.pos import pos
from pos_terminal.pos import catalog
from pos_terminal.pos.cart import Cart, CustomerRef, get_cart, save_cart
from pos_terminal.pos.discounts import (
    DiscountPolicy, eligible_policies, select_policy, member_auto_discount,
)
from pos_terminal.pos.loyalty import clamp_points
from pos_terminal.pos.models import SaleJournal
from pos_terminal.pos.payments import CHECKOUT_METHODS, parse_method
from pos_terminal.pos.receipt import render_receipt
from pos_terminal.pos.settings import PosSettings
from pos_terminal.pos.submission import submit_sale, validate_cart
from pos_terminal.pos.totals import compute_totals
from pos_terminal.auth.decorators import login_required
from pos_terminal.backend import get_backend
from pos_terminal.errors import (
    PosError, BackendError, DiscountNotEligibleError, NoStoreAssignedError,
    ProductNotFoundError, RedemptionUnavailableError, StoreLockedError,
)
from pos_terminal.utils.money import money_str, to_decimal


SETTINGS_KEY = 'pos_settings'


# ── Helpers ───────────────────────────────────────────────────────

def _payload() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


def _int_field(data: dict, key: str, required: bool = True):
    raw = data.get(key)
    if raw is None or raw == '':
        if required:
            raise PosError(f'{key} is required.')
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise PosError(f'{key} must be a whole number.')


def _amount(raw):
    if raw is None or raw == '':
        return None
    try:
        amount = to_decimal(raw)
    except ValueError:
        raise PosError('Amount must be a valid number.')
    if amount < 0:
        raise PosError('Amount cannot be negative.')
    return amount


def _terminal_key() -> str:
    return session['terminal_key']


def _store_id():
    """Store of the last catalog load started at this terminal."""
    return catalog.current_store_id(_terminal_key())


def _settings() -> PosSettings:
    """Terminal settings, fetched from the backend once per session."""
    cached = session.get(SETTINGS_KEY)
    if cached:
        return PosSettings.from_dict(cached)
    base = PosSettings.from_config(current_app.config)
    settings = PosSettings.from_backend(get_backend().get_settings(), base)
    session[SETTINGS_KEY] = settings.to_dict()
    return settings


def _tax_state():
    enabled = session.get('tax_enabled', True)
    rate = session.get('tax_rate')
    return enabled, (Decimal(rate) if rate is not None else None)


def _totals(cart: Cart, tendered=None):
    enabled, rate = _tax_state()
    return compute_totals(cart, _settings(), tax_enabled=enabled, tax_rate=rate, tendered=tendered)


def _active_policies(customer_id=None):
    rows = get_backend().active_discounts(store_id=_store_id(), customer_id=customer_id)
    return [DiscountPolicy.from_api(row) for row in rows]


def _state(cart: Cart, tendered=None) -> dict:
    totals = _totals(cart, tendered)
    state = cart.to_dict()
    for line_data, line in zip(state['lines'], cart.lines):
        line_data['line_total'] = money_str(line.line_total)
    state['store_id'] = _store_id()
    state['tax_enabled'] = session.get('tax_enabled', True)
    state['totals'] = totals.to_dict()
    return state


def _ensure_store_access() -> None:
    if not session.get('is_admin') and not session.get('store_id'):
        raise NoStoreAssignedError()


def _select_store(store_id: int) -> bool:
    limit = current_app.config.get('STORE_INVENTORY_LIMIT', 1000)
    return catalog.load_store_catalog(get_backend(), _terminal_key(), store_id, limit=limit)


# ── Bootstrap ─────────────────────────────────────────────────────

@pos.route('/')
@login_required
def index():
    """Everything the POS screen needs on load."""
    _ensure_store_access()
    client = get_backend()

    session.pop(SETTINGS_KEY, None)
    settings = _settings()
    stores    = client.list_stores()
    customers = client.list_customers(status='active')

    # Cashier with an assigned store is locked to it; admin with a
    # single store gets it preselected. A load that failed earlier is retried.
    store_id = _store_id()
    if store_id is None:
        if session.get('store_id'):
            _select_store(int(session['store_id']))
        elif len(stores) == 1:
            _select_store(int(stores[0]['id']))
    elif catalog.load_pending(_terminal_key()):
        _select_store(store_id)

    cart = get_cart()
    discounts = eligible_policies(_active_policies(), cart.customer)

    return jsonify({
        'user': {
            'username':  session.get('username'),
            'full_name': session.get('full_name'),
            'is_admin':  session.get('is_admin', False),
            'store_locked': bool(session.get('store_id')),
        },
        'settings':  settings.to_dict(),
        'stores':    stores,
        'customers': customers,
        'discounts': [d.to_dict() for d in discounts],
        'payment_methods': [{'value': m.value, 'label': m.label} for m in CHECKOUT_METHODS],
        'quick_amounts': current_app.config.get('QUICK_TENDER_AMOUNTS', []),
        'state': _state(cart),
    })


@pos.route('/store', methods=['POST'])
@login_required
def select_store():
    _ensure_store_access()
    store_id = _int_field(_payload(), 'store_id')

    assigned = session.get('store_id')
    if not session.get('is_admin') and assigned and int(assigned) != store_id:
        raise StoreLockedError()

    # Lines belong to the previous store even if the new catalog never arrives.
    cart = get_cart()
    cart.clear_lines()
    save_cart(cart)

    if not _select_store(store_id):
        return jsonify({'error': 'Store selection changed while loading.'}), 409

    return jsonify({'state': _state(cart)})


@pos.route('/products')
@login_required
def products():
    items = catalog.search(_terminal_key(), request.args.get('q', ''))
    return jsonify([item.to_dict() for item in items])


# ── Cart ──────────────────────────────────────────────────────────

@pos.route('/cart/add', methods=['POST'])
@login_required
def add_item():
    """Add by product_id (catalog grid) or code (barcode / SKU scan)."""
    data = _payload()
    product_id = _int_field(data, 'product_id', required=False)
    if product_id is not None:
        item = catalog.find(_terminal_key(), product_id)
    else:
        code = (data.get('code') or '').strip()
        if not code:
            raise PosError('Please enter a product code.')
        item = catalog.find_by_code(_terminal_key(), code)
    if item is None:
        raise ProductNotFoundError()

    cart = get_cart()
    cart.add_line(item)
    save_cart(cart)
    return jsonify({'state': _state(cart)})


@pos.route('/cart/update', methods=['POST'])
@login_required
def update_item():
    data = _payload()
    product_id = _int_field(data, 'product_id')
    delta = _int_field(data, 'delta')

    cart = get_cart()
    cart.update_quantity(product_id, delta)
    save_cart(cart)
    return jsonify({'state': _state(cart)})


@pos.route('/cart/remove', methods=['POST'])
@login_required
def remove_item():
    product_id = _int_field(_payload(), 'product_id')
    cart = get_cart()
    cart.remove_line(product_id)
    save_cart(cart)
    return jsonify({'state': _state(cart)})


@pos.route('/cart/clear', methods=['POST'])
@login_required
def clear():
    cart = get_cart()
    cart.clear()
    save_cart(cart)
    return jsonify({'state': _state(cart)})


# ── Customer / discount / tax / points ────────────────────────────

@pos.route('/customer', methods=['POST'])
@login_required
def attach_customer():
    """Attach a customer (or detach with customer_id null → walk-in)."""
    customer_id = _int_field(_payload(), 'customer_id', required=False)
    cart = get_cart()

    if customer_id is None:
        cart.set_customer(None)
        applied = None
    else:
        customer = CustomerRef.from_api(get_backend().get_customer(customer_id))
        auto = None
        if customer.is_member:
            auto = member_auto_discount(
                eligible_policies(_active_policies(customer.id), customer)
            )
        cart.set_customer(customer, member_discount=auto)
        applied = auto

    save_cart(cart)
    return jsonify({
        'state': _state(cart),
        'auto_discount': applied.to_dict() if applied else None,
    })


@pos.route('/discount', methods=['POST'])
@login_required
def apply_discount():
    """Select an active discount by id, or resolve a code through the backend."""
    data = _payload()
    cart = get_cart()
    customer_id = cart.customer.id if cart.customer else None

    discount_id = _int_field(data, 'discount_id', required=False)
    if discount_id is not None:
        policy = select_policy(_active_policies(customer_id), discount_id, cart.customer)
    else:
        code = (data.get('code') or '').strip()
        if not code:
            raise PosError('Discount code is required.')
        result = get_backend().validate_discount(
            code, customer_id=customer_id, amount=cart.subtotal, store_id=_store_id(),
        )
        if not result.get('valid') or not result.get('discount'):
            raise DiscountNotEligibleError('Invalid discount code.')
        policy = DiscountPolicy.from_api(result['discount'])

    cart.discount = policy
    save_cart(cart)
    current_app.logger.info(f"Discount {policy.name!r} applied at terminal {_terminal_key()}")
    return jsonify({'state': _state(cart)})


@pos.route('/discount', methods=['DELETE'])
@login_required
def remove_discount():
    cart = get_cart()
    cart.discount = None
    save_cart(cart)
    return jsonify({'state': _state(cart)})


@pos.route('/tax', methods=['POST'])
@login_required
def set_tax():
    data = _payload()
    if 'enabled' in data:
        session['tax_enabled'] = str(data['enabled']).lower() in ('1', 'true', 'on', 'yes')
    if data.get('rate') not in (None, ''):
        rate = _amount(data['rate'])
        if rate > 100:
            raise PosError('Tax rate cannot exceed 100%.')
        session['tax_rate'] = money_str(rate)
    return jsonify({'state': _state(get_cart())})


@pos.route('/points', methods=['POST'])
@login_required
def set_points():
    """Toggle loyalty redemption and choose how many points to use."""
    data = _payload()
    enabled = str(data.get('enabled', False)).lower() in ('1', 'true', 'on', 'yes')
    cart = get_cart()

    if enabled:
        totals = _totals(cart)
        if not totals.can_redeem_points:
            raise RedemptionUnavailableError()
        requested = _int_field(data, 'points', required=False) or 0
        cart.use_points = True
        cart.points_to_redeem = clamp_points(requested, totals.max_redeemable_points)
    else:
        cart.use_points = False
        cart.points_to_redeem = 0

    save_cart(cart)
    return jsonify({'state': _state(cart)})


@pos.route('/notes', methods=['POST'])
@login_required
def set_notes():
    cart = get_cart()
    cart.notes = (_payload().get('notes') or '').strip()[:500]
    save_cart(cart)
    return jsonify({'state': _state(cart)})


@pos.route('/totals')
@login_required
def totals():
    tendered = _amount(request.args.get('tendered'))
    return jsonify(_totals(get_cart(), tendered).to_dict())


# ── Checkout ──────────────────────────────────────────────────────

@pos.route('/checkout', methods=['POST'])
@login_required
def checkout():
    """
    Finalise the sale:
      1. Validate store / cart / tender locally
      2. POST the draft to the backend
      3. Fetch the full sale for the receipt (soft failure)
      4. Reset the cart
      5. Reload the store catalog so stock reflects the sale
    """
    data = _payload()
    try:
        method = parse_method(data.get('payment_method'))
    except ValueError as exc:
        raise PosError(str(exc))
    tendered = _amount(data.get('tendered'))

    cart = get_cart()
    store_id = _store_id()
    validate_cart(store_id, cart)

    totals = _totals(cart, tendered)
    client = get_backend()

    result = submit_sale(
        client, cart, totals, store_id, method, tendered,
        terminal_key=_terminal_key(), cashier=session.get('username'),
    )
    save_cart(cart)

    try:
        _select_store(store_id)
    except BackendError as exc:
        current_app.logger.warning(f"Catalog reload after sale {result.sale_id} failed: {exc.message}")

    receipt_text = render_receipt(result.receipt, _settings()) if result.receipt else None
    return jsonify({
        'sale_id':           result.sale_id,
        'sale_number':       result.sale_number,
        'total_amount':      money_str(result.total_amount),
        'paid_amount':       money_str(result.paid_amount),
        'change_amount':     money_str(result.change_amount),
        'points_earned':     result.points_earned,
        'receipt_available': result.receipt_available,
        'receipt':           receipt_text,
        'state':             _state(cart),
    }), 201


# ── History / receipts ────────────────────────────────────────────

@pos.route('/history')
@login_required
def history():
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 10, type=int)
    return jsonify(get_backend().list_sales(
        store_id=_store_id(), page=page, limit=limit,
        search=request.args.get('search', ''),
    ))


@pos.route('/receipt/<int:sale_id>')
@login_required
def receipt(sale_id):
    """Printable text receipt; marks the journal entry as printed."""
    sale = get_backend().get_sale(sale_id)
    text = render_receipt(sale, _settings())

    entry = SaleJournal.query.filter_by(backend_sale_id=sale_id).first()
    if entry is not None and not entry.receipt_printed:
        entry.receipt_printed = True
        db.session.commit()

    return Response(text, mimetype='text/plain')


@pos.route('/print-queue')
@login_required
def print_queue():
    """Sales from this store whose receipt was never shown."""
    q = SaleJournal.query.filter_by(receipt_printed=False)
    store_id = _store_id()
    if store_id:
        q = q.filter_by(store_id=store_id)
    entries = q.order_by(SaleJournal.created_at.desc()).all()
    return jsonify([e.to_dict() for e in entries])


@pos.route('/mark-printed/<int:sale_id>', methods=['POST'])
@login_required
def mark_printed(sale_id):
    entry = SaleJournal.query.filter_by(backend_sale_id=sale_id).first()
    if entry is None:
        return jsonify({'error': 'Sale not found in journal.'}), 404
    entry.receipt_printed = True
    db.session.commit()
    return '', 204
