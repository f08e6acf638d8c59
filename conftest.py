"""
conftest.py — shared fixtures for the POS terminal tests.

FakeBackend stands in for BackendClient: canned responses for every
endpoint the terminal calls, plus a record of what was posted.
Run: pytest -v
"""
import copy

import pytest

from pos_terminal import create_app, db
from pos_terminal.errors import BackendError, BackendAuthError


STORES = [
    {'id': 1, 'name': 'Toko Pusat'},
    {'id': 2, 'name': 'Toko Cabang'},
]

INVENTORY = {
    1: [
        {'product': {'id': 10, 'name': 'Beras 5kg', 'sku': 'BRS-5', 'barcode': '8991001',
                     'selling_price': 50000}, 'quantity': 20, 'reserved_quantity': 2},
        {'product': {'id': 11, 'name': 'Minyak Goreng 1L', 'sku': 'MYK-1', 'barcode': '8991002',
                     'selling_price': 25000}, 'quantity': 1, 'reserved_quantity': 0},
        {'product': {'id': 12, 'name': 'Gula 1kg', 'sku': 'GLA-1', 'barcode': '8991003',
                     'selling_price': 15000}, 'quantity': 0, 'reserved_quantity': 0},
    ],
    2: [
        {'product': {'id': 20, 'name': 'Kopi Bubuk', 'sku': 'KOP-1', 'barcode': '8992001',
                     'selling_price': 30000}, 'quantity': 5, 'reserved_quantity': 0},
    ],
}

CUSTOMERS = {
    7: {'id': 7, 'name': 'Budi', 'is_member': True, 'loyalty_points': 50, 'phone': '0811'},
    8: {'id': 8, 'name': 'Sari', 'is_member': False, 'loyalty_points': 0, 'phone': '0812'},
}

DISCOUNTS = [
    {'id': 1, 'name': 'Promo 10%', 'discount_type': 'percentage', 'discount_value': 10,
     'min_purchase': 0, 'max_discount': 4000, 'applicable_to': 'all', 'code': 'HEMAT10'},
    {'id': 2, 'name': 'Member 5%', 'discount_type': 'percentage', 'discount_value': 5,
     'min_purchase': 0, 'max_discount': 0, 'applicable_to': 'member', 'code': ''},
    {'id': 3, 'name': 'Khusus Sari', 'discount_type': 'fixed', 'discount_value': 2000,
     'min_purchase': 0, 'max_discount': 0, 'applicable_to': 'specific_customer',
     'customer_id': 8, 'code': ''},
]

SETTINGS = {
    'tax_rate': '11',
    'loyalty_point_value': '100',
    'loyalty_min_purchase': '10000',
    'loyalty_min_redeem': '10',
    'currency_symbol': 'Rp',
    'company_name': 'Toko Maju',
    'receipt_footer': 'Terima kasih',
}


class FakeBackend:
    """In-memory replacement for BackendClient."""

    def __init__(self):
        self.token = None
        self.users = {
            'kasir': {'password': 'secret', 'user': {
                'username': 'kasir', 'full_name': 'Kasir Satu', 'store_id': 1,
                'role': {'name': 'cashier'}}},
            'admin': {'password': 'secret', 'user': {
                'username': 'admin', 'full_name': 'Admin', 'store_id': None,
                'role': {'name': 'admin'}}},
        }
        self.settings = dict(SETTINGS)
        self.stores = copy.deepcopy(STORES)
        self.inventory = copy.deepcopy(INVENTORY)
        self.customers = copy.deepcopy(CUSTOMERS)
        self.discounts = copy.deepcopy(DISCOUNTS)
        self.sales = {}
        self.posted = []
        self.fail_sale = None       # BackendError to raise from create_sale
        self.fail_receipt = False
        self.fail_inventory = False
        self.settings_calls = 0
        self.next_sale_id = 100

    def with_token(self, token):
        self.token = token
        return self

    def login(self, username, password):
        account = self.users.get(username)
        if account is None or account['password'] != password:
            raise BackendAuthError(detail='invalid credentials')
        return {'token': f'tok-{username}', 'user': account['user']}

    def get_settings(self):
        self.settings_calls += 1
        return dict(self.settings)

    def list_stores(self):
        return list(self.stores)

    def list_customers(self, status='active'):
        return list(self.customers.values())

    def get_customer(self, customer_id):
        if customer_id not in self.customers:
            raise BackendError('customer not found', 404, detail='customer not found')
        return dict(self.customers[customer_id])

    def store_inventory(self, store_id, limit=1000):
        if self.fail_inventory:
            raise BackendError('Backend is unreachable. Please try again.')
        return copy.deepcopy(self.inventory.get(store_id, []))

    def active_discounts(self, store_id=None, customer_id=None):
        return copy.deepcopy(self.discounts)

    def validate_discount(self, code, customer_id=None, amount=None, store_id=None):
        for discount in self.discounts:
            if discount['code'] and discount['code'] == code:
                return {'valid': True, 'discount': dict(discount)}
        raise BackendError('Invalid discount code', 400, detail='Invalid discount code')

    def create_sale(self, payload):
        if self.fail_sale is not None:
            raise self.fail_sale
        sale_id = self.next_sale_id
        self.next_sale_id += 1
        self.posted.append(payload)
        sale = {
            'id': sale_id,
            'sale_number': f'INV-{sale_id}',
            'created_at': '2026-10-19T10:30:00Z',
            'cashier': {'full_name': 'Kasir Satu'},
            'items': [
                {'product': {'name': f"Produk {i['product_id']}"}, 'quantity': i['quantity'],
                 'unit_price': i['unit_price'], 'total_price': i['total_price']}
                for i in payload['items']
            ],
            'subtotal': sum(i['total_price'] for i in payload['items']),
            'tax_amount': payload['tax_amount'],
            'discount_amount': payload['discount_amount'],
            'total_amount': sum(i['total_price'] for i in payload['items'])
                            + payload['tax_amount'] - payload['discount_amount'],
            'paid_amount': payload['payments'][0]['amount'],
            'payment_method': payload['payments'][0]['payment_method'],
            'notes': payload.get('notes', ''),
        }
        sale['change_amount'] = sale['paid_amount'] - sale['total_amount']
        self.sales[sale_id] = sale
        return {'id': sale_id, 'sale_number': sale['sale_number']}

    def get_sale(self, sale_id):
        if self.fail_receipt:
            raise BackendError('Backend is unreachable. Please try again.')
        return copy.deepcopy(self.sales[sale_id])

    def list_sales(self, store_id=None, page=1, limit=10, search=''):
        data = list(self.sales.values())
        return {'data': data, 'pagination': {'page': page, 'limit': limit, 'total': len(data)}}


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def app(backend):
    app = create_app('testing', backend=backend)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def cashier(client):
    """Logged-in cashier locked to store 1, POS screen loaded."""
    resp = client.post('/auth/login', json={'username': 'kasir', 'password': 'secret'})
    assert resp.status_code == 200
    resp = client.get('/pos/')
    assert resp.status_code == 200
    return client
