"""
pos_terminal/backend/client.py
------------------------------
HTTP client for the retail backend REST API.

The backend is the sole authority for catalog data, stock levels, the
loyalty ledger and persisted sales. Every call is fire-and-await: no
retries, a per-request timeout, and any non-2xx answer raised as
BackendError carrying the backend's own "error" message when it sent one.

Responses are wrapped by the backend as {"data": ...}; the list/get
helpers unwrap that envelope.
"""
import threading
from typing import Any, Dict, List, Optional

import requests
from flask import current_app

from pos_terminal.errors import BackendError, BackendAuthError


class BackendClient:
    """Thin wrapper over the backend endpoints the POS terminal uses."""

    def __init__(self, base_url: str, timeout: float = 10,
                 token: Optional[str] = None,
                 discount_validate_method: str = 'GET',
                 http: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout  = timeout
        self.token    = token
        self.discount_validate_method = discount_validate_method.upper()
        self._http    = http
        # requests.Session is not thread-safe; gthread workers get one each
        self._local   = threading.local()

    @classmethod
    def from_app(cls, app, token: Optional[str] = None) -> 'BackendClient':
        return cls(
            base_url=app.config['API_BASE_URL'],
            timeout=app.config.get('API_TIMEOUT', 10),
            token=token,
            discount_validate_method=app.config.get('DISCOUNT_VALIDATE_METHOD', 'GET'),
        )

    def with_token(self, token: Optional[str]) -> 'BackendClient':
        """Same connection settings and per-thread sessions, different cashier."""
        bound = BackendClient(self.base_url, self.timeout, token,
                              self.discount_validate_method, self._http)
        bound._local = self._local
        return bound

    @property
    def http(self) -> requests.Session:
        if self._http is not None:
            return self._http
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    # ── Transport ─────────────────────────────────────────────────

    @property
    def headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _request(self, method: str, path: str, *, params=None, json=None) -> Dict[str, Any]:
        url = f'{self.base_url}{path}'
        try:
            response = self.http.request(
                method, url, params=params, json=json,
                headers=self.headers, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            current_app.logger.error(f"[API] {method} {path} failed: {exc}")
            raise BackendError('Backend is unreachable. Please try again.') from exc

        if response.status_code == 401:
            current_app.logger.warning(f"[API] {method} {path} unauthorized")
            raise BackendAuthError(detail=_error_message(response))

        if not response.ok:
            detail = _error_message(response)
            current_app.logger.error(
                f"[API] {method} {path} → {response.status_code}: {detail}"
            )
            raise BackendError(detail or f'Backend error ({response.status_code}).',
                               response.status_code, detail=detail)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            current_app.logger.error(f"[API] {method} {path} returned non-JSON body")
            raise BackendError('Backend returned an invalid response.') from exc

    # ── Auth ──────────────────────────────────────────────────────

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """POST /auth/login → {"token": ..., "user": {...}}"""
        return self._request('POST', '/auth/login',
                             json={'username': username, 'password': password})

    # ── Reference data ────────────────────────────────────────────

    def get_settings(self) -> Dict[str, str]:
        return self._request('GET', '/settings').get('data') or {}

    def list_stores(self) -> List[dict]:
        return self._request('GET', '/stores').get('data') or []

    def list_customers(self, status: str = 'active') -> List[dict]:
        return self._request('GET', '/customers', params={'status': status}).get('data') or []

    def get_customer(self, customer_id: int) -> Dict[str, Any]:
        return self._request('GET', f'/customers/{customer_id}').get('data') or {}

    def list_products(self) -> List[dict]:
        return self._request('GET', '/products').get('data') or []

    def store_inventory(self, store_id: int, limit: int = 1000) -> List[dict]:
        params = {'store_id': store_id, 'limit': limit}
        return self._request('GET', '/inventory/store', params=params).get('data') or []

    # ── Discounts ─────────────────────────────────────────────────

    def active_discounts(self, store_id: Optional[int] = None,
                         customer_id: Optional[int] = None) -> List[dict]:
        params = {}
        if store_id:
            params['store_id'] = store_id
        if customer_id:
            params['customer_id'] = customer_id
        return self._request('GET', '/discounts/active', params=params).get('data') or []

    def validate_discount(self, code: str, customer_id: Optional[int] = None,
                          amount=None, store_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Resolve a discount code.
        Returns {"valid": True, "discount": {...}, "discount_amount": n};
        an invalid code comes back as a 4xx and is raised as BackendError.
        """
        params = {'code': code}
        if customer_id:
            params['customer_id'] = str(customer_id)
        if amount is not None:
            params['amount'] = str(amount)
        if store_id:
            params['store_id'] = str(store_id)

        if self.discount_validate_method == 'POST':
            return self._request('POST', '/discounts/validate', json=params)
        return self._request('GET', '/discounts/validate', params=params)

    # ── Sales ─────────────────────────────────────────────────────

    def create_sale(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /sales → created sale (at least its id)."""
        return self._request('POST', '/sales', json=payload).get('data') or {}

    def get_sale(self, sale_id: int) -> Dict[str, Any]:
        return self._request('GET', f'/sales/{sale_id}').get('data') or {}

    def list_sales(self, store_id: Optional[int] = None, page: int = 1,
                   limit: int = 10, search: str = '') -> Dict[str, Any]:
        params = {'page': page, 'limit': limit}
        if store_id:
            params['store_id'] = store_id
        if search:
            params['search'] = search
        return self._request('GET', '/sales', params=params)


def _error_message(response):
    """The backend's {"error": ...} text, or None."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get('error'):
        return str(body['error'])
    return None
