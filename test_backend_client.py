"""
test_backend_client.py — BackendClient against a mocked requests.Session.
Run: pytest test_backend_client.py -v
"""
import threading

import pytest
import requests
from unittest.mock import Mock

from pos_terminal.backend.client import BackendClient
from pos_terminal.errors import BackendError, BackendAuthError


def response(status=200, body=None, content=True):
    resp = Mock()
    resp.status_code = status
    resp.ok = status < 400
    resp.content = b'{}' if content else b''
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body if body is not None else {}
    return resp


@pytest.fixture
def http():
    return Mock(spec=requests.Session)


@pytest.fixture
def api(app, http):
    return BackendClient('http://backend.test/api/', timeout=5, token='tok', http=http)


def test_bearer_token_and_timeout(api, http):
    http.request.return_value = response(body={'data': [{'id': 1}]})
    assert api.list_stores() == [{'id': 1}]

    args, kwargs = http.request.call_args
    assert args == ('GET', 'http://backend.test/api/stores')
    assert kwargs['headers']['Authorization'] == 'Bearer tok'
    assert kwargs['timeout'] == 5


def test_with_token_shares_session(api, http):
    other = api.with_token('tok-2')
    assert other.http is http
    assert other.headers['Authorization'] == 'Bearer tok-2'
    assert 'Authorization' not in api.with_token(None).headers


def test_store_inventory_params(api, http):
    http.request.return_value = response(body={'data': []})
    api.store_inventory(3, limit=1000)
    assert http.request.call_args.kwargs['params'] == {'store_id': 3, 'limit': 1000}


def test_validate_discount_defaults_to_get(api, http):
    http.request.return_value = response(body={'valid': True, 'discount': {'id': 1}})
    result = api.validate_discount('HEMAT10', customer_id=7, amount='50000', store_id=1)
    assert result['valid'] is True
    args, kwargs = http.request.call_args
    assert args[0] == 'GET'
    assert kwargs['params'] == {'code': 'HEMAT10', 'customer_id': '7',
                                'amount': '50000', 'store_id': '1'}


def test_validate_discount_post_when_configured(app, http):
    api = BackendClient('http://backend.test/api', discount_validate_method='post', http=http)
    http.request.return_value = response(body={'valid': True})
    api.validate_discount('HEMAT10')
    args, kwargs = http.request.call_args
    assert args[0] == 'POST'
    assert kwargs['json'] == {'code': 'HEMAT10'}


def test_create_sale_unwraps_data(api, http):
    http.request.return_value = response(201, {'data': {'id': 55, 'sale_number': 'S-55'}})
    assert api.create_sale({'store_id': 1})['id'] == 55


def test_list_sales_keeps_pagination(api, http):
    body = {'data': [], 'pagination': {'page': 2}}
    http.request.return_value = response(body=body)
    assert api.list_sales(store_id=1, page=2) == body


def test_unauthorized_raises_auth_error(api, http):
    http.request.return_value = response(401, {'error': 'token expired'})
    with pytest.raises(BackendAuthError) as exc:
        api.get_settings()
    assert exc.value.detail == 'token expired'
    assert exc.value.status_code == 401


def test_client_error_carries_backend_message(api, http):
    http.request.return_value = response(400, {'error': 'insufficient stock'})
    with pytest.raises(BackendError) as exc:
        api.create_sale({})
    assert exc.value.message == 'insufficient stock'
    assert exc.value.status_code == 400
    assert exc.value.backend_status == 400


def test_server_error_without_body(api, http):
    http.request.return_value = response(500, ValueError('no json'))
    with pytest.raises(BackendError) as exc:
        api.get_sale(1)
    assert exc.value.detail is None
    assert exc.value.status_code == 502
    assert 'Backend error (500)' in exc.value.message


def test_transport_failure(api, http):
    http.request.side_effect = requests.ConnectionError('refused')
    with pytest.raises(BackendError, match='unreachable'):
        api.list_customers()


def test_invalid_json_body(api, http):
    http.request.return_value = response(200, ValueError('bad json'))
    with pytest.raises(BackendError, match='invalid response'):
        api.get_settings()


def test_empty_body_is_empty_result(api, http):
    http.request.return_value = response(204, content=False)
    assert api.get_customer(7) == {}


def test_each_thread_gets_its_own_session(app):
    api = BackendClient('http://backend.test/api')
    bound = api.with_token('tok')
    assert bound.http is api.http
    assert isinstance(api.http, requests.Session)

    seen = []
    worker = threading.Thread(target=lambda: seen.append(bound.with_token('tok-2').http))
    worker.start()
    worker.join()
    assert seen[0] is not api.http
