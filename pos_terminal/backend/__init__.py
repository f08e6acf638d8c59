"""
pos_terminal/backend
--------------------
Access to the retail backend. One BackendClient is created per app and
stored in app.extensions['backend']; request handlers bind the cashier's
bearer token with get_backend().
"""
from flask import current_app, session

from pos_terminal.backend.client import BackendClient

EXTENSION_KEY = 'backend'


def init_backend(app, client: BackendClient = None) -> None:
    app.extensions[EXTENSION_KEY] = client or BackendClient.from_app(app)


def get_backend() -> BackendClient:
    """The app's client bound to the logged-in cashier's token."""
    client = current_app.extensions[EXTENSION_KEY]
    return client.with_token(session.get('token'))
