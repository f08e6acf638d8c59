"""
pos_terminal/auth/decorators.py
-------------------------------
Reusable route-protection decorators.
Usage:
    from pos_terminal.auth.decorators import login_required

    @pos.route('/cart/add', methods=['POST'])
    @login_required
    def add_item():
        ...
"""
from functools import wraps
from flask import session, jsonify

ADMIN_ROLE_MARKERS = ('admin', 'super', 'owner', 'manager')


def is_admin_role(role_name: str) -> bool:
    """Admins, owners and managers may pick any store at the terminal."""
    role_name = (role_name or '').lower()
    return any(marker in role_name for marker in ADMIN_ROLE_MARKERS)


def login_required(f):
    """
    Answer 401 if the cashier has no backend token in the session.
    The token itself is validated by the backend on each call.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'token' not in session:
            return jsonify({'error': 'Please log in to access the terminal.'}), 401
        return f(*args, **kwargs)
    return decorated
