import uuid

from flask import request, session, jsonify, current_app

from pos_terminal.auth import auth
from pos_terminal.auth.decorators import is_admin_role
from pos_terminal.backend import get_backend
from pos_terminal.errors import BackendAuthError


@auth.route('/login', methods=['POST'])
def login():
    """
    Authenticate against the backend and open a terminal session.
    Accepts JSON or form fields: username, password.
    """
    data = request.get_json(silent=True) or request.form
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify({'error': 'Username and password are required.'}), 400

    try:
        result = get_backend().with_token(None).login(username, password)
    except BackendAuthError as exc:
        current_app.logger.warning(f"Failed login attempt for username: {username}")
        return jsonify({'error': exc.detail or 'Invalid username or password.'}), 401

    user = result.get('user') or {}
    role = (user.get('role') or {}).get('name', '')

    # ── Populate session: token, identity, store lock ──
    session.clear()
    session['token']        = result.get('token')
    session['username']     = user.get('username', username)
    session['full_name']    = user.get('full_name') or ''
    session['role']         = role
    session['is_admin']     = is_admin_role(role)
    session['store_id']     = user.get('store_id')
    session['terminal_key'] = uuid.uuid4().hex
    session.permanent       = True

    current_app.logger.info(f"User {session['username']} logged in (terminal {session['terminal_key']}).")
    return jsonify({
        'username':  session['username'],
        'full_name': session['full_name'],
        'role':      role,
        'is_admin':  session['is_admin'],
        'store_id':  session['store_id'],
        'store':     user.get('store'),
    })


@auth.route('/logout', methods=['POST'])
def logout():
    """Clear the session."""
    username = session.get('username')
    session.clear()
    if username:
        current_app.logger.info(f"User {username} logged out.")
    return jsonify({'message': 'You have been logged out.'})
