from flask import Blueprint

auth = Blueprint('auth', __name__)

from pos_terminal.auth import routes   # noqa: F401, E402
