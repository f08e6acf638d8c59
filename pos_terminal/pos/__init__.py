"""
pos_terminal/pos/__init__.py
----------------------------
POS screen blueprint: cart, pricing, loyalty, checkout, receipts.
URL prefix: /pos
"""
from flask import Blueprint

pos = Blueprint('pos', __name__)

from pos_terminal.pos import routes  # noqa: E402, F401
from pos_terminal.pos import models  # noqa: E402, F401
