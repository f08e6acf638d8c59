"""
pos_terminal/pos/cart.py
------------------------
The cashier's cart: ordered line items plus the customer, discount and
loyalty selections that are reset together.

Cart structure stored in Flask session under key 'pos_cart':
{
    "lines": [
        {
            "product_id":      int,
            "name":            str,
            "sku":             str,
            "quantity":        int,
            "unit_price":      str,   ← stored as string to survive JSON serialisation
            "line_discount":   str,
            "available_stock": int    ← captured when the line was created
        },
        ...
    ],
    "customer":         {...} | None,
    "discount":         {...} | None,
    "use_points":       bool,
    "points_to_redeem": int,
    "notes":            str
}

All money values are kept as strings in the session and converted
to Decimal when the cart is loaded.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from flask import session

from pos_terminal.errors import OutOfStockError, StockLimitError, LineNotFoundError
from pos_terminal.pos.discounts import DiscountPolicy
from pos_terminal.utils.money import ZERO, money_str


CART_KEY = 'pos_cart'


@dataclass
class CartLine:
    product_id:      int
    name:            str
    sku:             str
    quantity:        int
    unit_price:      Decimal
    available_stock: int
    line_discount:   Decimal = ZERO

    @property
    def line_total(self) -> Decimal:
        """quantity × unit_price − line_discount, floored at zero."""
        total = Decimal(self.quantity) * self.unit_price - self.line_discount
        return max(ZERO, total)

    def to_dict(self) -> dict:
        return {
            'product_id':      self.product_id,
            'name':            self.name,
            'sku':             self.sku,
            'quantity':        self.quantity,
            'unit_price':      money_str(self.unit_price),
            'line_discount':   money_str(self.line_discount),
            'available_stock': self.available_stock,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CartLine':
        return cls(
            product_id=int(data['product_id']),
            name=data.get('name', ''),
            sku=data.get('sku', ''),
            quantity=int(data['quantity']),
            unit_price=Decimal(data['unit_price']),
            available_stock=int(data['available_stock']),
            line_discount=Decimal(data.get('line_discount', '0')),
        )


@dataclass
class CustomerRef:
    """Read-only snapshot of a backend customer (loyalty balance included)."""
    id:             int
    name:           str
    is_member:      bool = False
    loyalty_points: int  = 0
    phone:          str  = ''

    @classmethod
    def from_api(cls, data: dict) -> 'CustomerRef':
        return cls(
            id=int(data['id']),
            name=data.get('name', ''),
            is_member=bool(data.get('is_member', False)),
            loyalty_points=int(data.get('loyalty_points') or 0),
            phone=data.get('phone') or '',
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id, 'name': self.name, 'is_member': self.is_member,
            'loyalty_points': self.loyalty_points, 'phone': self.phone,
        }


@dataclass
class Cart:
    lines:            List[CartLine]         = field(default_factory=list)
    customer:         Optional[CustomerRef]  = None
    discount:         Optional[DiscountPolicy] = None
    use_points:       bool = False
    points_to_redeem: int  = 0
    notes:            str  = ''

    # ── Queries ───────────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), start=ZERO)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def get_line(self, product_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    # ── Mutations ─────────────────────────────────────────────────

    def add_line(self, item) -> CartLine:
        """
        Add one unit of a stock item (anything with product_id, name, sku,
        unit_price and available_stock).

        Raises StockLimitError when the existing line is already at the
        captured stock level, OutOfStockError for a new line with no stock.
        The cart is unchanged when either is raised.
        """
        line = self.get_line(item.product_id)
        if line is not None:
            if line.quantity >= line.available_stock:
                raise StockLimitError(line.available_stock)
            line.quantity += 1
            return line

        available = int(item.available_stock or 0)
        if available <= 0:
            raise OutOfStockError(f'{item.name} is out of stock.')

        line = CartLine(
            product_id=item.product_id,
            name=item.name,
            sku=item.sku,
            quantity=1,
            unit_price=item.unit_price,
            available_stock=available,
        )
        self.lines.append(line)
        return line

    def update_quantity(self, product_id: int, delta: int) -> Optional[CartLine]:
        """
        Change a line's quantity by `delta`, clamped at zero.
        An increase past available stock is rejected whole.
        Returns the line, or None when it was removed.
        """
        line = self.get_line(product_id)
        if line is None:
            raise LineNotFoundError()

        new_quantity = max(0, line.quantity + delta)
        if delta > 0 and new_quantity > line.available_stock:
            raise StockLimitError(line.available_stock)

        if new_quantity == 0:
            self.lines.remove(line)
            return None
        line.quantity = new_quantity
        return line

    def remove_line(self, product_id: int) -> None:
        self.lines = [l for l in self.lines if l.product_id != product_id]

    def clear(self) -> None:
        """Empty the cart and every selection tied to it."""
        self.lines = []
        self.customer = None
        self.discount = None
        self.use_points = False
        self.points_to_redeem = 0
        self.notes = ''

    def clear_lines(self) -> None:
        """Store switch: drop the lines, keep customer and discount."""
        self.lines = []
        self.use_points = False
        self.points_to_redeem = 0

    def set_customer(self, customer: Optional[CustomerRef],
                     member_discount: Optional[DiscountPolicy] = None) -> None:
        """
        Attach (or detach with None) a customer. Discount and points
        redemption always reset; a member gets `member_discount` applied.
        """
        self.customer = customer
        self.discount = None
        self.use_points = False
        self.points_to_redeem = 0
        if customer is not None and customer.is_member and member_discount is not None:
            self.discount = member_discount

    # ── Session round-trip ────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            'lines':            [line.to_dict() for line in self.lines],
            'customer':         self.customer.to_dict() if self.customer else None,
            'discount':         self.discount.to_dict() if self.discount else None,
            'use_points':       self.use_points,
            'points_to_redeem': self.points_to_redeem,
            'notes':            self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Cart':
        data = data or {}
        customer = data.get('customer')
        discount = data.get('discount')
        return cls(
            lines=[CartLine.from_dict(l) for l in data.get('lines', [])],
            customer=CustomerRef.from_api(customer) if customer else None,
            discount=DiscountPolicy.from_api(discount) if discount else None,
            use_points=bool(data.get('use_points', False)),
            points_to_redeem=int(data.get('points_to_redeem', 0)),
            notes=data.get('notes', ''),
        )


# ── Flask session helpers ─────────────────────────────────────────

def get_cart() -> Cart:
    """Return the current cart (may be empty)."""
    return Cart.from_dict(session.get(CART_KEY))


def save_cart(cart: Cart) -> None:
    session[CART_KEY] = cart.to_dict()
    session.modified = True


def discard_cart() -> None:
    session.pop(CART_KEY, None)
    session.modified = True
