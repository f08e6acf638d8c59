"""
pos_terminal/pos/catalog.py
---------------------------
Per-terminal stock catalog for the selected store.

Loading
───────
Selecting a store (or finishing a sale) reloads that store's inventory
from the backend. A slow response for an older selection must not
overwrite a newer one, so every load carries a generation token:

1. begin_load() locks the terminal's TerminalState row
   (SELECT … FOR UPDATE), bumps load_generation, drops the previous
   store's snapshot and commits. The new value is the load's token.
   Until a load is accepted the terminal offers no products, so a
   failed fetch never leaves one store's catalog under another's id.

2. The backend call runs with no lock held.

3. commit_load() locks the row again and compares the token with
   load_generation. Equal → the snapshot rows are replaced and
   loaded_generation is set. Different → a newer load started in the
   meantime; the response is discarded.

The lock is row-level on PostgreSQL; SQLite serialises writers anyway.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy import or_

from pos_terminal import db
from pos_terminal.pos.models import TerminalState, StockSnapshot
from pos_terminal.utils.money import ZERO, money_str, to_decimal


@dataclass
class StockItem:
    product_id:      int
    name:            str
    sku:             str
    unit_price:      Decimal
    available_stock: int
    barcode:         Optional[str] = None

    @classmethod
    def from_snapshot(cls, row: StockSnapshot) -> 'StockItem':
        return cls(
            product_id=row.product_id,
            name=row.name,
            sku=row.sku,
            unit_price=Decimal(str(row.unit_price)),
            available_stock=row.available_stock,
            barcode=row.barcode,
        )

    def to_dict(self) -> dict:
        return {
            'product_id':      self.product_id,
            'name':            self.name,
            'sku':             self.sku,
            'barcode':         self.barcode,
            'unit_price':      money_str(self.unit_price),
            'available_stock': self.available_stock,
        }


def parse_inventory(rows: Iterable[dict]) -> List[StockItem]:
    """
    Turn backend store-inventory rows into stock items.
    Rows without a product or with no quantity on hand are skipped;
    available stock is quantity minus reserved quantity.
    """
    items = []
    for row in rows:
        product = row.get('product')
        quantity = to_decimal(row.get('quantity'), ZERO)
        if not product or quantity <= 0:
            continue
        reserved = to_decimal(row.get('reserved_quantity'), ZERO)
        items.append(StockItem(
            product_id=int(product['id']),
            name=product.get('name', ''),
            sku=product.get('sku') or '',
            barcode=product.get('barcode') or None,
            unit_price=to_decimal(product.get('selling_price'), ZERO),
            available_stock=int(quantity - reserved),
        ))
    return items


# ── Generation-token loading ──────────────────────────────────────

def _lock_state(terminal_key: str) -> Optional[TerminalState]:
    return (
        db.session.query(TerminalState)
        .filter(TerminalState.terminal_key == terminal_key)
        .with_for_update()
        .first()
    )


def begin_load(terminal_key: str, store_id: int) -> int:
    """Start a catalog load for `store_id`; returns its generation token."""
    state = _lock_state(terminal_key)
    if state is None:
        state = TerminalState(terminal_key=terminal_key, load_generation=0, loaded_generation=0)
        db.session.add(state)
        db.session.flush()
        state = _lock_state(terminal_key)

    state.load_generation += 1
    state.store_id = store_id
    StockSnapshot.query.filter_by(terminal_key=terminal_key).delete()
    token = state.load_generation
    db.session.commit()
    return token


def commit_load(terminal_key: str, token: int, items: List[StockItem]) -> bool:
    """
    Install `items` as the terminal's catalog if `token` is still current.
    Returns False (and changes nothing) for a stale load.
    """
    state = _lock_state(terminal_key)
    if state is None or state.load_generation != token:
        db.session.rollback()
        current_app.logger.info(
            f"Discarded stale catalog load for terminal {terminal_key} (token {token})"
        )
        return False

    StockSnapshot.query.filter_by(terminal_key=terminal_key).delete()
    for item in items:
        db.session.add(StockSnapshot(
            terminal_key=terminal_key,
            product_id=item.product_id,
            name=item.name,
            sku=item.sku,
            barcode=item.barcode,
            unit_price=item.unit_price,
            available_stock=item.available_stock,
        ))
    state.loaded_generation = token
    db.session.commit()
    return True


def load_store_catalog(client, terminal_key: str, store_id: int, limit: int = 1000) -> bool:
    """Fetch `store_id`'s inventory and install it unless superseded."""
    token = begin_load(terminal_key, store_id)
    rows  = client.store_inventory(store_id, limit=limit)
    items = parse_inventory(rows)
    accepted = commit_load(terminal_key, token, items)
    if accepted:
        current_app.logger.info(
            f"Catalog loaded for store {store_id}: {len(items)} product(s) (token {token})"
        )
    return accepted


# ── Queries ───────────────────────────────────────────────────────

def current_store_id(terminal_key: str) -> Optional[int]:
    state = db.session.get(TerminalState, terminal_key)
    return state.store_id if state else None


def load_pending(terminal_key: str) -> bool:
    """True when the last load started here was never accepted (fetch failed)."""
    state = db.session.get(TerminalState, terminal_key)
    return state is not None and state.loaded_generation != state.load_generation


def search(terminal_key: str, query: str = '') -> List[StockItem]:
    """Case-insensitive name / SKU substring match."""
    q = StockSnapshot.query.filter_by(terminal_key=terminal_key)
    query = (query or '').strip()
    if query:
        pattern = f'%{query}%'
        q = q.filter(or_(StockSnapshot.name.ilike(pattern), StockSnapshot.sku.ilike(pattern)))
    return [StockItem.from_snapshot(r) for r in q.order_by(StockSnapshot.name).all()]


def find(terminal_key: str, product_id: int) -> Optional[StockItem]:
    row = StockSnapshot.query.filter_by(terminal_key=terminal_key, product_id=product_id).first()
    return StockItem.from_snapshot(row) if row else None


def find_by_code(terminal_key: str, code: str) -> Optional[StockItem]:
    """Exact barcode or SKU match, for scanner input."""
    code = (code or '').strip()
    if not code:
        return None
    row = (
        StockSnapshot.query
        .filter_by(terminal_key=terminal_key)
        .filter(or_(StockSnapshot.barcode == code, StockSnapshot.sku == code))
        .first()
    )
    return StockItem.from_snapshot(row) if row else None
