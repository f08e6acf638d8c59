from datetime import datetime
from decimal import Decimal
from pos_terminal import db
from pos_terminal.utils.money import money_str


class TerminalState(db.Model):
    """
    One row per cashier terminal (keyed by the login's terminal_key).

    load_generation is bumped every time a store catalog load starts;
    loaded_generation records which load the current snapshot came from.
    A load whose token no longer equals load_generation is stale.
    """
    __tablename__ = 'terminal_states'

    terminal_key      = db.Column(db.String(64), primary_key=True)
    store_id          = db.Column(db.Integer, nullable=True)
    load_generation   = db.Column(db.Integer, nullable=False, default=0)
    loaded_generation = db.Column(db.Integer, nullable=False, default=0)
    updated_at        = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                                  onupdate=datetime.utcnow)

    snapshots = db.relationship('StockSnapshot', backref='terminal', lazy='dynamic',
                                cascade='all, delete-orphan')

    def __repr__(self):
        return (f"<TerminalState {self.terminal_key} store={self.store_id} "
                f"gen={self.loaded_generation}/{self.load_generation}>")


class StockSnapshot(db.Model):
    """
    A product offered at the terminal's store, with stock as of the last
    accepted catalog load. Cart lines copy price and stock from here.
    """
    __tablename__ = 'stock_snapshots'

    id              = db.Column(db.Integer, primary_key=True)
    terminal_key    = db.Column(db.String(64), db.ForeignKey('terminal_states.terminal_key'),
                                nullable=False, index=True)
    product_id      = db.Column(db.Integer, nullable=False)
    name            = db.Column(db.String(200), nullable=False)
    sku             = db.Column(db.String(100), nullable=False, default='')
    barcode         = db.Column(db.String(100), nullable=True)
    unit_price      = db.Column(db.Numeric(14, 2), nullable=False)
    available_stock = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint('terminal_key', 'product_id', name='uq_snapshot_terminal_product'),
    )

    def __repr__(self):
        return f"<StockSnapshot {self.sku!r} avail={self.available_stock}>"


class SaleJournal(db.Model):
    """
    Local record of a sale this terminal submitted successfully.
    The backend owns the sale; this row backs the print queue and the
    shift overview. receipt_printed stays False when the receipt fetch
    after submission failed.
    """
    __tablename__ = 'sale_journal'

    id              = db.Column(db.Integer, primary_key=True)
    backend_sale_id = db.Column(db.Integer, nullable=False, unique=True, index=True)
    sale_number     = db.Column(db.String(50), nullable=True)
    terminal_key    = db.Column(db.String(64), nullable=False, index=True)
    store_id        = db.Column(db.Integer, nullable=False)
    customer_id     = db.Column(db.Integer, nullable=True)
    cashier         = db.Column(db.String(120), nullable=True)
    total_amount    = db.Column(db.Numeric(14, 2), nullable=False)
    paid_amount     = db.Column(db.Numeric(14, 2), nullable=False)
    change_amount   = db.Column(db.Numeric(14, 2), nullable=False)
    payment_method  = db.Column(db.String(20), nullable=False, default='cash')
    points_redeemed = db.Column(db.Integer, nullable=False, default=0)
    points_earned   = db.Column(db.Integer, nullable=False, default=0)
    receipt_printed = db.Column(db.Boolean, nullable=False, default=False)
    created_at      = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'sale_id':         self.backend_sale_id,
            'sale_number':     self.sale_number,
            'store_id':        self.store_id,
            'customer_id':     self.customer_id,
            'cashier':         self.cashier,
            'total_amount':    money_str(Decimal(str(self.total_amount))),
            'paid_amount':     money_str(Decimal(str(self.paid_amount))),
            'change_amount':   money_str(Decimal(str(self.change_amount))),
            'payment_method':  self.payment_method,
            'points_redeemed': self.points_redeemed,
            'points_earned':   self.points_earned,
            'receipt_printed': self.receipt_printed,
            'created_at':      self.created_at.isoformat(),
        }

    def __repr__(self):
        return f"<SaleJournal sale={self.backend_sale_id} printed={self.receipt_printed}>"
