"""
pos_terminal/pos/settings.py
----------------------------
Immutable terminal configuration passed explicitly into the pricing engine.

Built from the backend /settings payload (a flat key → string map) layered
over the local defaults in app.config. A backend value that does not parse
as a positive number leaves the local default in place.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from decimal import Decimal

from pos_terminal.utils.money import to_decimal, money_str


@dataclass(frozen=True)
class PosSettings:
    tax_rate:             Decimal = Decimal('11')
    point_value:          Decimal = Decimal('100')
    loyalty_min_purchase: Decimal = Decimal('10000')
    loyalty_min_redeem:   int     = 10
    currency_symbol:      str     = 'Rp'
    company_name:         str     = ''
    company_address:      str     = ''
    receipt_header:       str     = ''
    receipt_footer:       str     = ''

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    def from_config(cls, config) -> 'PosSettings':
        return cls(
            tax_rate=to_decimal(config.get('DEFAULT_TAX_RATE'), Decimal('11')),
            point_value=to_decimal(config.get('DEFAULT_POINT_VALUE'), Decimal('100')),
            loyalty_min_purchase=to_decimal(config.get('DEFAULT_LOYALTY_MIN_PURCHASE'),
                                            Decimal('10000')),
            loyalty_min_redeem=int(to_decimal(config.get('DEFAULT_LOYALTY_MIN_REDEEM'),
                                              Decimal('10'))),
        )

    @classmethod
    def from_backend(cls, data: dict, base: 'PosSettings' = None) -> 'PosSettings':
        """Overlay backend settings onto `base` (or the built-in defaults)."""
        base = base or cls()
        data = data or {}
        min_redeem = _positive(data.get('loyalty_min_redeem'), None)
        return cls(
            tax_rate=_positive(data.get('tax_rate'), base.tax_rate),
            point_value=_positive(data.get('loyalty_point_value'), base.point_value),
            loyalty_min_purchase=_positive(data.get('loyalty_min_purchase'),
                                           base.loyalty_min_purchase),
            loyalty_min_redeem=int(min_redeem) if min_redeem is not None else base.loyalty_min_redeem,
            currency_symbol=data.get('currency_symbol') or base.currency_symbol,
            company_name=data.get('company_name') or base.company_name,
            company_address=data.get('company_address') or base.company_address,
            receipt_header=data.get('receipt_header') or base.receipt_header,
            receipt_footer=data.get('receipt_footer') or base.receipt_footer,
        )

    # ── Session round-trip ────────────────────────────────────────

    def to_dict(self) -> dict:
        out = asdict(self)
        for key in ('tax_rate', 'point_value', 'loyalty_min_purchase'):
            out[key] = money_str(out[key])
        return out

    @classmethod
    def from_dict(cls, data: dict) -> 'PosSettings':
        return cls(
            tax_rate=Decimal(data['tax_rate']),
            point_value=Decimal(data['point_value']),
            loyalty_min_purchase=Decimal(data['loyalty_min_purchase']),
            loyalty_min_redeem=int(data['loyalty_min_redeem']),
            currency_symbol=data.get('currency_symbol', 'Rp'),
            company_name=data.get('company_name', ''),
            company_address=data.get('company_address', ''),
            receipt_header=data.get('receipt_header', ''),
            receipt_footer=data.get('receipt_footer', ''),
        )


def _positive(raw, fallback):
    try:
        value = to_decimal(raw)
    except ValueError:
        return fallback
    return value if value > 0 else fallback
