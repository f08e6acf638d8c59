"""
pos_terminal/pos/discounts.py
-----------------------------
Discount policies and the discount resolver.

A policy is either a percentage (optionally capped by max_discount) or a
fixed amount, with an optional minimum purchase. Eligibility by customer
(member-only, specific customer) is checked before a policy can be
selected; compute_discount() itself never looks at the customer.

At most one policy is active on a cart.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from pos_terminal.errors import DiscountNotEligibleError
from pos_terminal.utils.money import ZERO, money_str, to_decimal


class DiscountType(str, Enum):
    percentage = 'percentage'
    fixed      = 'fixed'


class ApplicableTo(str, Enum):
    all               = 'all'
    member            = 'member'
    specific_customer = 'specific_customer'


@dataclass(frozen=True)
class DiscountPolicy:
    id:             Optional[int]
    name:           str
    discount_type:  DiscountType
    discount_value: Decimal
    min_purchase:   Decimal = ZERO
    max_discount:   Decimal = ZERO     # 0 = uncapped
    applicable_to:  ApplicableTo = ApplicableTo.all
    customer_id:    Optional[int] = None
    code:           str = ''

    @classmethod
    def from_api(cls, data: dict) -> 'DiscountPolicy':
        """Build from a backend discount payload (or a session snapshot)."""
        customer_id = data.get('customer_id')
        return cls(
            id=int(data['id']) if data.get('id') is not None else None,
            name=data.get('name', ''),
            discount_type=DiscountType(data.get('discount_type', 'percentage')),
            discount_value=to_decimal(data.get('discount_value'), ZERO),
            min_purchase=to_decimal(data.get('min_purchase'), ZERO),
            max_discount=to_decimal(data.get('max_discount'), ZERO),
            applicable_to=ApplicableTo(data.get('applicable_to') or 'all'),
            customer_id=int(customer_id) if customer_id is not None else None,
            code=data.get('code') or '',
        )

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'name':           self.name,
            'code':           self.code,
            'discount_type':  self.discount_type.value,
            'discount_value': money_str(self.discount_value),
            'min_purchase':   money_str(self.min_purchase),
            'max_discount':   money_str(self.max_discount),
            'applicable_to':  self.applicable_to.value,
            'customer_id':    self.customer_id,
        }

    @property
    def label(self) -> str:
        if self.discount_type is DiscountType.percentage:
            return f'{self.discount_value.normalize():f}%'
        return f'Rp {int(self.discount_value):,}'.replace(',', '.')


# ── Resolver ──────────────────────────────────────────────────────

def compute_discount(policy: Optional[DiscountPolicy], base_amount: Decimal) -> Decimal:
    """
    Discount amount for `base_amount` (the cart subtotal).

    - no policy                      → 0
    - base below min_purchase        → 0
    - percentage                     → base × value / 100, capped at
                                       max_discount when that is non-zero
    - fixed                          → discount_value as-is; it may exceed
                                       the base, the totals floor handles it
    """
    if policy is None:
        return ZERO
    if base_amount < policy.min_purchase:
        return ZERO

    if policy.discount_type is DiscountType.percentage:
        amount = base_amount * policy.discount_value / Decimal('100')
        if policy.max_discount > 0 and amount > policy.max_discount:
            amount = policy.max_discount
        return amount

    return policy.discount_value


# ── Eligibility ───────────────────────────────────────────────────

def is_eligible(policy: DiscountPolicy, customer) -> bool:
    """`customer` is a CustomerRef or None (walk-in)."""
    if policy.applicable_to is ApplicableTo.member:
        return customer is not None and customer.is_member
    if policy.applicable_to is ApplicableTo.specific_customer:
        return customer is not None and policy.customer_id == customer.id
    return True


def eligible_policies(policies: Iterable[DiscountPolicy], customer) -> List[DiscountPolicy]:
    return [p for p in policies if is_eligible(p, customer)]


def select_policy(policies: Iterable[DiscountPolicy], discount_id: int, customer) -> DiscountPolicy:
    """Pick a policy by id from the active list, enforcing eligibility."""
    for policy in policies:
        if policy.id == discount_id:
            if not is_eligible(policy, customer):
                if policy.applicable_to is ApplicableTo.member:
                    raise DiscountNotEligibleError('Discount only for members.')
                raise DiscountNotEligibleError('Discount not valid for this customer.')
            return policy
    raise DiscountNotEligibleError('Discount is not active.')


def member_auto_discount(policies: Iterable[DiscountPolicy]) -> Optional[DiscountPolicy]:
    """First member-only policy, applied when a member customer is attached."""
    for policy in policies:
        if policy.applicable_to is ApplicableTo.member:
            return policy
    return None
