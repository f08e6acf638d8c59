"""
test_discounts.py — Discount resolver and eligibility.
Run: pytest test_discounts.py -v
"""
import pytest
from decimal import Decimal

from pos_terminal.errors import DiscountNotEligibleError
from pos_terminal.pos.cart import CustomerRef
from pos_terminal.pos.discounts import (
    DiscountPolicy, compute_discount, eligible_policies, select_policy, member_auto_discount,
)


def policy(**kwargs):
    data = dict(id=1, name='Promo', discount_type='percentage', discount_value=10)
    data.update(kwargs)
    return DiscountPolicy.from_api(data)


MEMBER = CustomerRef(id=7, name='Budi', is_member=True)
REGULAR = CustomerRef(id=8, name='Sari')


def test_no_policy_is_zero():
    assert compute_discount(None, Decimal('50000')) == Decimal('0')


def test_percentage():
    assert compute_discount(policy(), Decimal('50000')) == Decimal('5000')


def test_percentage_capped_by_max_discount():
    assert compute_discount(policy(max_discount=4000), Decimal('50000')) == Decimal('4000')


def test_zero_max_discount_means_uncapped():
    assert compute_discount(policy(max_discount=0), Decimal('1000000')) == Decimal('100000')


def test_below_min_purchase_is_zero():
    p = policy(min_purchase=100000)
    assert compute_discount(p, Decimal('99999')) == Decimal('0')
    assert compute_discount(p, Decimal('100000')) == Decimal('10000')


def test_fixed_amount():
    p = policy(discount_type='fixed', discount_value=2000)
    assert compute_discount(p, Decimal('50000')) == Decimal('2000')


def test_fixed_amount_not_clamped_to_base():
    p = policy(discount_type='fixed', discount_value=20000)
    assert compute_discount(p, Decimal('5000')) == Decimal('20000')


def test_decimal_values_from_json_floats():
    p = policy(discount_value=12.5)
    assert compute_discount(p, Decimal('1000')) == Decimal('125')


def test_eligibility_filters():
    policies = [
        policy(id=1),
        policy(id=2, applicable_to='member'),
        policy(id=3, applicable_to='specific_customer', customer_id=8),
    ]
    assert [p.id for p in eligible_policies(policies, None)] == [1]
    assert [p.id for p in eligible_policies(policies, MEMBER)] == [1, 2]
    assert [p.id for p in eligible_policies(policies, REGULAR)] == [1, 3]


def test_select_member_policy_for_walk_in_rejected():
    with pytest.raises(DiscountNotEligibleError, match='members'):
        select_policy([policy(id=2, applicable_to='member')], 2, None)


def test_select_other_customers_policy_rejected():
    p = policy(id=3, applicable_to='specific_customer', customer_id=8)
    with pytest.raises(DiscountNotEligibleError, match='not valid'):
        select_policy([p], 3, MEMBER)


def test_select_inactive_policy_rejected():
    with pytest.raises(DiscountNotEligibleError, match='not active'):
        select_policy([policy(id=1)], 42, None)


def test_member_auto_discount_picks_first_member_policy():
    policies = [policy(id=1), policy(id=2, applicable_to='member'),
                policy(id=5, applicable_to='member')]
    assert member_auto_discount(policies).id == 2
    assert member_auto_discount([policy(id=1)]) is None


def test_label():
    assert policy(discount_value=10).label == '10%'
    assert policy(discount_type='fixed', discount_value=25000).label == 'Rp 25.000'
