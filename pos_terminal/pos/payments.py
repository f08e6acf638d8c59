"""Payment methods accepted at the terminal and their receipt labels."""
from enum import Enum


class PaymentMethod(str, Enum):
    cash           = 'cash'
    card           = 'card'
    digital_wallet = 'digital_wallet'
    credit         = 'credit'
    multiple       = 'multiple'

    @property
    def label(self) -> str:
        return PAYMENT_LABELS[self]

    @property
    def selectable(self) -> bool:
        """Offered on the checkout screen (credit/multiple only appear on receipts)."""
        return self in CHECKOUT_METHODS


PAYMENT_LABELS = {
    PaymentMethod.cash:           'Tunai',
    PaymentMethod.card:           'Kartu',
    PaymentMethod.digital_wallet: 'E-Wallet',
    PaymentMethod.credit:         'Kredit',
    PaymentMethod.multiple:       'Multiple',
}

CHECKOUT_METHODS = (PaymentMethod.cash, PaymentMethod.card, PaymentMethod.digital_wallet)


def parse_method(raw) -> PaymentMethod:
    try:
        method = PaymentMethod(raw or PaymentMethod.cash.value)
    except ValueError:
        raise ValueError(f'Unknown payment method: {raw!r}')
    if not method.selectable:
        raise ValueError(f'Payment method {method.value!r} is not accepted at checkout.')
    return method


def label_for(raw: str) -> str:
    """Receipt label for a backend payment_method string; unknown values pass through."""
    try:
        return PaymentMethod(raw).label
    except ValueError:
        return raw
