"""
pos_terminal/pos/receipt.py
---------------------------
Plain-text receipt for a thermal printer, rendered from the backend's
full sale record (GET /sales/:id). Amounts are rounded to whole Rupiah
here and only here.
"""
from datetime import datetime

from pos_terminal.pos.payments import label_for
from pos_terminal.utils.money import format_rupiah, to_decimal, ZERO

WIDTH = 40


def _row(left: str, right: str, width: int = WIDTH) -> str:
    space = max(1, width - len(left) - len(right))
    return f'{left}{" " * space}{right}'


def _rule(char: str = '-') -> str:
    return char * WIDTH


def _sale_date(sale: dict) -> str:
    raw = sale.get('sale_date') or sale.get('created_at')
    if not raw:
        return ''
    try:
        return datetime.fromisoformat(raw.replace('Z', '+00:00')).strftime('%d/%m/%Y %H:%M')
    except ValueError:
        return raw


def render_receipt(sale: dict, settings) -> str:
    """Return the receipt as newline-joined text."""
    sym = settings.currency_symbol
    money = lambda key: format_rupiah(to_decimal(sale.get(key), ZERO), sym)  # noqa: E731

    lines = []
    store = sale.get('store') or {}
    header_name = store.get('name') or settings.company_name
    if header_name:
        lines.append(header_name.center(WIDTH))
    address = store.get('address') or settings.company_address
    if address:
        lines.append(address.center(WIDTH))
    if store.get('phone'):
        lines.append(store['phone'].center(WIDTH))
    if settings.receipt_header:
        lines.append(settings.receipt_header.center(WIDTH))
    lines.append(_rule('='))

    lines.append(_row('No', sale.get('sale_number') or str(sale.get('id', ''))))
    lines.append(_row('Tanggal', _sale_date(sale)))
    cashier = sale.get('cashier') or {}
    if cashier:
        lines.append(_row('Kasir', cashier.get('full_name') or cashier.get('username', '')))
    customer = sale.get('customer') or {}
    if customer:
        lines.append(_row('Pelanggan', customer.get('name', '')))
    lines.append(_rule())

    for item in sale.get('items') or []:
        product = item.get('product') or {}
        lines.append(product.get('name') or f"Produk #{item.get('product_id')}")
        qty = to_decimal(item.get('quantity'), ZERO).normalize()
        unit = format_rupiah(to_decimal(item.get('unit_price'), ZERO), sym)
        total = format_rupiah(to_decimal(item.get('total_price'), ZERO), sym)
        lines.append(_row(f'  {qty:f} x {unit}', total))
        line_discount = to_decimal(item.get('discount_amount'), ZERO)
        if line_discount > 0:
            lines.append(_row('  Diskon', '-' + format_rupiah(line_discount, sym)))
    lines.append(_rule())

    lines.append(_row('Subtotal', money('subtotal')))
    if to_decimal(sale.get('tax_amount'), ZERO) > 0:
        lines.append(_row('Pajak', money('tax_amount')))
    if to_decimal(sale.get('discount_amount'), ZERO) > 0:
        lines.append(_row('Diskon', '-' + money('discount_amount')))
    lines.append(_row('TOTAL', money('total_amount')))
    lines.append(_rule())

    for payment in sale.get('payments') or []:
        amount = format_rupiah(to_decimal(payment.get('amount'), ZERO), sym)
        lines.append(_row(label_for(payment.get('payment_method', '')), amount))
    lines.append(_row('Bayar', money('paid_amount')))
    lines.append(_row('Kembali', money('change_amount')))

    if sale.get('notes'):
        lines.append(_rule())
        lines.append(f"Catatan: {sale['notes']}")

    lines.append(_rule('='))
    if settings.receipt_footer:
        lines.append(settings.receipt_footer.center(WIDTH))
    return '\n'.join(lines) + '\n'
