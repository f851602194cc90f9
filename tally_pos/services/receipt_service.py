# tally_pos/services/receipt_service.py
"""Fixed-width receipt text for a confirmed transaction."""

import textwrap
from typing import List

from tally_pos.domain.schemas import TransactionResult
from tally_pos.utils.money import ZERO, format_currency
from tally_pos.utils.settings import RECEIPT_WIDTH, STORE_NAME, STORE_TAGLINE

DATE_FORMAT = "%d/%m/%Y %H:%M"

FOOTER = (
    "Barang yang sudah dibeli",
    "tidak dapat dikembalikan",
    "Simpan struk ini sebagai",
    "bukti pembayaran",
)


def _pair(label: str, value: str, width: int) -> List[str]:
    """Label left, value right; a pair that does not fit moves the value to its own line(s)."""
    if len(label) + 1 + len(value) <= width:
        return [f"{label}{' ' * (width - len(label) - len(value))}{value}"]
    return _wrap(label, width) + [part.rjust(width) for part in _wrap(value, width)]


def _wrap(text: str, width: int) -> List[str]:
    return textwrap.wrap(text, width, break_long_words=True)


def _center(text: str, width: int) -> List[str]:
    return [part.center(width).rstrip() for part in _wrap(text, width)]


def format_receipt(
    result: TransactionResult,
    cashier: str | None = None,
    width: int | None = None,
    store_name: str | None = None,
    tagline: str | None = None,
) -> str:
    """
    Render ``result`` as a receipt ``width`` characters wide.

    Pure: no clock, no locale, no I/O. The timestamp is printed as sent by
    the backend, so the same result always gives byte-identical text.
    Optional rows (customer, line discount, discount, tax, notes) are left
    out entirely when empty.
    """
    width = width or RECEIPT_WIDTH
    cashier = cashier or (result.user.username if result.user else "")

    lines: List[str] = []
    lines.append("=" * width)
    lines.extend(_center(store_name or STORE_NAME, width))
    lines.extend(_center(tagline or STORE_TAGLINE, width))
    lines.append("=" * width)

    lines.extend(_pair("No. Transaksi", result.transaction_code, width))
    lines.extend(_pair("Tanggal", result.transaction_date.strftime(DATE_FORMAT), width))
    lines.extend(_pair("Kasir", cashier, width))
    if result.customer:
        lines.extend(_pair("Customer", result.customer.name, width))
    lines.append("-" * width)

    #item table: name on its own line(s), then qty x price and line total
    for item in result.details:
        lines.extend(_wrap(item.product_name, width))
        qty = f"  {item.quantity} x {format_currency(item.unit_price)}"
        lines.extend(_pair(qty, format_currency(item.subtotal), width))
        if item.discount_amount > ZERO:
            lines.extend(_pair("  Diskon", f"-{format_currency(item.discount_amount)}", width))
    lines.append("-" * width)

    lines.extend(_pair("Subtotal", format_currency(result.subtotal), width))
    if result.discount_amount > ZERO:
        lines.extend(_pair("Diskon", f"-{format_currency(result.discount_amount)}", width))
    if result.tax_amount > ZERO:
        lines.extend(_pair("Pajak", format_currency(result.tax_amount), width))
    lines.extend(_pair("TOTAL", format_currency(result.total_amount), width))
    lines.extend(
        _pair(
            f"Bayar ({result.payment_method.value.upper()})",
            format_currency(result.payment_amount),
            width,
        )
    )
    lines.extend(_pair("Kembalian", format_currency(result.change_amount), width))

    if result.notes and result.notes.strip():
        lines.append("-" * width)
        lines.append("Catatan:")
        lines.extend(_wrap(result.notes, width))

    lines.append("=" * width)
    for text in FOOTER:
        lines.extend(_center(text, width))
    lines.append("=" * width)

    return "\n".join(lines) + "\n"
