"""
Receipt Formatter

Derives immutable Receipt snapshots from completed sales and renders them
as documents:

- a fixed-width plain-text slip for 58mm thermal printers (32 columns)
- a standalone HTML page for preview, print and download
- a short message and share link for hand-off to a messaging app

Rendering is a pure function of the receipt and the business settings.
Nothing here touches storage.
"""

import html
import textwrap
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union
from urllib.parse import quote

from bizledger.models.ledger import (
    BusinessSettings,
    PaymentMethod,
    Receipt,
    ReceiptLineItem,
    Sale,
)


RECEIPT_WIDTH = 32
SHARE_BASE_URL = "https://wa.me/?text="

PAYMENT_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.MOBILE_MONEY: "Mobile Money",
    PaymentMethod.BANK_TRANSFER: "Bank Transfer",
}

LineItemInput = Union[ReceiptLineItem, dict]


def format_money(amount: Decimal, currency: Optional[str] = None) -> str:
    """Thousands-separated amount; decimals only when the amount has cents."""
    if amount == amount.to_integral_value():
        text = f"{amount:,.0f}"
    else:
        text = f"{amount:,.2f}"
    return f"{currency} {text}" if currency else text


def payment_label(method: PaymentMethod) -> str:
    return PAYMENT_LABELS[method]


def _line_item(item: LineItemInput) -> ReceiptLineItem:
    if isinstance(item, ReceiptLineItem):
        return item
    quantity = item["quantity"]
    unit_price = Decimal(str(item["unit_price"]))
    return ReceiptLineItem(
        product_name=item["product_name"],
        quantity=quantity,
        unit_price=unit_price,
        line_total=quantity * unit_price,
    )


def build_receipt(
    sale: Sale,
    line_items: Optional[Sequence[LineItemInput]] = None,
) -> Receipt:
    """
    Snapshot a completed sale as a receipt.

    Without explicit line items the sale itself becomes the single line.
    Subtotal and total both equal the sale total; there is no tax or
    discount on a receipt.
    """
    if line_items is None:
        items = [
            ReceiptLineItem(
                product_name=sale.product_name,
                quantity=sale.quantity,
                unit_price=sale.unit_price,
                line_total=sale.total_amount,
            )
        ]
    else:
        items = [_line_item(item) for item in line_items]

    return Receipt(
        sale_id=sale.id,
        customer_phone=sale.customer_phone,
        items=tuple(items),
        subtotal=sale.total_amount,
        total=sale.total_amount,
        payment_method=sale.payment_method,
        created_at=sale.created_at,
    )


def search_receipts(receipts: Iterable[Receipt], term: str) -> list[Receipt]:
    """
    Receipts whose customer phone or any product name contains term.

    Matching is case-insensitive. A blank term matches everything.
    """
    needle = term.strip().lower()
    if not needle:
        return list(receipts)
    return [
        r for r in receipts
        if (r.customer_phone and needle in r.customer_phone.lower())
        or any(needle in item.product_name.lower() for item in r.items)
    ]


def document_filename(receipt: Receipt) -> str:
    return f"receipt-{receipt.id}.html"


# =============================================================================
# PLAIN TEXT
# =============================================================================

def _columns(left: str, right: str, width: int) -> str:
    room = width - len(right) - 1
    if len(left) > room:
        left = left[: max(room, 0)]
    return f"{left}{' ' * (width - len(left) - len(right))}{right}"


def render_text(
    receipt: Receipt,
    settings: BusinessSettings,
    width: int = RECEIPT_WIDTH,
) -> str:
    """Fixed-width receipt for a thermal printer."""
    rule = "-" * width
    currency = settings.currency
    lines = [
        settings.business_name.upper().center(width).rstrip(),
        "Thank you for your business!".center(width).rstrip(),
        rule,
        f"Receipt #{receipt.short_id}",
        f"Date: {receipt.created_at:%d/%m/%Y}",
        f"Time: {receipt.created_at:%H:%M:%S}",
    ]
    if receipt.customer_phone:
        lines.append(f"Phone: {receipt.customer_phone}")
    lines.append(rule)

    for item in receipt.items:
        lines.extend(textwrap.wrap(item.product_name, width) or [""])
        lines.append(
            _columns(
                f"  {item.quantity} x {format_money(item.unit_price)}",
                format_money(item.line_total),
                width,
            )
        )

    lines.extend([
        rule,
        _columns("TOTAL:", format_money(receipt.total, currency), width),
        f"Payment: {payment_label(receipt.payment_method)}",
        rule,
        "Visit us again!".center(width).rstrip(),
    ])
    return "\n".join(lines) + "\n"


# =============================================================================
# HTML
# =============================================================================

_HTML_STYLE = """
    body { font-family: 'Courier New', monospace; font-size: 12px; width: 200px; margin: 0; padding: 10px; }
    .header { text-align: center; margin-bottom: 10px; }
    .line { border-bottom: 1px dashed #000; margin: 5px 0; }
    .item { display: flex; justify-content: space-between; margin: 2px 0; }
    .total { font-weight: bold; margin-top: 5px; }
    .footer { text-align: center; margin-top: 10px; font-size: 10px; }
"""


def render_html(receipt: Receipt, settings: BusinessSettings) -> str:
    """Standalone printable receipt page."""
    esc = html.escape
    currency = settings.currency

    items = "\n".join(
        f'    <div class="item"><span>{esc(item.product_name)}</span></div>\n'
        f'    <div class="item"><span>{item.quantity} x {format_money(item.unit_price)}</span>'
        f"<span>{format_money(item.line_total)}</span></div>"
        for item in receipt.items
    )
    phone = (
        f"  <div>Phone: {esc(receipt.customer_phone)}</div>\n"
        if receipt.customer_phone
        else ""
    )
    logo = (
        f'    <img src="{esc(settings.logo_url, quote=True)}" alt="" width="64">\n'
        if settings.logo_url
        else ""
    )

    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        f"  <title>Receipt {receipt.short_id}</title>\n"
        f"  <style>{_HTML_STYLE}  </style>\n"
        "</head>\n"
        "<body>\n"
        '  <div class="header">\n'
        f"{logo}"
        f"    <h3>{esc(settings.business_name.upper())}</h3>\n"
        "    <p>Thank you for your business!</p>\n"
        '    <div class="line"></div>\n'
        "  </div>\n"
        f"  <div>Date: {receipt.created_at:%d/%m/%Y}</div>\n"
        f"  <div>Time: {receipt.created_at:%H:%M:%S}</div>\n"
        f"{phone}"
        '  <div class="line"></div>\n'
        f"{items}\n"
        '  <div class="line"></div>\n'
        '  <div class="item total"><span>TOTAL:</span>'
        f"<span>{esc(format_money(receipt.total, currency))}</span></div>\n"
        f"  <div>Payment: {payment_label(receipt.payment_method)}</div>\n"
        '  <div class="footer">\n'
        '    <div class="line"></div>\n'
        "    <p>Visit us again!</p>\n"
        "  </div>\n"
        "</body>\n"
        "</html>\n"
    )


# =============================================================================
# SHARING
# =============================================================================

def render_share_message(receipt: Receipt, settings: BusinessSettings) -> str:
    """Plain-text receipt for a chat message (*bold* markup)."""
    currency = settings.currency
    items = "\n\n".join(
        f"{item.product_name}\n"
        f"{item.quantity} x {format_money(item.unit_price, currency)}"
        f" = {format_money(item.line_total, currency)}"
        for item in receipt.items
    )
    return (
        f"*RECEIPT - {settings.business_name.upper()}*\n\n"
        f"Date: {receipt.created_at:%d/%m/%Y}\n"
        f"Time: {receipt.created_at:%H:%M:%S}\n\n"
        f"Items:\n{items}\n\n"
        f"*TOTAL: {format_money(receipt.total, currency)}*\n"
        f"Payment: {payment_label(receipt.payment_method)}\n\n"
        "Thank you for your business!"
    )


def share_link(receipt: Receipt, settings: BusinessSettings) -> str:
    return SHARE_BASE_URL + quote(render_share_message(receipt, settings), safe="")
