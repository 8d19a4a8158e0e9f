"""Receipt snapshots and documents."""

from bizledger.receipts.formatter import (
    SHARE_BASE_URL,
    build_receipt,
    document_filename,
    format_money,
    payment_label,
    render_html,
    render_share_message,
    render_text,
    search_receipts,
    share_link,
)

__all__ = [
    "SHARE_BASE_URL",
    "build_receipt",
    "document_filename",
    "format_money",
    "payment_label",
    "render_html",
    "render_share_message",
    "render_text",
    "search_receipts",
    "share_link",
]
