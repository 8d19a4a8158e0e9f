"""
BizLedger - Source Package

A point-of-sale ledger and analytics engine for small shops: products
and stock, sales with receipts, expenses, and the dashboards built on
top of them.

DESIGN PRINCIPLES:
1. A sale and its stock change commit together or not at all
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "BizLedger Team"
