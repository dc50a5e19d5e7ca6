"""
Inventory loss ledger.

Records lost and damaged product entries against a product catalog and a
fixed set of loss reasons, exports unsynchronized entries to per-reason flat
files and re-imports those files elsewhere.
"""

__version__ = "0.1.0"
