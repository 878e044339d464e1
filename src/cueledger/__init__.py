"""
CueLedger

Timed-session billing and credit ledger for a billiard and console shop.
"""

__version__ = "1.0.0"
