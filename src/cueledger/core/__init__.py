"""
CueLedger - Core Module

Session billing and credit reconciliation for a billiard and console shop.

- errors: ledger error taxonomy
- models: station, session, credit and payment records
- stations: station directory
- sessions: session ledger (open / close / live cost)
- credits: credit ledger (open / settle)
- payments: append-only payment log
"""
