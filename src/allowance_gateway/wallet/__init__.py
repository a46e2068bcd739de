"""Deterministic wallet derivation and ERC-20 approval pipeline.

Signing accounts are derived on demand from the server seed and a user
password, live for exactly one signing operation, and are never stored.
Balance and allowance queries are read-only and need no account.
"""
