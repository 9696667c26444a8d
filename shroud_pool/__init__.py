"""Shielded-value pool: fixed-denomination deposits, zero-knowledge withdrawals."""

__version__ = "0.1.0"
