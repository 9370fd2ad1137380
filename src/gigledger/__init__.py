"""Gig ledger: accounts, escrowed gig payments, and the gig lifecycle."""

__version__ = "0.1.0"
