"""Order workflow and settlement ledger service."""

__version__ = "0.1.0"
