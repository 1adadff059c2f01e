"""Points ledger service: users, wallet-signed point transfers and transaction history."""

__version__ = "1.0.0"
