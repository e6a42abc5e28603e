"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the stored bank transactions written by ``bank_sync``.
"""

from .transactions import Base, BankTransaction

__all__ = [
    "Base",
    "BankTransaction",
]
