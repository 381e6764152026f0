"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the household domain models used by ``household_import``.
"""

from .household import (
    Base,
    HhCategory,
    HhHousehold,
    HhMember,
    HhTransaction,
    HhTransactionSplit,
)

__all__ = [
    "Base",
    "HhHousehold",
    "HhMember",
    "HhCategory",
    "HhTransaction",
    "HhTransactionSplit",
]
