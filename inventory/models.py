"""
inventory/models.py -- Domain dataclass for inventory rows.

Pattern: Data class (pure data container, zero logic). Mirrors auth/models.py.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Item:
    name: str
    price: float
    description: str = ""
    id: int | None = None
