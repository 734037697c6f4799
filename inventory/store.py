"""
inventory/store.py -- SQLAlchemy-backed persistence for inventory items.

Uses SQLAlchemy Core (not ORM) so the dataclass in inventory/models.py stays
the domain representation. Same Repository + Data Mapper split as
auth/store.py: ItemStore is the repository, _row_to_item the mapper.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ItemStore("sqlite:///:memory:")
    item_id = store.create(Item(name="Widget", price=2.5))
    store.list()
    store.delete_many([item_id])
    store.close()
"""

from __future__ import annotations

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, select
from sqlalchemy.engine import Engine

from core.database import make_engine
from inventory.models import Item

_metadata = MetaData()

_inventory = Table(
    "inventory",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("price", Float, nullable=False),
)


class ItemStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def list(self) -> list[Item]:
        """Return all items ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(_inventory).order_by(_inventory.c.id)).fetchall()
        return [_row_to_item(r) for r in rows]

    def get(self, item_id: int) -> Item | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(_inventory).where(_inventory.c.id == item_id)).fetchone()
        return _row_to_item(row) if row is not None else None

    def create(self, item: Item) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                _inventory.insert().values(name=item.name, description=item.description, price=item.price)
            )
        return result.inserted_primary_key[0]

    def update(self, item_id: int, item: Item) -> bool:
        """Replace name, description and price. False if item_id does not exist."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _inventory.update()
                .where(_inventory.c.id == item_id)
                .values(name=item.name, description=item.description, price=item.price)
            )
        return result.rowcount > 0

    def delete(self, item_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_inventory.delete().where(_inventory.c.id == item_id))
        return result.rowcount > 0

    def delete_many(self, item_ids: list[int]) -> int:
        """Delete every listed item in one statement. Returns how many rows went."""
        if not item_ids:
            return 0
        with self.engine.begin() as conn:
            result = conn.execute(_inventory.delete().where(_inventory.c.id.in_(item_ids)))
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_item(row) -> Item:
    return Item(id=row.id, name=row.name, description=row.description, price=row.price)
