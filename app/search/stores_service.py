"""Service de lecture des magasins."""
from typing import Any

from app.db.postgres_connector import upstream_guard
from app.errors import NotFound
from app.models import StoreRow
from app.search.counters import PopularityCounter
from app.search.normalization import to_store_row
from app.search.query_builder import SelectQuery, sql
from app.search.sales_service import parse_id
from app.search.targets import STORES

PostgresConnector = Any


class StoresService:  # pylint: disable=too-few-public-methods
    """Détail d'un magasin, avec incrément de vues détaché."""

    def __init__(self, db_connector: PostgresConnector, counter: PopularityCounter):
        self.db = db_connector
        self.counter = counter

    async def get_store(self, store_id: str) -> StoreRow:
        uid = parse_id(store_id, kind="Store")
        query, args = (
            SelectQuery(table="stores store")
            .select(*STORES.columns)
            .where(sql("store.id = {id}", id=uid))
            .render()
        )
        with upstream_guard("get_store"):
            row = await self.db.fetch_one(query, *args)
        if row is None:
            raise NotFound(f"Store with ID {store_id} not found")

        self.counter.bump("stores", uid)
        return to_store_row(row, with_distance=False)
