"""Compteurs de popularité (vues, clics, partages, sauvegardes)."""
import asyncio
from typing import Any, Optional, Set

from app.logger import logger

PostgresConnector = Any

COUNTED_TABLES = frozenset({"sales", "stores"})
COUNTER_COLUMNS = frozenset({"views", "clicks", "shares", "saves"})


class PopularityCounter:
    """
    Incréments atomiques `col = col + 1` délégués à la base.

    `bump` lance l'incrément en tâche détachée : au plus une fois, souvent
    zéro en cas de panne, et aucune erreur ne remonte à l'appelant.
    `increment` est la version attendue, utilisée par le suivi des clics.
    """

    def __init__(self, db_connector: PostgresConnector):
        self.db = db_connector
        # Références fortes : asyncio ne garde que des références faibles aux tâches
        self._pending: Set[asyncio.Task] = set()

    def _build_sql(self, table: str, column: str) -> str:
        if table not in COUNTED_TABLES or column not in COUNTER_COLUMNS:
            raise ValueError(f"Unsupported counter: {table}.{column}")
        # Safe: table/column whitelisted above
        return f"UPDATE {table} SET {column} = COALESCE({column}, 0) + 1 WHERE id = $1"  # nosec B608

    async def increment(self, table: str, entity_id: Any, column: str = "views") -> bool:
        """Incrémente et renvoie True si une ligne existait."""
        status = await self.db.execute(self._build_sql(table, column), entity_id)
        return str(status).endswith(" 1")

    def bump(self, table: str, entity_id: Any, column: str = "views") -> asyncio.Task:
        """Incrément fire-and-forget ; renvoie la tâche (utile aux tests)."""
        sql = self._build_sql(table, column)
        task = asyncio.create_task(self._bump(sql, table, entity_id, column))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _bump(self, sql: str, table: str, entity_id: Any, column: str) -> None:
        try:
            await self.db.execute(sql, entity_id)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(
                "Counter {table}.{column} not incremented for {id}: {error}",
                table=table, column=column, id=entity_id, error=e,
            )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Attend les incréments en vol (arrêt de l'application)."""
        if not self._pending:
            return
        await asyncio.wait(set(self._pending), timeout=timeout)
