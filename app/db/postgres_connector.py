"""PostgreSQL database connector."""
from contextlib import contextmanager
from typing import List, Dict, Any, Optional
import asyncpg

from app.errors import UpstreamUnavailable
from app.logger import logger


class PostgresConnector:
    """Gère un pool de connexions asynchrone à PostgreSQL en utilisant l'URL."""

    def __init__(self, database_url: str, max_size: int = 10, command_timeout: Optional[float] = None):
        self.database_url = database_url
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None
        # None tant que la sonde n'a pas tourné : on tente alors le chemin PostGIS
        self.supports_geo: Optional[bool] = None

    async def connect(self):
        """Initialise le pool puis sonde la présence de l'extension PostGIS."""
        self._pool = await asyncpg.create_pool(
            dsn=self.database_url,
            max_size=self.max_size,
            command_timeout=self.command_timeout,
        )
        logger.info("Pool de connexions asyncpg initialisé (max_size={size}).", size=self.max_size)
        self.supports_geo = await self.probe_geo()

    async def probe_geo(self) -> bool:
        """Vérifie que l'extension PostGIS est installée."""
        sql = "SELECT EXISTS (SELECT 1 FROM pg_extension WHERE extname = 'postgis')"
        try:
            available = bool(await self.fetch_value(sql))
        except (asyncpg.PostgresError, ConnectionError) as e:
            logger.warning("PostGIS probe failed: {error}", error=e)
            available = False
        logger.info("PostGIS available: {available}", available=available)
        return available

    def _require_pool(self) -> asyncpg.Pool:
        if not self._pool:
            raise ConnectionError("Connection pool not initialized. Call .connect() first.")
        return self._pool

    async def execute_query(self, sql: str, *args) -> List[Dict[str, Any]]:
        """Exécute une requête SQL avec des paramètres variables."""
        async with self._require_pool().acquire() as conn:
            rows = await conn.fetch(sql, *args)
            return [dict(row) for row in rows]

    async def fetch_one(self, sql: str, *args) -> Optional[Dict[str, Any]]:
        """Renvoie la première ligne ou None."""
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(sql, *args)
            return dict(row) if row is not None else None

    async def fetch_value(self, sql: str, *args) -> Any:
        """Renvoie la première colonne de la première ligne."""
        async with self._require_pool().acquire() as conn:
            return await conn.fetchval(sql, *args)

    async def execute(self, sql: str, *args) -> str:
        """Exécute une commande (UPDATE...) et renvoie le statut ('UPDATE 1')."""
        async with self._require_pool().acquire() as conn:
            return await conn.execute(sql, *args)

    async def close(self):
        """Ferme le pool de connexions proprement."""
        if self._pool:
            await self._pool.close()
            self._pool = None


# Erreurs signifiant "base injoignable" (et non "requête invalide")
DB_UNAVAILABLE_ERRORS = (
    ConnectionError,
    OSError,
    asyncpg.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
)


@contextmanager
def upstream_guard(operation: str):
    """Traduit une panne de connexion en UpstreamUnavailable (503)."""
    try:
        yield
    except DB_UNAVAILABLE_ERRORS as e:
        logger.error("Database unavailable during {operation}: {error}", operation=operation, error=e)
        raise UpstreamUnavailable("Database unavailable") from e
