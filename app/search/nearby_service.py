"""Module contenant le composeur de recherche de proximité."""
# app/search/nearby_service.py
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import psutil

from app.db.postgres_connector import DB_UNAVAILABLE_ERRORS
from app.errors import UpstreamUnavailable
from app.logger import logger
from app.models import NearbyQuery, NearbyResult
from app.search.normalization import to_sale_row, to_store_row
from app.search.strategies import GeoStrategy, RecencyStrategy
from app.search.targets import SALES, STORES, SearchTarget

PostgresConnector = Any


@dataclass
class SearchContext:
    """Contexte partagé pour une recherche."""
    target: SearchTarget
    query: NearbyQuery
    start_time: float


class NearbySearchService:
    """
    Recherche de ventes / magasins autour d'un point.

    Chemin principal : une requête PostGIS (distance + rayon + filtres, tri par
    distance). Si PostGIS est absent ou que la requête échoue, repli sur les
    mêmes filtres sans rayon, triés par date de création, avec distance=None.
    Seul l'échec des deux chemins lève UpstreamUnavailable.
    """

    def __init__(self, db_connector: PostgresConnector):
        self.db = db_connector
        self.geo = GeoStrategy()
        self.fallback = RecencyStrategy()

    async def find_nearby_sales(self, query: NearbyQuery) -> NearbyResult:
        """Ventes actives et en cours autour de `query.origin`."""
        return await self._search(SearchContext(SALES, query, time.time()), to_sale_row)

    async def find_nearby_stores(self, query: NearbyQuery) -> NearbyResult:
        """Magasins actifs autour de `query.origin` (minDiscount ignoré)."""
        return await self._search(SearchContext(STORES, query, time.time()), to_store_row)

    async def _run(self, strategy, ctx: SearchContext) -> List[Dict[str, Any]]:
        sql, args = strategy.build(ctx.target, ctx.query).render()
        logger.debug("{target}/{mode} SQL:\n{sql}\nargs={args}",
                     target=ctx.target.name, mode=strategy.name, sql=sql, args=args)
        return await self.db.execute_query(sql, *args)

    async def _try_geo(self, ctx: SearchContext) -> Optional[List[Dict[str, Any]]]:
        if self.db.supports_geo is False:
            logger.warning("PostGIS unavailable, {target} search uses fallback", target=ctx.target.name)
            return None
        try:
            return await self._run(self.geo, ctx)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(
                "Geo query failed for {target}, falling back to filter-only search: {error}",
                target=ctx.target.name, error=e,
            )
            return None

    async def _search(self, ctx: SearchContext, normalize: Callable) -> NearbyResult:
        rows = await self._try_geo(ctx)
        mode = self.geo.name
        if rows is None:
            mode = self.fallback.name
            try:
                rows = await self._run(self.fallback, ctx)
            except DB_UNAVAILABLE_ERRORS as e:
                logger.error("Fallback query failed for {target}: {error}", target=ctx.target.name, error=e)
                raise UpstreamUnavailable("Database unavailable") from e

        with_distance = mode == self.geo.name
        results = [normalize(row, with_distance=with_distance) for row in rows[:ctx.query.limit]]

        duration = time.time() - ctx.start_time
        memory_mb = psutil.Process().memory_info().rss / 1024 / 1024
        logger.info(
            "Recherche de proximité ({target}, mode: {mode}, origine: {lat},{lng}, rayon: {radius}m) : "
            "{count} résultats | Durée = {duration:.4f}s | RAM = {memory:.2f} Mo",
            target=ctx.target.name, mode=mode, lat=ctx.query.origin.lat, lng=ctx.query.origin.lng,
            radius=ctx.query.radius_meters, count=len(results), duration=duration, memory=memory_mb,
        )
        return NearbyResult(rows=results, mode=mode)
