"""Service de lecture des ventes (détail, par magasin, recherche texte, statistiques)."""
from typing import Any, List, Optional
from uuid import UUID

from app.config import settings
from app.db.postgres_connector import upstream_guard
from app.errors import InvalidQuery, NotFound
from app.logger import logger
from app.models import SaleRow, SaleStatistics, MAX_INT32, clamp_offset
from app.search.counters import PopularityCounter
from app.search.normalization import to_sale_row
from app.search.query_builder import SelectQuery, sql
from app.search.targets import SALES, active_sale_filters

PostgresConnector = Any

TRACKED_ACTIONS = {"click": "clicks", "share": "shares", "save": "saves"}


def parse_id(raw: str, kind: str = "Sale") -> UUID:
    """Les identifiants sont des UUID ; tout autre texte ne peut exister."""
    try:
        return UUID(str(raw))
    except ValueError as e:
        raise NotFound(f"{kind} with ID {raw} not found") from e


def clamp_limit(limit: Optional[int], default: int) -> int:
    if limit is None:
        return default
    return max(1, min(int(limit), settings.MAX_LIMIT))


class SalesService:
    """Lectures de ventes hors recherche de proximité."""

    def __init__(self, db_connector: PostgresConnector, counter: PopularityCounter):
        self.db = db_connector
        self.counter = counter

    def _sales_select(self) -> SelectQuery:
        return SelectQuery(table="sales sale", joins=list(SALES.joins)).select(
            *SALES.columns, *SALES.extra_columns
        )

    async def get_sale(self, sale_id: str) -> SaleRow:
        """
        Renvoie une vente avec le résumé de son magasin.

        Planifie un incrément de vues détaché ; son échec n'est jamais visible.

        Raises:
            NotFound: identifiant inconnu.
        """
        uid = parse_id(sale_id)
        query, args = self._sales_select().where(sql("sale.id = {id}", id=uid)).render()
        with upstream_guard("get_sale"):
            row = await self.db.fetch_one(query, *args)
        if row is None:
            raise NotFound(f"Sale with ID {sale_id} not found")

        self.counter.bump("sales", uid)
        return to_sale_row(row, with_distance=False)

    async def find_by_store(self, store_id: str, limit: Optional[int] = None) -> List[SaleRow]:
        """Ventes d'un magasin, plus récentes d'abord (tous statuts)."""
        uid = parse_id(store_id, kind="Store")
        query, args = (
            self._sales_select()
            .where(sql('sale."storeId" = {store_id}', store_id=uid))
            .order('sale."createdAt" DESC', "sale.id")
            .paginate(clamp_limit(limit, settings.DEFAULT_LIMIT))
            .render()
        )
        with upstream_guard("find_by_store"):
            rows = await self.db.execute_query(query, *args)
        return [to_sale_row(row, with_distance=False) for row in rows]

    async def search(
            self,
            text: Optional[str],
            category: Optional[str] = None,
            min_discount: Optional[int] = None,
            limit: Optional[int] = None,
            offset: Optional[int] = None,
        ) -> List[SaleRow]:
        """Recherche ILIKE sur titre et description des ventes actives."""
        text = (text or "").strip()
        if len(text) < settings.TEXT_SEARCH_MIN_LENGTH:
            raise InvalidQuery(
                f'Query param "q" must be at least {settings.TEXT_SEARCH_MIN_LENGTH} characters'
            )
        if min_discount is not None and not 0 <= min_discount <= MAX_INT32:
            raise InvalidQuery(f"minDiscount must be an integer between 0 and {MAX_INT32}")

        select = self._sales_select().where(
            *active_sale_filters(),
            sql("(sale.title ILIKE {pattern} OR sale.description ILIKE {pattern})",
                pattern=f"%{_escape_like(text)}%"),
        )
        if category:
            select.where(sql("sale.category = {category}", category=category))
        if min_discount:
            select.where(sql('sale."discountPercentage" >= {min_discount}', min_discount=min_discount))
        query, args = (
            select.order('sale."createdAt" DESC', "sale.id")
            .paginate(clamp_limit(limit, settings.TEXT_SEARCH_DEFAULT_LIMIT), clamp_offset(offset))
            .render()
        )
        with upstream_guard("search"):
            rows = await self.db.execute_query(query, *args)
        logger.info("Recherche texte '{text}' : {count} ventes", text=text, count=len(rows))
        return [to_sale_row(row, with_distance=False) for row in rows]

    async def statistics(self, store_id: Optional[str] = None) -> SaleStatistics:
        """Compteurs agrégés, éventuellement restreints à un magasin."""
        select = SelectQuery(table="sales sale").select(
            sql("COUNT(*) AS total"),
            sql("COUNT(*) FILTER (WHERE sale.status = 'active') AS active"),
            sql("COUNT(*) FILTER (WHERE sale.status = 'expired') AS expired"),
            sql('COALESCE(SUM(sale.views), 0) AS "totalViews"'),
            sql('COALESCE(SUM(sale.clicks), 0) AS "totalClicks"'),
        )
        if store_id:
            select.where(sql('sale."storeId" = {store_id}', store_id=parse_id(store_id, kind="Store")))
        query, args = select.render()
        with upstream_guard("statistics"):
            row = await self.db.fetch_one(query, *args) or {}

        views = int(row.get("totalViews") or 0)
        clicks = int(row.get("totalClicks") or 0)
        return SaleStatistics(
            total=int(row.get("total") or 0),
            active=int(row.get("active") or 0),
            expired=int(row.get("expired") or 0),
            total_views=views,
            total_clicks=clicks,
            click_through_rate=(clicks / views) * 100 if views > 0 else 0.0,
        )

    async def track(self, sale_id: str, action: str) -> None:
        """Incrémente clicks/shares/saves ; erreurs propagées, contrairement aux vues."""
        column = TRACKED_ACTIONS.get(action)
        if column is None:
            raise InvalidQuery(f"Unknown action: {action}")
        uid = parse_id(sale_id)
        with upstream_guard(f"track_{action}"):
            found = await self.counter.increment("sales", uid, column)
        if not found:
            raise NotFound(f"Sale with ID {sale_id} not found")


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
