"""Tables interrogeables par la recherche de proximité (ventes, magasins)."""
from dataclasses import dataclass, field
from typing import Callable, List

from app.models import NearbyQuery
from app.search.query_builder import Fragment, SelectQuery, sql

# La colonne geography `location` est exclue : asyncpg n'a pas de codec PostGIS.
SALE_COLUMNS = [
    "id", "title", "description", "category", '"discountPercentage"',
    '"originalPrice"', '"salePrice"', "currency", '"startDate"', '"endDate"',
    "status", "images", '"storeId"', "latitude", "longitude", "source",
    '"sourceUrl"', '"sourceId"', '"aiMetadata"', "views", "clicks", "shares",
    "saves", '"createdAt"', '"updatedAt"',
]

STORE_COLUMNS = [
    "id", "name", "description", "category", "logo", '"coverImage"', "email",
    '"phoneNumber"', "website", '"instagramHandle"', '"facebookPage"',
    "address", "city", '"postalCode"', "country", "latitude", "longitude",
    '"openingHours"', '"ownerId"', '"isVerified"', '"isActive"',
    '"totalSales"', "views", "rating", '"reviewCount"', '"createdAt"',
    '"updatedAt"',
]

STORE_SUMMARY = sql(
    "json_build_object("
    "'id', store.id, 'name', store.name, 'category', store.category, "
    "'logo', store.logo, 'address', store.address, 'city', store.city"
    ") AS store"
)

STORE_JOIN = sql('LEFT JOIN stores store ON sale."storeId" = store.id')


def qualified(alias: str, columns: List[str]) -> List[Fragment]:
    """['id', 'name'] -> [sale.id, sale.name]"""
    return [sql(f"{alias}.{col}") for col in columns]


def active_sale_filters(alias: str = "sale") -> List[Fragment]:
    """Vente active et dont la période de validité contient maintenant."""
    return [
        sql(f"{alias}.status = 'active'"),
        sql(f'{alias}."startDate" <= NOW()'),
        sql(f'{alias}."endDate" >= NOW()'),
    ]


def sale_filters(query: NearbyQuery) -> List[Fragment]:
    filters = active_sale_filters()
    if query.category:
        filters.append(sql("sale.category = {category}", category=query.category))
    if query.min_discount:
        filters.append(sql('sale."discountPercentage" >= {min_discount}', min_discount=query.min_discount))
    return filters


def store_filters(query: NearbyQuery) -> List[Fragment]:
    filters = [sql('store."isActive" = true')]
    if query.category:
        filters.append(sql("store.category = {category}", category=query.category))
    return filters


@dataclass(frozen=True)
class SearchTarget:
    """Décrit une table cible : alias, colonnes, jointures et filtres d'attributs."""
    name: str
    table: str
    alias: str
    columns: List[Fragment]
    filters: Callable[[NearbyQuery], List[Fragment]]
    joins: List[Fragment] = field(default_factory=list)
    extra_columns: List[Fragment] = field(default_factory=list)
    recency_column: str = '"createdAt"'

    def base_query(self, query: NearbyQuery) -> SelectQuery:
        """SELECT commun aux deux stratégies, sans distance ni tri."""
        select = SelectQuery(table=f"{self.table} {self.alias}", joins=list(self.joins))
        return select.select(*self.columns, *self.extra_columns).where(*self.filters(query))


SALES = SearchTarget(
    name="sales",
    table="sales",
    alias="sale",
    columns=qualified("sale", SALE_COLUMNS),
    filters=sale_filters,
    joins=[STORE_JOIN],
    extra_columns=[STORE_SUMMARY],
)

STORES = SearchTarget(
    name="stores",
    table="stores",
    alias="store",
    columns=qualified("store", STORE_COLUMNS),
    filters=store_filters,
)
