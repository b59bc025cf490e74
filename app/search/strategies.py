"""Stratégies de recherche de proximité : PostGIS (principale) et repli sans distance."""
from app.config import settings
from app.models import NearbyQuery
from app.search.query_builder import Fragment, SelectQuery, sql
from app.search.targets import SearchTarget


def _origin() -> str:
    return f"ST_SetSRID(ST_Point({{lng}}, {{lat}}), {settings.GEO_SRID})::geography"


def distance_column(alias: str, query: NearbyQuery) -> Fragment:
    """Distance géodésique en mètres (geography => ellipsoïde WGS84)."""
    return sql(
        f"ST_Distance({alias}.location::geography, {_origin()}) AS distance",
        lng=query.origin.lng,
        lat=query.origin.lat,
    )


def within_radius(alias: str, query: NearbyQuery) -> Fragment:
    """Confinement dans le rayon, calculé sur la même métrique que la distance."""
    return sql(
        f"ST_DWithin({alias}.location::geography, {_origin()}, {{radius}})",
        lng=query.origin.lng,
        lat=query.origin.lat,
        radius=float(query.radius_meters),
    )


class GeoStrategy:  # pylint: disable=too-few-public-methods
    """Distance + rayon calculés par PostGIS, tri par distance croissante."""

    name = "geo"

    def build(self, target: SearchTarget, query: NearbyQuery) -> SelectQuery:
        select = target.base_query(query)
        select.select(distance_column(target.alias, query))
        select.predicates.insert(0, within_radius(target.alias, query))
        return select.order("distance ASC", f"{target.alias}.id").paginate(query.limit, query.offset)


class RecencyStrategy:  # pylint: disable=too-few-public-methods
    """Repli : mêmes filtres d'attributs, ni rayon ni distance, plus récents d'abord."""

    name = "fallback"

    def build(self, target: SearchTarget, query: NearbyQuery) -> SelectQuery:
        select = target.base_query(query)
        return select.order(
            f"{target.alias}.{target.recency_column} DESC", f"{target.alias}.id"
        ).paginate(query.limit, query.offset)
