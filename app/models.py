"""Modèles Pydantic pour les requêtes et réponses."""
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from app.config import settings
from app.errors import InvalidQuery

# Bornes des types SQL (bigint pour OFFSET, integer pour discountPercentage)
MAX_OFFSET = 2**63 - 1
MAX_INT32 = 2**31 - 1


def clamp_offset(offset: Optional[int]) -> int:
    """Ramène un offset négatif à 0 ; au-delà d'un bigint, InvalidQuery."""
    offset = max(0, int(offset or 0))
    if offset > MAX_OFFSET:
        raise InvalidQuery(f"offset must not exceed {MAX_OFFSET}")
    return offset


class Point(BaseModel): # pylint: disable=too-few-public-methods
    """Point géographique WGS84 (SRID 4326), en degrés."""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class NearbyQuery(BaseModel): # pylint: disable=too-few-public-methods
    """Requête de recherche de proximité, immuable, construite par requête HTTP."""
    model_config = ConfigDict(frozen=True)

    origin: Point
    radius_meters: int = Field(default=settings.DEFAULT_RADIUS_METERS, gt=0)
    category: Optional[str] = None
    # Ventes uniquement
    min_discount: Optional[int] = Field(default=None, ge=0, le=MAX_INT32)
    limit: int = Field(default=settings.DEFAULT_LIMIT, ge=1, le=settings.MAX_LIMIT)
    offset: int = Field(default=0, ge=0, le=MAX_OFFSET)

    @classmethod
    def from_params(
            cls,
            lat: Optional[float],
            lng: Optional[float],
            radius: Optional[int] = None,
            category: Optional[str] = None,
            min_discount: Optional[int] = None,
            limit: Optional[int] = None,
            offset: Optional[int] = None,
        ) -> "NearbyQuery":
        """
        Construit la requête à partir des paramètres bruts.

        Une coordonnée absente ou égale à 0 est considérée comme manquante.
        `limit` est ramené dans [1, MAX_LIMIT], `offset` à >= 0 et un rayon
        absent ou non positif prend la valeur par défaut.

        Raises:
            InvalidQuery: origine manquante ou hors bornes, minDiscount négatif.
        """
        if not lat or not lng:
            raise InvalidQuery("Latitude and longitude are required")
        if min_discount is not None and not 0 <= min_discount <= MAX_INT32:
            raise InvalidQuery(f"minDiscount must be an integer between 0 and {MAX_INT32}")

        if limit is None:
            limit = settings.DEFAULT_LIMIT
        limit = max(1, min(int(limit), settings.MAX_LIMIT))
        offset = clamp_offset(offset)
        if not radius or radius <= 0:
            radius = settings.DEFAULT_RADIUS_METERS

        try:
            return cls(
                origin=Point(lat=lat, lng=lng),
                radius_meters=int(radius),
                category=category or None,
                # minDiscount=0 ne filtre rien
                min_discount=min_discount or None,
                limit=limit,
                offset=offset,
            )
        except ValidationError as e:
            raise InvalidQuery(f"Invalid coordinates: lat={lat}, lng={lng}") from e


class RowModel(BaseModel): # pylint: disable=too-few-public-methods
    """Base des lignes renvoyées : attributs snake_case, JSON en camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class StoreSummary(RowModel):
    """Résumé dénormalisé du magasin propriétaire d'une vente."""
    id: str
    name: Optional[str] = None
    category: Optional[str] = None
    logo: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None


class SaleRow(RowModel):
    """Vente renvoyée au client."""
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    discount_percentage: Optional[int] = None
    original_price: Optional[float] = None
    sale_price: Optional[float] = None
    currency: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    store_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    source: Optional[str] = None
    source_url: Optional[str] = None
    source_id: Optional[str] = None
    ai_metadata: Optional[Dict[str, Any]] = None
    views: Optional[int] = 0
    clicks: Optional[int] = 0
    shares: Optional[int] = 0
    saves: Optional[int] = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Mètres ; None = inconnue (mode dégradé), pas forcément dans le rayon
    distance: Optional[float] = None
    store: Optional[StoreSummary] = None


class StoreRow(RowModel):
    """Magasin renvoyé au client."""
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    logo: Optional[str] = None
    cover_image: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    website: Optional[str] = None
    instagram_handle: Optional[str] = None
    facebook_page: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    opening_hours: Optional[Dict[str, Any]] = None
    owner_id: Optional[str] = None
    is_verified: Optional[bool] = False
    is_active: Optional[bool] = True
    total_sales: Optional[int] = 0
    views: Optional[int] = 0
    rating: Optional[float] = None
    review_count: Optional[int] = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    distance: Optional[float] = None


class NearbyResult(BaseModel): # pylint: disable=too-few-public-methods
    """Résultat du composeur : les lignes et le chemin utilisé ('geo' ou 'fallback')."""
    rows: List[Any]
    mode: str

    @property
    def degraded(self) -> bool:
        """True si les distances sont inconnues (repli sans PostGIS)."""
        return self.mode != "geo"


class SaleStatistics(RowModel):
    """Statistiques agrégées des ventes."""
    total: int = 0
    active: int = 0
    expired: int = 0
    total_views: int = 0
    total_clicks: int = 0
    click_through_rate: float = 0.0
