"""Main module for the FastAPI application."""
from contextlib import asynccontextmanager
from typing import List, Optional
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from .config import settings
from .errors import ApiError
from .models import SaleRow, SaleStatistics, StoreRow, NearbyQuery
from .db.postgres_connector import DB_UNAVAILABLE_ERRORS, PostgresConnector
from .search.counters import PopularityCounter
from .search.nearby_service import NearbySearchService
from .search.sales_service import SalesService
from .search.stores_service import StoresService
from .logger import logger


# --- Collaborateurs construits une seule fois puis injectés ---

db_connector: PostgresConnector = PostgresConnector(
    settings.DATABASE_URL,
    max_size=settings.DB_POOL_MAX_SIZE,
    command_timeout=settings.DB_COMMAND_TIMEOUT,
)
counter: PopularityCounter = PopularityCounter(db_connector)

nearby_service: NearbySearchService = NearbySearchService(db_connector)
sales_service: SalesService = SalesService(db_connector, counter)
stores_service: StoresService = StoresService(db_connector, counter)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Handle FastAPI startup and shutdown events."""
    logger.info("Starting up Nearby Sales API...")
    try:
        await db_connector.connect()
        logger.info("PostgreSQL connection pool established successfully.")
    except DB_UNAVAILABLE_ERRORS as e:
        # Le service démarre quand même : les requêtes renverront 503
        logger.error("Failed to connect to PostgreSQL: {error}", error=e)

    yield

    logger.info("Shutting down Nearby Sales API...")
    await counter.drain(timeout=5)
    await db_connector.close()
    logger.info("PostgreSQL connection pool closed.")


app = FastAPI(
    title="Nearby Sales API",
    lifespan=lifespan
)


# --- Erreurs : toujours {"error": message} ---

@app.exception_handler(ApiError)
async def api_error_handler(_request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {method} {path}",
                                    method=request.method, path=request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal server error"})


# --- Dépendances (patchables dans les tests via main.<service>) ---

def get_nearby_service() -> NearbySearchService:
    return nearby_service


def get_sales_service() -> SalesService:
    return sales_service


def get_stores_service() -> StoresService:
    return stores_service


# --- Ventes ---

@app.get("/sales/nearby", response_model=List[SaleRow], tags=["Sales"])
async def nearby_sales(
    response: Response,
    lat: Optional[float] = Query(None, description="Latitude"),
    lng: Optional[float] = Query(None, description="Longitude"),
    radius: Optional[int] = Query(None, description="Search radius in meters (default: 5000)"),
    category: Optional[str] = None,
    min_discount: Optional[int] = Query(None, alias="minDiscount"),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    svc: NearbySearchService = Depends(get_nearby_service),
):
    """
    Ventes actives autour d'un point, les plus proches d'abord.

    En mode dégradé (PostGIS indisponible) les ventes sont triées par date et
    `distance` vaut null ; l'en-tête `X-Search-Mode` vaut alors `fallback`.
    """
    query = NearbyQuery.from_params(lat, lng, radius, category, min_discount, limit, offset)
    result = await svc.find_nearby_sales(query)
    response.headers["X-Search-Mode"] = result.mode
    return result.rows


@app.get("/sales/search", response_model=List[SaleRow], tags=["Sales"])
async def search_sales(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_discount: Optional[int] = Query(None, alias="minDiscount"),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    svc: SalesService = Depends(get_sales_service),
):
    """Recherche texte sur les ventes actives."""
    return await svc.search(q, category=category, min_discount=min_discount, limit=limit, offset=offset)


@app.get("/sales/statistics", response_model=SaleStatistics, tags=["Sales"])
async def sales_statistics(
    store_id: Optional[str] = Query(None, alias="storeId"),
    svc: SalesService = Depends(get_sales_service),
):
    return await svc.statistics(store_id)


@app.get("/sales/store/{store_id}", response_model=List[SaleRow], tags=["Sales"])
async def sales_by_store(
    store_id: str,
    limit: Optional[int] = None,
    svc: SalesService = Depends(get_sales_service),
):
    return await svc.find_by_store(store_id, limit)


@app.get("/sales/{sale_id}", response_model=SaleRow, tags=["Sales"])
async def get_sale(sale_id: str, svc: SalesService = Depends(get_sales_service)):
    """Détail d'une vente (incrémente les vues en arrière-plan)."""
    return await svc.get_sale(sale_id)


@app.post("/sales/{sale_id}/{action}", tags=["Sales"])
async def track_sale(sale_id: str, action: str, svc: SalesService = Depends(get_sales_service)):
    """Suivi des clics, partages et sauvegardes (action = click | share | save)."""
    await svc.track(sale_id, action)
    return {"success": True}


# --- Magasins ---

@app.get("/stores/nearby", response_model=List[StoreRow], tags=["Stores"])
async def nearby_stores(
    response: Response,
    lat: Optional[float] = Query(None, description="Latitude"),
    lng: Optional[float] = Query(None, description="Longitude"),
    radius: Optional[int] = Query(None, description="Search radius in meters (default: 5000)"),
    category: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    svc: NearbySearchService = Depends(get_nearby_service),
):
    """Magasins actifs autour d'un point, les plus proches d'abord."""
    query = NearbyQuery.from_params(lat, lng, radius, category, None, limit, offset)
    result = await svc.find_nearby_stores(query)
    response.headers["X-Search-Mode"] = result.mode
    return result.rows


@app.get("/stores/{store_id}", response_model=StoreRow, tags=["Stores"])
async def get_store(store_id: str, svc: StoresService = Depends(get_stores_service)):
    return await svc.get_store(store_id)


# --- Monitoring ---

@app.get("/")
def root():
    """Root endpoint to check API status."""
    return {"status": "ok", "message": "Nearby Sales API is running 🚀"}


@app.get("/health", status_code=status.HTTP_200_OK, tags=["Monitoring"])
async def health_check():
    """
    Health check endpoint.

    Returns 200 OK if the database is reachable, otherwise 503 Service Unavailable.
    """
    services_status = {"database": "ok", "postgis": "unknown"}
    try:
        await db_connector.fetch_value("SELECT 1")
    except DB_UNAVAILABLE_ERRORS:
        services_status["database"] = "error"
        logger.error("Health check failed: Database connection error.")
    if db_connector.supports_geo is not None:
        services_status["postgis"] = "ok" if db_connector.supports_geo else "missing"

    if services_status["database"] == "error":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=services_status)

    return services_status
