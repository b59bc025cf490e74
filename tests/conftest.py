# tests/conftest.py
import pytest
from unittest.mock import MagicMock, AsyncMock

SALE_ID = "3f1c2a9e-5b7d-4c8e-9a10-2b3c4d5e6f70"
STORE_ID = "8d0e4b6a-1c2f-4e3a-b5d6-7f8091a2b3c4"

# --- Mocks des clients de bas niveau ---

@pytest.fixture
def mock_db_connector():
    """Fixture pour un mock du connecteur PostgreSQL (PostGIS disponible)."""
    db_conn = MagicMock()
    db_conn.supports_geo = True
    db_conn.execute_query = AsyncMock(return_value=[])
    db_conn.fetch_one = AsyncMock(return_value=None)
    db_conn.fetch_value = AsyncMock(return_value=1)
    db_conn.execute = AsyncMock(return_value="UPDATE 1")
    return db_conn

@pytest.fixture
def mock_counter():
    """Fixture pour un compteur de popularité mocké."""
    counter = MagicMock()
    counter.bump = MagicMock()
    counter.increment = AsyncMock(return_value=True)
    return counter

# --- Données ---

@pytest.fixture
def sale_row():
    """Ligne brute telle que renvoyée par asyncpg (chemin PostGIS)."""
    return {
        "id": SALE_ID,
        "title": "Summer clearance",
        "description": "Up to 50% off",
        "category": "clothing",
        "discountPercentage": 50,
        "originalPrice": 200,
        "salePrice": 100,
        "currency": "ILS",
        "startDate": "2026-01-01T00:00:00",
        "endDate": "2026-12-31T00:00:00",
        "status": "active",
        "images": "https://cdn/a.jpg,https://cdn/b.jpg",
        "storeId": STORE_ID,
        "latitude": 32.0853,
        "longitude": 34.7818,
        "views": 3,
        "clicks": 1,
        "shares": 0,
        "saves": 0,
        "createdAt": "2026-01-01T00:00:00",
        "distance": 120.5,
        "store": '{"id": "%s", "name": "Dizengoff Shop", "category": "fashion", '
                 '"logo": null, "address": "Dizengoff 50", "city": "Tel Aviv"}' % STORE_ID,
    }

@pytest.fixture
def store_row():
    return {
        "id": STORE_ID,
        "name": "Dizengoff Shop",
        "category": "fashion",
        "address": "Dizengoff 50",
        "city": "Tel Aviv",
        "latitude": 32.08,
        "longitude": 34.78,
        "openingHours": '{"monday": {"open": "09:00", "close": "20:00"}}',
        "isActive": True,
        "isVerified": False,
        "views": 10,
        "distance": 42.0,
    }

# --- Services de l'application ---

@pytest.fixture
def nearby_service(mock_db_connector):
    from app.search.nearby_service import NearbySearchService
    return NearbySearchService(db_connector=mock_db_connector)

@pytest.fixture
def sales_service(mock_db_connector, mock_counter):
    from app.search.sales_service import SalesService
    return SalesService(db_connector=mock_db_connector, counter=mock_counter)

@pytest.fixture
def stores_service(mock_db_connector, mock_counter):
    from app.search.stores_service import StoresService
    return StoresService(db_connector=mock_db_connector, counter=mock_counter)
