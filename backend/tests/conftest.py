"""
Pytest fixtures and configuration for Loyalty API tests

This file provides shared fixtures that can be used across all test modules.
API fixtures replace authentication with dependency overrides, so no test
outside test_integration needs a database.

Date: 2025-10-17
"""
import os
from datetime import date

import psycopg2
import pytest
from dotenv import load_dotenv
from psycopg2.extras import RealDictCursor

# Load environment variables for tests
load_dotenv()
os.environ.setdefault("JWT_SECRET", "test-secret")

from fastapi.testclient import TestClient  # noqa: E402

from loyalty_api.api.dependencies import get_current_customer, get_low_stock_threshold  # noqa: E402
from loyalty_api.core.auth import TokenUser, get_current_user  # noqa: E402
from loyalty_api.domain.customer import Customer  # noqa: E402
from loyalty_api.main import app  # noqa: E402


@pytest.fixture(scope="session")
def database_url():
    """
    Provides the database URL for tests

    Scope: session (created once per test session)
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not configured")
    return url


@pytest.fixture(scope="function")
def db_connection(database_url):
    """
    Provides a fresh database connection for each test

    Scope: function (new connection per test)
    Automatically closes connection after test
    """
    conn = psycopg2.connect(database_url)
    yield conn
    conn.close()


@pytest.fixture(scope="function")
def db_cursor(db_connection):
    """
    Provides a database cursor with RealDictCursor for each test

    Scope: function (new cursor per test)
    Returns results as dictionaries instead of tuples
    """
    cursor = db_connection.cursor(cursor_factory=RealDictCursor)
    yield cursor
    cursor.close()


@pytest.fixture
def token_user():
    return TokenUser(id=7, email="ana@example.com", role="customer")


@pytest.fixture
def admin_user():
    return TokenUser(id=1, email="admin@example.com", role="admin")


@pytest.fixture
def sample_customer():
    """
    Provides a Silver member for API tests
    """
    return Customer(
        id=42,
        user_id=7,
        name="Ana Torres",
        email="ana@example.com",
        points=2500,
        total_spent=1830.5,
        visit_count=14,
        customer_tier="Silver",
        enrollment_date=date(2024, 3, 1),
    )


def _client(user, customer):
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_current_customer] = lambda: customer
    app.dependency_overrides[get_low_stock_threshold] = lambda: 5
    return TestClient(app)


@pytest.fixture
def client(token_user, sample_customer):
    """TestClient signed in as a customer"""
    yield _client(token_user, sample_customer)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(admin_user, sample_customer):
    """TestClient signed in as an admin"""
    yield _client(admin_user, sample_customer)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client():
    """TestClient with no session; only the settings lookup is stubbed"""
    app.dependency_overrides[get_low_stock_threshold] = lambda: 5
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_product_row():
    """
    Provides a products row as RealDictCursor returns it
    """
    return {
        "id": 101,
        "name": "Trail Runner 2",
        "description": "Lightweight trail running shoe with a grippy outsole",
        "price": 129.99,
        "original_price": 149.99,
        "currency": "USD",
        "category": "Footwear",
        "brand": "Northpeak",
        "sku": "NP-TR2-42",
        "stock": 3,
        "tags": ["running", "trail"],
        "product_type": "Shoe",
        "collection": "Outdoor",
        "material": "Mesh",
        "color": "Blue",
        "dimensions": None,
        "weight": 0.6,
        "warranty_info": None,
        "care_instructions": None,
        "main_image_url": "https://cdn.example.com/tr2.jpg",
        "rating": 4.6,
        "review_count": 87,
        "is_active": True,
        "featured": True,
        "is_on_sale": True,
        "sale_percentage": 13,
        "is_new": False,
        "sort_order": 0,
        "sf_id": "SF-0001",
        "created_at": None,
        "updated_at": None,
    }
