import pytest
import json
from datetime import datetime

from rulekit.catalog import CatalogRegistry
from rulekit.fields import FieldRegistry


# Reference time for relative dates ("90" = 90 days before this)
NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW


@pytest.fixture
def sample_customers():
    """Sample customer records for testing."""
    return [
        {
            "id": "C001",
            "name": "Priya Sharma",
            "email": "priya@example.com",
            "phone": "+91 98100 00001",
            "type": "Retail",
            "account_status": "Active",
            "total_orders": 12,
            "total_spent": 60000,
            "last_order_date": "2024-06-01",
            "created_at": "2023-01-10T09:30:00",
            "tags": ["vip", "north"],
        },
        {
            "id": "C002",
            "name": "Rahul Verma",
            "email": "rahul@example.com",
            "phone": "+91 98100 00002",
            "type": "Wholesale",
            "account_status": "Active",
            "total_orders": 3,
            "total_spent": 40000,
            "last_order_date": "2024-01-15",
            "created_at": "2024-05-20T14:00:00",
            "tags": [],
        },
        {
            "id": "C003",
            "name": "Anita Desai",
            "email": "anita@traders.in",
            "phone": "+91 98100 00003",
            "type": "Distributor",
            "account_status": "Inactive",
            "total_orders": 25,
            "total_spent": 150000,
            "last_order_date": "2023-11-30",
            "created_at": "2022-08-01T08:00:00",
            "tags": ["north"],
        },
        {
            "id": "C004",
            "name": "John Smith",
            "email": "john@example.com",
            "phone": None,
            "type": "Retail",
            "account_status": "Inactive",
            "total_orders": 1,
            "total_spent": 500,
            "last_order_date": None,
            "created_at": "2024-06-10T18:45:00",
            "tags": [],
        },
        {
            "id": "C005",
            "name": "Meera Nair",
            "email": "meera@traders.in",
            "phone": "+91 98100 00005",
            "type": "Wholesale",
            "account_status": "Active",
            "total_orders": 8,
            "total_spent": 75000,
            "last_order_date": "2024-06-14",
            "created_at": "2023-09-15T11:00:00",
            "tags": ["south"],
        },
        {
            "id": "C006",
            "name": "amit patel",
            "email": "amit@example.com",
            "phone": "+91 98100 00006",
            "type": "Retail",
            "account_status": "Active",
            "total_orders": 4,
            "total_spent": "12000",
            "last_order_date": "2024-03-01",
            "created_at": "2024-02-29T10:00:00",
            "tags": ["south"],
        },
    ]


@pytest.fixture
def catalogs():
    """Registry with the built-in catalogs."""
    return CatalogRegistry()


@pytest.fixture
def customers_catalog(catalogs):
    """The built-in customers catalog."""
    return catalogs.get("customers")


@pytest.fixture
def registry(customers_catalog):
    """Field registry of the customers catalog."""
    return customers_catalog.registry


@pytest.fixture
def price_registry():
    """Minimal registry with one number field."""
    return FieldRegistry.from_dict({
        "id": "number",
        "price": {"label": "Price", "type": "number"},
    })


@pytest.fixture
def records_file(tmp_path, sample_customers):
    """Customer records written to a JSON file."""
    path = tmp_path / "customers.json"
    path.write_text(json.dumps(sample_customers))
    return path
