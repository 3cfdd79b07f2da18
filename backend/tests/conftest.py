"""
AGE-MATE Tracking Backend — Test Configuration (conftest.py)
=============================================================

Shared pytest fixtures.

Fixture Hierarchy (all function-scoped):
    ├── data_file:        path of a fresh JSON data file under tmp_path
    ├── store:            RecordStore bound to data_file
    ├── sample_shipment:  a fully populated shipment record
    ├── test_settings:    Settings pointing at data_file
    ├── test_app:         FastAPI app built by create_app(test_settings)
    └── test_client:      HTTPX AsyncClient talking to test_app in-process
"""

import os
import tempfile

# Point the module-level app at a throwaway data file BEFORE any app import
os.environ["DATA_FILE"] = os.path.join(
    tempfile.mkdtemp(prefix="agemate_test_"), "tracking-data.json"
)
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.config import Settings
from app.main import create_app
from app.services.record_store import RecordStore


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data" / "tracking-data.json"


@pytest.fixture
def store(data_file):
    record_store = RecordStore(data_file)
    record_store.initialize()
    return record_store


@pytest.fixture
def sample_shipment():
    return {
        "trackingNumber": "TRK1",
        "status": "In Transit",
        "origin": "Shanghai",
        "destination": "Lagos",
        "userName": "Ada Obi",
        "loadingDate": "2024-03-02",
        "phone": "+234-800-000-0000",
        "goodsDescription": "Spare parts",
        "quantity": 12,
        "cbm": 3.5,
        "ratePerCbm": 240,
        "totalAmount": 840,
        "containerNumber": "MSKU1234567",
    }


@pytest.fixture
def test_settings(data_file):
    return Settings(data_file=str(data_file), log_level="WARNING")


@pytest.fixture
def test_app(test_settings):
    return create_app(test_settings)


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
