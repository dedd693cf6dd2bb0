import os
os.environ.pop("ORDER_WEBHOOK_URL", None)  # never hit a real webhook from tests
os.environ.pop("CATALOG_FILE", None)
os.environ.pop("COUPONS_FILE", None)

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

# Wednesday
FIXED_NOW = datetime(2025, 6, 4, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def client(tmp_path, monkeypatch):
    # fresh SQLite file per test; tables are created by the startup hook
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'farmstand-test.db'}")

    from farmstand.api import orders
    from farmstand.main import app

    monkeypatch.setattr(orders, "_now", lambda: FIXED_NOW)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def notifications(monkeypatch):
    """Captures order webhook payloads instead of posting them."""
    from farmstand.api import orders

    sent = []
    monkeypatch.setattr(orders, "_notify", sent.append)
    return sent
