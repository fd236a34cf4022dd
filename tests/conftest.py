# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides sample contents, generated tables, settings and temp-dir stores.
No external services — Redis is always a mocked client.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from reqcache.cache.json_store import JsonCacheStore
from reqcache.config.settings import Settings
from reqcache.logging.context import clear_context


# === FIXTURES: Sample data ===


LOGIN_CONTENT = (
    "The system should support user login.\n"
    "The system should handle password reset.\n"
)

WORKFLOW_CONTENT = """# Order handling

1. Customer submits the purchase order form
2. Sales team reviews the order details
If the amount exceeds 10000 EUR then manager approval is required
The approval workflow is documented in the procurement policy
Next the warehouse team prepares the parcel for dispatch
The system shall send a confirmation email to the customer
Order flows from sales to the warehouse for picking
User clicks the submit button to confirm the shipment
The start point is drawn as an ellipse on the diagram
Connector arrow -> links the approval step to shipping
Customer account data is archived yearly

## Technical notes

SHIPPING AND DELIVERY TERMS
def export_orders(status): return query(status)
http://intranet.example.com/orders/api/v2/export
"""


def _table(ids: list[str], prefix_header: str = "Requirement ID") -> str:
    """Markdown requirements table with one row per ID."""
    lines = [
        f"| {prefix_header} | Description | Priority |",
        "|---|---|---|",
    ]
    for item_id in ids:
        lines.append(f"| {item_id} | Requirement text for {item_id} | High |")
    return "\n".join(lines)


@pytest.fixture
def make_table():
    return _table


@pytest.fixture
def login_content() -> str:
    return LOGIN_CONTENT


@pytest.fixture
def workflow_content() -> str:
    return WORKFLOW_CONTENT


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, cache_root=tmp_path / "cache")  # type: ignore[call-arg]


# === FIXTURES: Stores ===


@pytest.fixture
def json_store(tmp_path: Path) -> JsonCacheStore:
    return JsonCacheStore(cache_root=tmp_path / "cache")


@pytest.fixture
def fake_redis() -> MagicMock:
    """MagicMock Redis client backed by a dict and per-key sets."""
    storage: dict[str, str] = {}
    sets: dict[str, set[str]] = {}

    def _delete(key: str) -> int:
        existed = key in storage or key in sets
        storage.pop(key, None)
        sets.pop(key, None)
        return int(existed)

    client = MagicMock()
    client.get = lambda k: storage.get(k)
    client.set = lambda k, v: storage.__setitem__(k, v)
    client.delete = _delete
    client.sadd = lambda k, v: sets.setdefault(k, set()).add(v)
    client.srem = lambda k, v: sets.get(k, set()).discard(v)
    client.smembers = lambda k: set(sets.get(k, set()))
    client.storage = storage
    return client


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()
