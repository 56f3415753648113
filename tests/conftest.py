"""
Pytest fixtures for the commodity kernel test suite.

Provides:
- Structured logging setup and log capture
- A DeterministicClock
- In-memory service wiring (see fakes.py) for fast lifecycle tests
- SQLite sessions with seeded reference data for the SQL implementations

Environment Variables:
- COMMODITY_TEST_DATABASE_URL: run the SQL tests against another database
  (e.g. PostgreSQL).  Defaults to an in-memory SQLite database.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import date
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from commodity_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from commodity_kernel.domain.clock import DeterministicClock
from commodity_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from commodity_kernel.models.reference import Actor, Campaign, Store
from commodity_kernel.services.transfer_service import build_sql_transfer_service

from fakes import InMemoryWorld, build_world

DEFAULT_TEST_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture commodity_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, world):
            world.service.create(world.groupage_draft())
            logs = captured_logs()
            assert any(r["message"] == "transfer_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("commodity_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "sql: test runs against a real database session")


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def world(clock) -> InMemoryWorld:
    """TransferService wired on in-memory fakes with seeded reference data."""
    return build_world(clock=clock)


# =============================================================================
# SQL fixtures
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("COMMODITY_TEST_DATABASE_URL", DEFAULT_TEST_URL)


@pytest.fixture
def db_engine():
    """Fresh engine and schema per test; in-memory SQLite by default."""
    engine = init_engine_from_url(get_database_url())
    drop_tables()
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@dataclass
class ReferenceData:
    campaign_id: UUID
    closed_campaign_id: UUID
    producer_id: UUID
    opa_id: UUID
    buyer_id: UUID
    inactive_actor_id: UUID
    store_a_id: UUID
    store_b_id: UUID
    store_outside_id: UUID


@pytest.fixture
def reference_data(session) -> ReferenceData:
    """Actors, campaigns and stores committed to the test database."""
    campaign = Campaign(code="2024-2025", start_date=date(2024, 1, 1), status="active")
    closed = Campaign(code="2023-2024", start_date=date(2023, 1, 1), status="inactive")

    producer = Actor(actor_type="PRODUCER", family_name="Mbarga", given_name="Paul", oncc_id="ONCC-P-001")
    opa = Actor(actor_type="OPA", family_name="Coop Sud", oncc_id="ONCC-OPA-010")
    buyer = Actor(actor_type="BUYER", family_name="Export SA", oncc_id="ONCC-B-100")
    inactive = Actor(actor_type="PRODUCER", family_name="Dormant", status="inactive")

    store_a = Store(name="Magasin Nord", code="MAG-N", campaigns=[campaign])
    store_b = Store(name="Magasin Sud", code="MAG-S", campaigns=[campaign])
    store_outside = Store(name="Magasin Ancien", code="MAG-A", campaigns=[closed])

    session.add_all([campaign, closed, producer, opa, buyer, inactive, store_a, store_b, store_outside])
    session.commit()

    return ReferenceData(
        campaign_id=campaign.id,
        closed_campaign_id=closed.id,
        producer_id=producer.id,
        opa_id=opa.id,
        buyer_id=buyer.id,
        inactive_actor_id=inactive.id,
        store_a_id=store_a.id,
        store_b_id=store_b.id,
        store_outside_id=store_outside.id,
    )


@pytest.fixture
def sql_service(session, reference_data, clock):
    """TransferService on the SQL implementations of every port."""
    return build_sql_transfer_service(session, clock=clock)
