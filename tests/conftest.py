from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from staffing.bootstrap import Services, create_services
from staffing.config import Settings
from staffing.models import Client, Contract, Employee
from staffing.snapshot import InvoiceSnapshotBuilder
from staffing.storage import MemoryStore

FROZEN_NOW = datetime(2024, 4, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(prefix="test_")


@pytest.fixture
def services(settings, store) -> Services:
    services = create_services(settings, store)
    services.builder.clock = lambda: FROZEN_NOW
    services.invoices.today = lambda: date(2024, 4, 2)

    services.clients.save(Client(id="c1", company_name="Acme Industrie", contact_name="Jeanne Roux", city="Lyon"))
    services.employees.save(Employee(id="e1", first_name="Alice", last_name="Martin"))
    services.employees.save(Employee(id="e2", first_name="Bruno", last_name="Leroy"))
    services.employees.save(Employee(id="e3", first_name="Chloe", last_name="Petit"))
    services.contracts.save(
        Contract(
            id="k1",
            client_id="c1",
            employee_id="e1",
            title="Cariste",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
            billing_rate=20.0,
            hourly_rate=12.0,
            location="Lyon",
        )
    )
    services.contracts.save(
        Contract(
            id="k2",
            client_id="c1",
            employee_id="e2",
            title="Magasinier",
            start_date=date(2024, 3, 11),
            end_date=date(2024, 6, 30),
            hourly_rate=15.0,
            working_hours=8.0,
        )
    )
    services.contracts.save(
        Contract(
            id="k3",
            client_id="c1",
            employee_id="e3",
            title="Preparateur",
            start_date=date(2024, 2, 1),
            end_date=date(2024, 3, 15),
            billing_rate=25.0,
        )
    )
    return services


@pytest.fixture
def builder(settings) -> InvoiceSnapshotBuilder:
    return InvoiceSnapshotBuilder(settings, clock=lambda: FROZEN_NOW)
