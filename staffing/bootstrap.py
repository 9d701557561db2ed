from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .calculator import EmployeeAggregator
from .config import Settings, get_settings
from .directories import ClientDirectory, ContractDirectory, EmployeeDirectory
from .invoices import InvoiceService
from .logging import configure_logging, get_logger
from .overtime import TieredWeeklyRule
from .snapshot import InvoiceSnapshotBuilder
from .storage import JsonFileStore, KeyValueStore
from .time_tracking import TimeEntryStore

logger = get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    store: KeyValueStore
    employees: EmployeeDirectory
    contracts: ContractDirectory
    clients: ClientDirectory
    time_entries: TimeEntryStore
    aggregator: EmployeeAggregator
    builder: InvoiceSnapshotBuilder
    invoices: InvoiceService


def create_services(settings: Optional[Settings] = None, store: Optional[KeyValueStore] = None) -> Services:
    settings = settings or get_settings()
    configure_logging(settings)
    store = store if store is not None else JsonFileStore(settings.data_path, prefix=settings.store_prefix)

    employees = EmployeeDirectory(store)
    contracts = ContractDirectory(store)
    clients = ClientDirectory(store)
    time_entries = TimeEntryStore(store, settings)
    aggregator = EmployeeAggregator(employees, contracts, TieredWeeklyRule.from_settings(settings))
    builder = InvoiceSnapshotBuilder(settings)
    invoices = InvoiceService(store, settings, time_entries, employees, contracts, clients, aggregator, builder)

    logger.info("services_ready", env=settings.env, data_path=str(settings.data_path))
    return Services(
        settings=settings,
        store=store,
        employees=employees,
        contracts=contracts,
        clients=clients,
        time_entries=time_entries,
        aggregator=aggregator,
        builder=builder,
        invoices=invoices,
    )
