from .bootstrap import Services, create_services
from .calculator import EmployeeAggregator, WeeklyCostCalculator
from .invoices import InvoiceService
from .snapshot import InvoiceSnapshotBuilder
from .time_tracking import TimeEntryStore

__all__ = [
    "Services",
    "create_services",
    "EmployeeAggregator",
    "WeeklyCostCalculator",
    "InvoiceService",
    "InvoiceSnapshotBuilder",
    "TimeEntryStore",
]
