from __future__ import annotations
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from .calculator import EmployeeAggregator
from .config import Settings
from .directories import ClientDirectory, ContractDirectory, EmployeeDirectory
from .errors import NotFoundError, PersistenceError, ValidationError
from .logging import get_logger
from .models import Client, EmployeeAggregate, Invoice, WorkPeriod
from .snapshot import InvoiceFields, InvoiceSnapshotBuilder
from .storage import Collection, KeyValueStore
from .time_tracking import TimeEntryStore

logger = get_logger(__name__)

LAST_INVOICE_NUMBER_KEY = "last_invoice_number"


def working_days(start: date, end: date) -> int:
    """Monday to Friday days between ``start`` and ``end``, both included."""
    count = 0
    day = start
    while day <= end:
        if day.weekday() < 5:
            count += 1
        day += timedelta(days=1)
    return count


class InvoiceService:
    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        time_entries: TimeEntryStore,
        employees: EmployeeDirectory,
        contracts: ContractDirectory,
        clients: ClientDirectory,
        aggregator: EmployeeAggregator,
        builder: InvoiceSnapshotBuilder,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.settings = settings
        self.records = Collection(store, "invoices", Invoice, "Invoice")
        self.time_entries = time_entries
        self.employees = employees
        self.contracts = contracts
        self.clients = clients
        self.aggregator = aggregator
        self.builder = builder
        self.today = today

    def validate_invoice_request(self, client_id: str, period_start: Optional[date], period_end: Optional[date]) -> None:
        errors: Dict[str, str] = {}
        if not client_id:
            errors["client_id"] = "client is required"
        if not period_start:
            errors["period_start"] = "period start is required"
        if not period_end:
            errors["period_end"] = "period end is required"
        if period_start and period_end and period_end <= period_start:
            errors["period_end"] = "period end must be after period start"
        if errors:
            raise ValidationError(errors)

    def generate_work_periods(self, client_id: str, period_start: date, period_end: date) -> List[WorkPeriod]:
        contracts = self.contracts.for_client(client_id, period_start, period_end)
        employees = self.employees.get_many({c.employee_id for c in contracts})
        periods: List[WorkPeriod] = []
        for contract in contracts:
            employee = employees.get(contract.employee_id)
            if employee is None:
                logger.warning("work_period_skipped", contract_id=contract.id, employee_id=contract.employee_id)
                continue
            start = max(contract.start_date, period_start)
            end = min(contract.end_date, period_end)
            days = working_days(start, end)
            hours_per_day = contract.working_hours or self.settings.default_hours_per_day
            total_hours = round(days * hours_per_day, 2)
            rate = contract.billing_rate or 0.0
            periods.append(
                WorkPeriod(
                    id=f"{contract.id}_{start.isoformat()}",
                    employee_id=contract.employee_id,
                    contract_id=contract.id,
                    start_date=start,
                    end_date=end,
                    employee_name=employee.full_name,
                    contract_title=contract.title,
                    working_days=days,
                    hours_per_day=hours_per_day,
                    total_hours=total_hours,
                    billing_rate=rate,
                    amount=round(total_hours * rate, 2),
                    location=contract.location,
                    description=f"{contract.title} - {employee.full_name}",
                )
            )
        return periods

    def prepare(
        self,
        client_id: str,
        period_start: date,
        period_end: date,
        work_periods: Sequence[WorkPeriod],
    ) -> Dict[str, EmployeeAggregate]:
        selected = [p for p in work_periods if p.selected]
        entries = self.time_entries.entries_for_invoicing(
            client_id, period_start, period_end, contract_ids={p.contract_id for p in selected}
        )
        return self.aggregator.aggregate(entries, period_start, period_end, selected)

    def _last_invoice_number(self) -> int:
        return int(self.store.get(LAST_INVOICE_NUMBER_KEY) or 0)

    def next_invoice_number(self, year: Optional[int] = None) -> str:
        year = year or self.today().year
        return f"{self.settings.invoice_number_prefix}-{year}-{self._last_invoice_number() + 1:04d}"

    def _client_or_none(self, client_id: str) -> Optional[Client]:
        try:
            return self.clients.get_by_id(client_id)
        except NotFoundError:
            return None

    def create_invoice(
        self,
        client_id: str,
        period_start: date,
        period_end: date,
        work_periods: Sequence[WorkPeriod],
        invoice_date: Optional[date] = None,
        due_date: Optional[date] = None,
        description: str = "",
        notes: str = "",
    ) -> Invoice:
        self.validate_invoice_request(client_id, period_start, period_end)
        selected = [p for p in work_periods if p.selected]
        if not selected:
            raise ValidationError({"work_periods": "select at least one work period"})

        aggregates = self.prepare(client_id, period_start, period_end, selected)
        invoice_date = invoice_date or self.today()
        fields = InvoiceFields(
            invoice_id=str(uuid4()),
            invoice_number=self.next_invoice_number(invoice_date.year),
            period_start=period_start,
            period_end=period_end,
            invoice_date=invoice_date,
            due_date=due_date or invoice_date + timedelta(days=self.settings.payment_terms_days),
            description=description,
            notes=notes,
        )
        invoice = self.builder.build_snapshot(self._client_or_none(client_id), client_id, selected, aggregates, fields)
        entry_ids = [entry_id for a in invoice.employees_data for week in a.weeks.values() for entry_id in week.entry_ids]
        self._persist(invoice, entry_ids)
        return invoice

    def _persist(self, invoice: Invoice, entry_ids: List[str]) -> None:
        """Write the invoice, the number counter and the invoiced entries, or none of them."""
        previous_invoices = self.store.get(self.records.key)
        previous_number = self.store.get(LAST_INVOICE_NUMBER_KEY)
        invoices = self.records.all()
        invoices.append(invoice)
        try:
            self.records.replace_all(invoices)
            if not self.store.set(LAST_INVOICE_NUMBER_KEY, self._last_invoice_number() + 1):
                raise PersistenceError(f"Could not write {LAST_INVOICE_NUMBER_KEY}")
            self.time_entries.mark_invoiced(entry_ids, invoice.id, invoice.finalized_at)
        except Exception:
            logger.error("invoice_persist_failed", invoice_number=invoice.invoice_number)
            self.store.set(self.records.key, previous_invoices or [])
            self.store.set(LAST_INVOICE_NUMBER_KEY, previous_number or 0)
            raise
        logger.info("invoice_created", invoice_id=invoice.id, invoice_number=invoice.invoice_number, entries=len(entry_ids))

    def get_invoice(self, invoice_id: str) -> Invoice:
        return self.records.get(invoice_id)

    def list_invoices(self, client_id: Optional[str] = None) -> List[Invoice]:
        invoices = self.records.all()
        if client_id:
            invoices = [i for i in invoices if i.client_id == client_id]
        return sorted(invoices, key=lambda i: (i.invoice_date, i.invoice_number), reverse=True)

    def search_invoices(self, term: str) -> List[Invoice]:
        needle = term.strip().lower()
        if not needle:
            return self.list_invoices()
        return [
            invoice
            for invoice in self.list_invoices()
            if needle in invoice.invoice_number.lower()
            or needle in invoice.client_name.lower()
            or needle in invoice.client_company.lower()
            or needle in invoice.description.lower()
        ]
