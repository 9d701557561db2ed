from __future__ import annotations
import copy
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, List, Mapping, Optional, Sequence
from uuid import uuid4

from .config import Settings
from .logging import get_logger
from .models import (
    UNKNOWN_CLIENT,
    UNKNOWN_CONTRACT,
    UNKNOWN_EMPLOYEE,
    Client,
    EmployeeAggregate,
    EmployeeTotals,
    Invoice,
    InvoiceLine,
    WorkPeriod,
)

logger = get_logger(__name__)

NORMAL_LABEL = "HEURE NORMALE"
OVERTIME_125_LABEL = "HEURE SUP 1"
OVERTIME_150_LABEL = "HEURE SUP 2"


@dataclass
class InvoiceFields:
    invoice_number: str
    period_start: date
    period_end: date
    invoice_date: date
    due_date: date
    description: str = ""
    notes: str = ""
    invoice_id: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceSnapshotBuilder:
    """Freezes aggregated figures into an invoice that is never recomputed."""

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utcnow) -> None:
        self.settings = settings
        self.clock = clock

    @staticmethod
    def global_totals(employee_aggregates: Sequence[EmployeeAggregate]) -> EmployeeTotals:
        totals = EmployeeTotals()
        for aggregate in employee_aggregates:
            totals.add(aggregate.totals)
        return totals

    def invoice_lines(self, employee_aggregates: Sequence[EmployeeAggregate]) -> List[InvoiceLine]:
        band = self.settings.overtime_125_multiplier
        excess = self.settings.overtime_150_multiplier
        lines: List[InvoiceLine] = []
        for aggregate in employee_aggregates:
            for week_key in sorted(aggregate.weeks):
                week = aggregate.weeks[week_key]
                rate = week.average_billing_rate
                for label, hours, coefficient, amount in (
                    (NORMAL_LABEL, week.normal_hours, 1.0, week.normal_amount),
                    (OVERTIME_125_LABEL, week.overtime_125_hours, band, week.overtime_125_amount),
                    (OVERTIME_150_LABEL, week.overtime_150_hours, excess, week.overtime_150_amount),
                ):
                    if hours > 0:
                        lines.append(
                            InvoiceLine(
                                employee_name=aggregate.employee_name,
                                week_key=week_key,
                                label=label,
                                hours=hours,
                                coefficient=coefficient,
                                unit_price=rate,
                                amount=amount,
                            )
                        )
        return lines

    @staticmethod
    def work_period_lines(work_periods: Sequence[WorkPeriod]) -> List[InvoiceLine]:
        return [
            InvoiceLine(
                employee_name=period.employee_name or UNKNOWN_EMPLOYEE,
                week_key=f"{period.start_date.isoformat()}_{period.end_date.isoformat()}",
                label=NORMAL_LABEL,
                hours=period.total_hours,
                coefficient=1.0,
                unit_price=period.billing_rate,
                amount=period.amount,
            )
            for period in work_periods
        ]

    def build_snapshot(
        self,
        client: Optional[Client],
        client_id: str,
        selected_work_periods: Sequence[WorkPeriod],
        employee_aggregates: Mapping[str, EmployeeAggregate],
        fields: InvoiceFields,
    ) -> Invoice:
        # deep copies: nothing the caller still holds may reach the snapshot
        work_periods = [copy.deepcopy(p) for p in selected_work_periods if p.selected]
        employees_data = [copy.deepcopy(a) for a in employee_aggregates.values()]

        for aggregate in employees_data:
            if not aggregate.employee_name:
                aggregate.employee_name = UNKNOWN_EMPLOYEE
        for period in work_periods:
            if not period.employee_name:
                period.employee_name = UNKNOWN_EMPLOYEE
            if not period.contract_title:
                period.contract_title = UNKNOWN_CONTRACT

        if client is None:
            logger.warning("client_not_found", client_id=client_id)

        lines = self.invoice_lines(employees_data)
        if not lines and work_periods:
            lines = self.work_period_lines(work_periods)

        subtotal = round(sum(line.amount for line in lines), 2)
        vat_amount = round(subtotal * self.settings.vat_rate, 2)
        finalized_at = self.clock()

        invoice = Invoice(
            id=fields.invoice_id or str(uuid4()),
            invoice_number=fields.invoice_number,
            client_id=client_id,
            period_start=fields.period_start,
            period_end=fields.period_end,
            invoice_date=fields.invoice_date,
            due_date=fields.due_date,
            client_name=client.contact_name if client else "",
            client_company=client.company_name if client else UNKNOWN_CLIENT,
            client_email=client.email if client else "",
            client_address=client.address if client else "",
            client_postal_code=client.postal_code if client else "",
            client_city=client.city if client else "",
            description=fields.description,
            notes=fields.notes,
            work_periods=work_periods,
            employees_data=employees_data,
            global_totals=self.global_totals(employees_data),
            lines=lines,
            subtotal=subtotal,
            vat_rate=self.settings.vat_rate,
            vat_amount=vat_amount,
            total_amount=round(subtotal + vat_amount, 2),
            currency=self.settings.currency,
            is_finalized=True,
            finalized_at=finalized_at,
            created_at=finalized_at,
        )
        logger.info(
            "invoice_snapshot_built",
            invoice_number=invoice.invoice_number,
            employees=len(employees_data),
            subtotal=subtotal,
        )
        return invoice
