from __future__ import annotations
from typing import List

from .models import EmployeeAggregate, Invoice


def format_employee_weeks(aggregate: EmployeeAggregate) -> str:
    rows = [
        f"{aggregate.employee_name}",
        "Week                    Hours  Normal  Sup1   Sup2   Rate     Amount",
    ]
    for week_key in sorted(aggregate.weeks):
        week = aggregate.weeks[week_key]
        rows.append(
            f"{week_key}  {week.total_week_hours:>5.2f}  {week.normal_hours:>6.2f}  {week.overtime_125_hours:>5.2f}  "
            f"{week.overtime_150_hours:>5.2f}  {week.average_billing_rate:>7.2f}  {week.total_week_amount:>9.2f}"
        )
    totals = aggregate.totals
    rows.append(f"Total hours: {totals.total_hours:.2f}  days: {totals.working_days}  amount: {totals.total_amount:.2f}")
    return "\n".join(rows)


def format_invoice(invoice: Invoice) -> str:
    """Render an invoice from its frozen snapshot only."""
    rows: List[str] = [
        f"Invoice {invoice.invoice_number}",
        f"Client: {invoice.client_company}",
        f"Period: {invoice.period_start.isoformat()} - {invoice.period_end.isoformat()}",
        f"Issued: {invoice.invoice_date.isoformat()}  due: {invoice.due_date.isoformat()}",
        "",
    ]
    for aggregate in invoice.employees_data:
        rows.append(format_employee_weeks(aggregate))
        rows.append("")
    rows.append(f"Subtotal: {invoice.subtotal:.2f} {invoice.currency}")
    rows.append(f"VAT {invoice.vat_rate * 100:.0f}%: {invoice.vat_amount:.2f} {invoice.currency}")
    rows.append(f"Total: {invoice.total_amount:.2f} {invoice.currency}")
    return "\n".join(rows)
