from datetime import date, datetime, timezone

import pytest

from staffing.models import (
    UNKNOWN_CLIENT,
    UNKNOWN_CONTRACT,
    UNKNOWN_EMPLOYEE,
    Client,
    EmployeeAggregate,
    WeeklyCalculation,
    WorkPeriod,
)
from staffing.snapshot import InvoiceFields


def fields() -> InvoiceFields:
    return InvoiceFields(
        invoice_number="FAC-2024-0001",
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        invoice_date=date(2024, 4, 2),
        due_date=date(2024, 5, 2),
    )


def aggregate(employee_id: str, name: str, *weeks: WeeklyCalculation) -> EmployeeAggregate:
    result = EmployeeAggregate(employee_id=employee_id, employee_name=name, employee_found=True)
    for week in weeks:
        result.add_week(f"{week.week_start.isoformat()}_{week.week_end.isoformat()}", week)
    return result


def forty_two_hours() -> WeeklyCalculation:
    return WeeklyCalculation(
        week_start=date(2024, 3, 4),
        week_end=date(2024, 3, 10),
        total_week_hours=42,
        normal_hours=35,
        overtime_125_hours=7,
        average_billing_rate=20,
        normal_amount=700,
        overtime_125_amount=175,
        total_week_amount=875,
        working_days=5,
    )


def fifty_hours() -> WeeklyCalculation:
    return WeeklyCalculation(
        week_start=date(2024, 3, 11),
        week_end=date(2024, 3, 17),
        total_week_hours=50,
        normal_hours=35,
        overtime_125_hours=8,
        overtime_150_hours=7,
        average_billing_rate=20,
        normal_amount=700,
        overtime_125_amount=200,
        overtime_150_amount=210,
        total_week_amount=1110,
        working_days=5,
    )


def selected_period(employee_id: str = "e1", **overrides) -> WorkPeriod:
    values = dict(
        id="k1_2024-03-01",
        employee_id=employee_id,
        contract_id="k1",
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 31),
        employee_name="Alice Martin",
        contract_title="Cariste",
        total_hours=147,
        billing_rate=20,
        amount=2940,
        selected=True,
    )
    values.update(overrides)
    return WorkPeriod(**values)


def test_snapshot_is_finalized_with_global_totals(builder):
    aggregates = {
        "e1": aggregate("e1", "Alice Martin", forty_two_hours(), fifty_hours()),
        "e3": EmployeeAggregate(employee_id="e3", employee_name="Chloe Petit", employee_found=True),
    }
    client = Client(id="c1", company_name="Acme Industrie", contact_name="Jeanne Roux", city="Lyon")

    invoice = builder.build_snapshot(client, "c1", [selected_period(), selected_period("e3")], aggregates, fields())

    assert invoice.is_finalized
    assert invoice.finalized_at == datetime(2024, 4, 2, 9, 30, tzinfo=timezone.utc)
    assert invoice.client_company == "Acme Industrie"
    assert invoice.client_city == "Lyon"
    assert [a.employee_id for a in invoice.employees_data] == ["e1", "e3"]
    assert invoice.global_totals.total_hours == 92
    assert invoice.global_totals.overtime_125_amount == 375
    assert invoice.global_totals.total_amount == 1985
    assert invoice.subtotal == 1985
    assert invoice.vat_amount == 397
    assert invoice.total_amount == 2382
    assert invoice.currency == "EUR"


def test_lines_split_each_week_by_band(builder):
    aggregates = {"e1": aggregate("e1", "Alice Martin", fifty_hours(), forty_two_hours())}

    invoice = builder.build_snapshot(None, "c1", [selected_period()], aggregates, fields())

    assert [(line.week_key, line.label, line.coefficient) for line in invoice.lines] == [
        ("2024-03-04_2024-03-10", "HEURE NORMALE", 1.0),
        ("2024-03-04_2024-03-10", "HEURE SUP 1", 1.25),
        ("2024-03-11_2024-03-17", "HEURE NORMALE", 1.0),
        ("2024-03-11_2024-03-17", "HEURE SUP 1", 1.25),
        ("2024-03-11_2024-03-17", "HEURE SUP 2", 1.5),
    ]
    assert sum(line.amount for line in invoice.lines) == pytest.approx(1985)


def test_work_periods_are_used_when_no_hours_were_recorded(builder):
    aggregates = {"e1": EmployeeAggregate(employee_id="e1", employee_name="Alice Martin", employee_found=True)}

    invoice = builder.build_snapshot(None, "c1", [selected_period()], aggregates, fields())

    assert len(invoice.lines) == 1
    assert invoice.lines[0].amount == 2940
    assert invoice.subtotal == 2940
    assert invoice.global_totals.total_amount == 0


def test_unresolved_references_get_placeholders(builder):
    aggregates = {"ghost": EmployeeAggregate(employee_id="ghost", employee_name="")}
    period = selected_period("ghost", employee_name="", contract_title="")

    invoice = builder.build_snapshot(None, "c9", [period], aggregates, fields())

    assert invoice.client_company == UNKNOWN_CLIENT
    assert invoice.employees_data[0].employee_name == UNKNOWN_EMPLOYEE
    assert invoice.work_periods[0].employee_name == UNKNOWN_EMPLOYEE
    assert invoice.work_periods[0].contract_title == UNKNOWN_CONTRACT


def test_unselected_periods_are_left_out(builder):
    invoice = builder.build_snapshot(
        None, "c1", [selected_period(), selected_period("e2", id="k2_x", selected=False)], {}, fields()
    )

    assert [p.id for p in invoice.work_periods] == ["k1_2024-03-01"]


def test_snapshot_does_not_share_state_with_its_inputs(builder):
    aggregates = {"e1": aggregate("e1", "Alice Martin", forty_two_hours())}
    periods = [selected_period()]

    invoice = builder.build_snapshot(None, "c1", periods, aggregates, fields())
    aggregates["e1"].weeks["2024-03-04_2024-03-10"].normal_amount = 0
    aggregates["e1"].totals.total_amount = 0
    periods[0].amount = 0

    assert invoice.employees_data[0].weeks["2024-03-04_2024-03-10"].normal_amount == 700
    assert invoice.employees_data[0].totals.total_amount == 875
    assert invoice.work_periods[0].amount == 2940
