from __future__ import annotations
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .directories import ContractDirectory, EmployeeDirectory
from .logging import get_logger
from .models import (
    UNKNOWN_EMPLOYEE,
    Contract,
    EmployeeAggregate,
    TimeEntry,
    WeeklyCalculation,
    WeekWindow,
    WorkPeriod,
)
from .overtime import DEFAULT_RULE, TieredWeeklyRule, split_overtime
from .rates import RateResolver
from .weeks import enumerate_weeks, week_window_of

logger = get_logger(__name__)


class WeeklyCostCalculator:
    def __init__(self, rule: TieredWeeklyRule, resolver: RateResolver) -> None:
        self.rule = rule
        self.resolver = resolver

    def compute_week(self, week_entries: Sequence[TimeEntry], window: Optional[WeekWindow] = None) -> WeeklyCalculation:
        entries = sorted(week_entries, key=lambda e: (e.worked_date, e.contract_id, e.id))
        if window is None and entries:
            window = week_window_of(entries[0].worked_date)

        split = split_overtime(entries, self.rule)
        average_rate, rates = self.resolver.resolve_weekly_billing_rate(entries)

        normal_amount = round(split.normal_hours * average_rate, 2)
        overtime_125_amount = round(split.overtime_125 * average_rate * self.rule.band_multiplier, 2)
        overtime_150_amount = round(split.overtime_150 * average_rate * self.rule.excess_multiplier, 2)

        return WeeklyCalculation(
            week_start=window.start if window else None,
            week_end=window.end if window else None,
            total_week_hours=split.total_week_hours,
            normal_hours=split.normal_hours,
            overtime_125_hours=split.overtime_125,
            overtime_150_hours=split.overtime_150,
            average_billing_rate=round(average_rate, 4),
            normal_amount=normal_amount,
            overtime_125_amount=overtime_125_amount,
            overtime_150_amount=overtime_150_amount,
            total_week_amount=round(normal_amount + overtime_125_amount + overtime_150_amount, 2),
            rates=rates,
            entry_ids=[e.id for e in entries],
            working_days=len({e.worked_date for e in entries if (e.total_hours or 0) > 0}),
        )


class EmployeeAggregator:
    """Groups time entries by employee then by week and totals each employee.

    Reads employee and contract metadata once per run; never writes.
    """

    def __init__(
        self,
        employees: EmployeeDirectory,
        contracts: ContractDirectory,
        rule: TieredWeeklyRule = DEFAULT_RULE,
    ) -> None:
        self.employees = employees
        self.contracts = contracts
        self.rule = rule

    def _prefetch_contracts(self, entries: Iterable[TimeEntry]) -> Mapping[str, Contract]:
        # missing contracts are reported by the resolver
        return self.contracts.get_many({entry.contract_id for entry in entries})

    def _employee_names(self, employee_ids: Iterable[str]) -> Dict[str, str]:
        wanted = set(employee_ids)
        found = self.employees.get_many(wanted)
        for missing in sorted(wanted - found.keys()):
            logger.warning("employee_not_found", employee_id=missing)
        return {employee_id: employee.full_name for employee_id, employee in found.items()}

    def aggregate(
        self,
        entries: Iterable[TimeEntry],
        period_start: date,
        period_end: date,
        work_periods: Sequence[WorkPeriod] = (),
    ) -> Dict[str, EmployeeAggregate]:
        in_period = [e for e in entries if period_start <= e.worked_date <= period_end]
        windows = enumerate_weeks(period_start, period_end)

        billed_employees = [p.employee_id for p in work_periods if p.selected]
        employee_order: List[str] = []
        for employee_id in [e.employee_id for e in sorted(in_period, key=lambda e: e.worked_date)] + billed_employees:
            if employee_id not in employee_order:
                employee_order.append(employee_id)

        names = self._employee_names(employee_order)
        calculator = WeeklyCostCalculator(self.rule, RateResolver(self._prefetch_contracts(in_period)))

        grouped: Dict[str, Dict[str, List[TimeEntry]]] = {
            employee_id: {window.key: [] for window in windows} for employee_id in employee_order
        }
        for entry in in_period:
            weeks = grouped[entry.employee_id]
            weeks.setdefault(week_window_of(entry.worked_date).key, []).append(entry)

        results: Dict[str, EmployeeAggregate] = {}
        for employee_id in employee_order:
            aggregate = EmployeeAggregate(
                employee_id=employee_id,
                employee_name=names.get(employee_id, UNKNOWN_EMPLOYEE),
                employee_found=employee_id in names,
            )
            for window in windows:
                week_entries = grouped[employee_id].get(window.key)
                if not week_entries:
                    continue
                aggregate.add_week(window.key, calculator.compute_week(week_entries, window))
            results[employee_id] = aggregate

        logger.info(
            "aggregation_complete",
            period_start=period_start.isoformat(),
            period_end=period_end.isoformat(),
            employees=len(results),
            entries=len(in_period),
        )
        return results
