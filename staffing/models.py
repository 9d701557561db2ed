from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional


UNKNOWN_EMPLOYEE = "Unknown employee"
UNKNOWN_CONTRACT = "Unknown contract"
UNKNOWN_CLIENT = "Unknown client"


class TimeEntryStatus(str, Enum):
    DRAFT = "draft"
    VALIDATED = "validated"
    INVOICED = "invoiced"


@dataclass
class Employee:
    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    status: str = "active"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Client:
    id: str
    company_name: str
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = "France"
    siret: str = ""
    status: str = "active"


@dataclass
class Contract:
    id: str
    client_id: str
    employee_id: str
    title: str
    start_date: date
    end_date: date
    billing_rate: Optional[float] = None
    hourly_rate: Optional[float] = None
    location: str = ""
    working_hours: Optional[float] = None  # hours per working day
    status: str = "active"

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and self.end_date >= start


@dataclass
class TimeEntry:
    id: str
    employee_id: str
    contract_id: str
    client_id: str
    worked_date: date
    total_hours: float
    normal_hours: float = 0.0
    overtime_hours: float = 0.0
    hourly_rate: Optional[float] = None
    billing_rate: Optional[float] = None
    status: TimeEntryStatus = TimeEntryStatus.DRAFT
    notes: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_minutes: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    validated_at: Optional[datetime] = None
    invoiced_at: Optional[datetime] = None
    invoice_id: Optional[str] = None

    @property
    def natural_key(self) -> tuple[str, str, date]:
        return self.employee_id, self.contract_id, self.worked_date


@dataclass(frozen=True)
class WeekWindow:
    """Monday to Sunday, both days included."""

    start: date
    end: date

    @property
    def key(self) -> str:
        return f"{self.start.isoformat()}_{self.end.isoformat()}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def next(self) -> WeekWindow:
        return WeekWindow(start=self.start + timedelta(days=7), end=self.end + timedelta(days=7))


@dataclass(frozen=True)
class OvertimeSplit:
    total_week_hours: float = 0.0
    normal_hours: float = 0.0
    overtime_125: float = 0.0
    overtime_150: float = 0.0


@dataclass
class WeeklyCalculation:
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    total_week_hours: float = 0.0
    normal_hours: float = 0.0
    overtime_125_hours: float = 0.0
    overtime_150_hours: float = 0.0
    average_billing_rate: float = 0.0
    normal_amount: float = 0.0
    overtime_125_amount: float = 0.0
    overtime_150_amount: float = 0.0
    total_week_amount: float = 0.0
    rates: List[float] = field(default_factory=list)
    entry_ids: List[str] = field(default_factory=list)
    working_days: int = 0


@dataclass
class EmployeeTotals:
    total_hours: float = 0.0
    normal_hours: float = 0.0
    overtime_125_hours: float = 0.0
    overtime_150_hours: float = 0.0
    working_days: int = 0
    normal_amount: float = 0.0
    overtime_125_amount: float = 0.0
    overtime_150_amount: float = 0.0
    total_amount: float = 0.0

    def add_week(self, week: WeeklyCalculation) -> None:
        self.total_hours = round(self.total_hours + week.total_week_hours, 2)
        self.normal_hours = round(self.normal_hours + week.normal_hours, 2)
        self.overtime_125_hours = round(self.overtime_125_hours + week.overtime_125_hours, 2)
        self.overtime_150_hours = round(self.overtime_150_hours + week.overtime_150_hours, 2)
        self.working_days += week.working_days
        self.normal_amount = round(self.normal_amount + week.normal_amount, 2)
        self.overtime_125_amount = round(self.overtime_125_amount + week.overtime_125_amount, 2)
        self.overtime_150_amount = round(self.overtime_150_amount + week.overtime_150_amount, 2)
        self.total_amount = round(self.total_amount + week.total_week_amount, 2)

    def add(self, other: EmployeeTotals) -> None:
        self.total_hours = round(self.total_hours + other.total_hours, 2)
        self.normal_hours = round(self.normal_hours + other.normal_hours, 2)
        self.overtime_125_hours = round(self.overtime_125_hours + other.overtime_125_hours, 2)
        self.overtime_150_hours = round(self.overtime_150_hours + other.overtime_150_hours, 2)
        self.working_days += other.working_days
        self.normal_amount = round(self.normal_amount + other.normal_amount, 2)
        self.overtime_125_amount = round(self.overtime_125_amount + other.overtime_125_amount, 2)
        self.overtime_150_amount = round(self.overtime_150_amount + other.overtime_150_amount, 2)
        self.total_amount = round(self.total_amount + other.total_amount, 2)


@dataclass
class EmployeeAggregate:
    employee_id: str
    employee_name: str = UNKNOWN_EMPLOYEE
    employee_found: bool = False
    weeks: Dict[str, WeeklyCalculation] = field(default_factory=dict)
    totals: EmployeeTotals = field(default_factory=EmployeeTotals)

    def add_week(self, week_key: str, week: WeeklyCalculation) -> None:
        self.weeks[week_key] = week
        self.totals.add_week(week)


@dataclass
class WorkPeriod:
    id: str
    employee_id: str
    contract_id: str
    start_date: date
    end_date: date
    employee_name: str = ""
    contract_title: str = ""
    working_days: int = 0
    hours_per_day: float = 0.0
    total_hours: float = 0.0
    billing_rate: float = 0.0
    amount: float = 0.0
    location: str = ""
    description: str = ""
    selected: bool = False


@dataclass
class InvoiceLine:
    employee_name: str
    week_key: str
    label: str
    hours: float
    coefficient: float
    unit_price: float
    amount: float


@dataclass
class Invoice:
    id: str
    invoice_number: str
    client_id: str
    period_start: date
    period_end: date
    invoice_date: date
    due_date: date
    client_name: str = ""
    client_company: str = ""
    client_email: str = ""
    client_address: str = ""
    client_postal_code: str = ""
    client_city: str = ""
    description: str = ""
    notes: str = ""
    work_periods: List[WorkPeriod] = field(default_factory=list)
    employees_data: List[EmployeeAggregate] = field(default_factory=list)
    global_totals: EmployeeTotals = field(default_factory=EmployeeTotals)
    lines: List[InvoiceLine] = field(default_factory=list)
    subtotal: float = 0.0
    vat_rate: float = 0.0
    vat_amount: float = 0.0
    total_amount: float = 0.0
    currency: str = "EUR"
    is_finalized: bool = False
    finalized_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
