from __future__ import annotations
from dataclasses import fields, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from uuid import uuid4

from .config import Settings
from .errors import ConflictError, NotFoundError, ValidationError
from .logging import get_logger
from .models import TimeEntry, TimeEntryStatus
from .storage import Collection, KeyValueStore

logger = get_logger(__name__)

PROTECTED_FIELDS = {"id", "status", "created_at", "validated_at", "invoiced_at", "invoice_id"}
EDITABLE_FIELDS = {f.name for f in fields(TimeEntry)} - PROTECTED_FIELDS - {"updated_at"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _minutes(value: str) -> int:
    hour, minute = (int(part) for part in value.split(":"))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"{value} is not a clock time")
    return hour * 60 + minute


class TimeEntryStore:
    """Time-tracking records, one per employee, contract and date."""

    def __init__(self, store: KeyValueStore, settings: Settings) -> None:
        self.records = Collection(store, "time_entries", TimeEntry, "Time entry")
        self.settings = settings

    def calculate_hours(self, start_time: str, end_time: str, break_minutes: int = 0) -> Tuple[float, float, float]:
        """Return ``(total, normal, overtime)`` hours for one day, split at the daily threshold."""
        worked = _minutes(end_time) - _minutes(start_time) - (break_minutes or 0)
        return self.daily_split(max(worked / 60, 0.0))

    def daily_split(self, total: float) -> Tuple[float, float, float]:
        normal = min(total, self.settings.daily_overtime_threshold)
        overtime = max(total - self.settings.daily_overtime_threshold, 0.0)
        return round(total, 2), round(normal, 2), round(overtime, 2)

    def validate_time_entry_data(self, data: Dict[str, Any], today: Optional[date] = None) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        for required in ("employee_id", "contract_id", "worked_date"):
            if not data.get(required):
                errors[required] = f"{required} is required"

        start_time, end_time = data.get("start_time"), data.get("end_time")
        if start_time and end_time:
            try:
                if _minutes(end_time) <= _minutes(start_time):
                    errors["end_time"] = "end_time must be after start_time"
            except ValueError:
                errors["end_time"] = "times must be formatted HH:MM"
        elif data.get("total_hours") is None:
            errors["total_hours"] = "total_hours or start_time/end_time is required"

        break_minutes = data.get("break_minutes") or 0
        if break_minutes < 0 or break_minutes > self.settings.max_break_minutes:
            errors["break_minutes"] = f"break_minutes must be between 0 and {self.settings.max_break_minutes}"

        total_hours = data.get("total_hours")
        if total_hours is not None and total_hours < 0:
            errors["total_hours"] = "total_hours must not be negative"

        worked_date = data.get("worked_date")
        if isinstance(worked_date, date) and worked_date > (today or date.today()):
            errors["worked_date"] = "worked_date cannot be in the future"
        return errors

    def _find_by_key(self, entries: Iterable[TimeEntry], employee_id: str, contract_id: str, worked_date: date) -> Optional[TimeEntry]:
        for entry in entries:
            if entry.natural_key == (employee_id, contract_id, worked_date):
                return entry
        return None

    def create_time_entry(
        self,
        *,
        employee_id: str,
        contract_id: str,
        client_id: str,
        worked_date: date,
        total_hours: Optional[float] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        break_minutes: int = 0,
        hourly_rate: Optional[float] = None,
        billing_rate: Optional[float] = None,
        notes: Optional[str] = None,
        entry_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> TimeEntry:
        data = {
            "employee_id": employee_id,
            "contract_id": contract_id,
            "worked_date": worked_date,
            "total_hours": total_hours,
            "start_time": start_time,
            "end_time": end_time,
            "break_minutes": break_minutes,
        }
        errors = self.validate_time_entry_data(data, today=today)
        if errors:
            raise ValidationError(errors)

        entries = self.records.all()
        if self._find_by_key(entries, str(employee_id), contract_id, worked_date):
            raise ConflictError(f"A time entry already exists for {employee_id} on contract {contract_id} at {worked_date}")

        if total_hours is not None:
            # an explicit total wins over the clock times
            total, normal, overtime = self.daily_split(total_hours)
        else:
            total, normal, overtime = self.calculate_hours(start_time, end_time, break_minutes)

        now = _utcnow()
        entry = TimeEntry(
            id=entry_id or str(uuid4()),
            employee_id=str(employee_id),
            contract_id=contract_id,
            client_id=str(client_id),
            worked_date=worked_date,
            total_hours=round(total, 2),
            normal_hours=round(normal, 2),
            overtime_hours=round(overtime, 2),
            hourly_rate=hourly_rate,
            billing_rate=billing_rate,
            notes=notes,
            start_time=start_time,
            end_time=end_time,
            break_minutes=break_minutes,
            created_at=now,
            updated_at=now,
        )
        entries.append(entry)
        self.records.replace_all(entries)
        logger.info("time_entry_created", entry_id=entry.id, employee_id=entry.employee_id, worked_date=worked_date.isoformat())
        return entry

    def get(self, entry_id: str) -> TimeEntry:
        return self.records.get(entry_id)

    def find(
        self,
        employee_id: Optional[str] = None,
        contract_id: Optional[str] = None,
        client_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[TimeEntryStatus] = None,
    ) -> List[TimeEntry]:
        entries = self.records.all()
        if employee_id:
            entries = [e for e in entries if e.employee_id == employee_id]
        if contract_id:
            entries = [e for e in entries if e.contract_id == contract_id]
        if client_id:
            entries = [e for e in entries if e.client_id == client_id]
        if start:
            entries = [e for e in entries if e.worked_date >= start]
        if end:
            entries = [e for e in entries if e.worked_date <= end]
        if status:
            entries = [e for e in entries if e.status == status]
        return sorted(entries, key=lambda e: (e.worked_date, e.employee_id, e.contract_id))

    def update(self, entry_id: str, **changes: Any) -> TimeEntry:
        unknown = {name: "field cannot be changed" for name in changes if name not in EDITABLE_FIELDS}
        if unknown:
            raise ValidationError(unknown)

        entries = self.records.all()
        index = next((i for i, e in enumerate(entries) if e.id == entry_id), None)
        if index is None:
            raise NotFoundError("Time entry", entry_id)
        current = entries[index]
        if current.status == TimeEntryStatus.INVOICED:
            raise ConflictError(f"Time entry {entry_id} is invoiced and cannot be modified")

        if changes.get("total_hours") is not None:
            total, normal, overtime = self.daily_split(changes["total_hours"])
            changes = {**changes, "total_hours": total, "normal_hours": normal, "overtime_hours": overtime}
        updated = replace(current, **changes, updated_at=_utcnow())
        if updated.natural_key != current.natural_key:
            others = [e for e in entries if e.id != entry_id]
            if self._find_by_key(others, *updated.natural_key):
                raise ConflictError(f"A time entry already exists for {updated.employee_id} on contract {updated.contract_id} at {updated.worked_date}")

        entries[index] = updated
        self.records.replace_all(entries)
        logger.info("time_entry_updated", entry_id=entry_id, fields=sorted(changes))
        return updated

    def delete(self, entry_id: str) -> None:
        entries = self.records.all()
        entry = next((e for e in entries if e.id == entry_id), None)
        if entry is None:
            raise NotFoundError("Time entry", entry_id)
        if entry.status == TimeEntryStatus.INVOICED:
            raise ConflictError(f"Time entry {entry_id} is invoiced and cannot be deleted")
        self.records.replace_all(e for e in entries if e.id != entry_id)
        logger.info("time_entry_deleted", entry_id=entry_id)

    def validate_entry(self, entry_id: str) -> TimeEntry:
        entries = self.records.all()
        index = next((i for i, e in enumerate(entries) if e.id == entry_id), None)
        if index is None:
            raise NotFoundError("Time entry", entry_id)
        entry = entries[index]
        if entry.status != TimeEntryStatus.DRAFT:
            raise ConflictError(f"Only draft entries can be validated, {entry_id} is {entry.status.value}")
        now = _utcnow()
        entries[index] = replace(entry, status=TimeEntryStatus.VALIDATED, validated_at=now, updated_at=now)
        self.records.replace_all(entries)
        logger.info("time_entry_validated", entry_id=entry_id)
        return entries[index]

    def pending_entries(self, employee_id: Optional[str] = None) -> Iterator[TimeEntry]:
        for entry in self.find(employee_id=employee_id):
            if entry.status == TimeEntryStatus.DRAFT:
                yield entry

    def entries_for_invoicing(
        self,
        client_id: str,
        start: date,
        end: date,
        contract_ids: Optional[Iterable[str]] = None,
    ) -> List[TimeEntry]:
        entries = self.find(client_id=client_id, start=start, end=end, status=TimeEntryStatus.VALIDATED)
        if contract_ids is not None:
            wanted = set(contract_ids)
            entries = [e for e in entries if e.contract_id in wanted]
        return entries

    def mark_invoiced(self, entry_ids: Iterable[str], invoice_id: str, when: Optional[datetime] = None) -> List[TimeEntry]:
        """Move validated entries to invoiced in a single write; nothing is written on error."""
        wanted = set(entry_ids)
        when = when or _utcnow()
        entries = self.records.all()
        known = {e.id for e in entries}
        missing = sorted(wanted - known)
        if missing:
            raise NotFoundError("Time entry", missing[0])

        marked: List[TimeEntry] = []
        for index, entry in enumerate(entries):
            if entry.id not in wanted:
                continue
            if entry.status != TimeEntryStatus.VALIDATED:
                raise ConflictError(f"Only validated entries can be invoiced, {entry.id} is {entry.status.value}")
            entries[index] = replace(
                entry, status=TimeEntryStatus.INVOICED, invoiced_at=when, invoice_id=invoice_id, updated_at=when
            )
            marked.append(entries[index])
        if marked:
            self.records.replace_all(entries)
        logger.info("time_entries_invoiced", invoice_id=invoice_id, count=len(marked))
        return marked
