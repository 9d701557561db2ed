from __future__ import annotations
from datetime import date
from typing import Dict, Iterable, List

from .models import Client, Contract, Employee
from .storage import Collection, KeyValueStore


class EmployeeDirectory:
    def __init__(self, store: KeyValueStore) -> None:
        self.records = Collection(store, "employees", Employee, "Employee")

    def get_by_id(self, employee_id: str) -> Employee:
        return self.records.get(employee_id)

    def get_many(self, employee_ids: Iterable[str]) -> Dict[str, Employee]:
        return self.records.get_many(employee_ids)

    def list_all(self) -> List[Employee]:
        """Return employees ordered by display name."""

        return sorted(self.records.all(), key=lambda e: e.full_name.lower())

    def save(self, employee: Employee) -> Employee:
        return self.records.put(employee)


class ContractDirectory:
    def __init__(self, store: KeyValueStore) -> None:
        self.records = Collection(store, "contracts", Contract, "Contract")

    def get_by_id(self, contract_id: str) -> Contract:
        return self.records.get(contract_id)

    def get_many(self, contract_ids: Iterable[str]) -> Dict[str, Contract]:
        return self.records.get_many(contract_ids)

    def list_all(self) -> List[Contract]:
        return sorted(self.records.all(), key=lambda c: (c.start_date, c.id))

    def for_client(self, client_id: str, start: date, end: date) -> List[Contract]:
        return [c for c in self.list_all() if c.client_id == client_id and c.overlaps(start, end)]

    def save(self, contract: Contract) -> Contract:
        return self.records.put(contract)


class ClientDirectory:
    def __init__(self, store: KeyValueStore) -> None:
        self.records = Collection(store, "clients", Client, "Client")

    def get_by_id(self, client_id: str) -> Client:
        return self.records.get(client_id)

    def list_all(self) -> List[Client]:
        return sorted(self.records.all(), key=lambda c: c.company_name.lower())

    def save(self, client: Client) -> Client:
        return self.records.put(client)
