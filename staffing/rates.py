from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .errors import ResolutionError
from .logging import get_logger
from .models import Contract, TimeEntry

logger = get_logger(__name__)


class RateResolver:
    """Hours-weighted billing rate over one employee's week.

    Per entry the rate comes from the entry's own billing rate, then the
    contract billing rate, then the contract hourly rate. The last step bills
    the client at the employee's pay rate; it is kept until the owners of the
    pricing policy decide otherwise.
    """

    def __init__(self, contracts: Mapping[str, Contract]) -> None:
        self.contracts = contracts
        self._contract_rates: Dict[str, Optional[float]] = {}
        self.unresolved_contracts: Set[str] = set()

    def _contract_rate(self, contract_id: str) -> Optional[float]:
        if contract_id in self._contract_rates:
            return self._contract_rates[contract_id]
        rate: Optional[float] = None
        contract = self.contracts.get(contract_id)
        if contract is None:
            logger.warning("contract_not_found", contract_id=contract_id)
        else:
            rate = contract.billing_rate or contract.hourly_rate or None
        self._contract_rates[contract_id] = rate
        return rate

    def resolve_entry_rate(self, entry: TimeEntry) -> float:
        if entry.billing_rate:
            return float(entry.billing_rate)
        rate = self._contract_rate(entry.contract_id)
        if not rate:
            raise ResolutionError(f"No billing rate for contract {entry.contract_id}")
        return float(rate)

    def resolve_weekly_billing_rate(self, week_entries: Iterable[TimeEntry]) -> Tuple[float, List[float]]:
        total_hours = 0.0
        weighted = 0.0
        rates: List[float] = []
        for entry in week_entries:
            try:
                rate = self.resolve_entry_rate(entry)
            except ResolutionError as exc:
                if entry.contract_id not in self.unresolved_contracts:
                    self.unresolved_contracts.add(entry.contract_id)
                    logger.warning("billing_rate_unresolved", entry_id=entry.id, contract_id=entry.contract_id, error=str(exc))
                rate = 0.0
            hours = entry.total_hours or 0.0
            rates.append(rate)
            total_hours += hours
            weighted += hours * rate
        if total_hours == 0:
            return 0.0, rates
        return weighted / total_hours, rates
