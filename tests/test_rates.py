from datetime import date

import pytest

from staffing.errors import ResolutionError
from staffing.models import Contract, TimeEntry
from staffing import rates
from staffing.rates import RateResolver


def contract(contract_id: str, billing_rate=None, hourly_rate=None) -> Contract:
    return Contract(
        id=contract_id,
        client_id="c1",
        employee_id="e1",
        title="Mission",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        billing_rate=billing_rate,
        hourly_rate=hourly_rate,
    )


def entry(entry_id: str, contract_id: str, hours: float, billing_rate=None, day: int = 4) -> TimeEntry:
    return TimeEntry(
        id=entry_id,
        employee_id="e1",
        contract_id=contract_id,
        client_id="c1",
        worked_date=date(2024, 3, day),
        total_hours=hours,
        billing_rate=billing_rate,
    )


def test_equal_hours_on_two_contracts_average_the_rates():
    resolver = RateResolver({})

    average, rates = resolver.resolve_weekly_billing_rate(
        [entry("a", "k1", 4, billing_rate=10), entry("b", "k2", 4, billing_rate=20)]
    )

    assert average == 15
    assert rates == [10, 20]


def test_average_is_weighted_by_hours():
    resolver = RateResolver({})

    average, _ = resolver.resolve_weekly_billing_rate(
        [entry("a", "k1", 2, billing_rate=10), entry("b", "k2", 6, billing_rate=20)]
    )

    assert average == pytest.approx(17.5)


def test_falls_back_to_contract_billing_then_hourly_rate():
    resolver = RateResolver({"k1": contract("k1", billing_rate=30, hourly_rate=12), "k2": contract("k2", hourly_rate=14)})

    assert resolver.resolve_entry_rate(entry("a", "k1", 7)) == 30
    assert resolver.resolve_entry_rate(entry("b", "k2", 7)) == 14
    assert resolver.resolve_entry_rate(entry("c", "k2", 7, billing_rate=22)) == 22


def test_entry_without_any_rate_raises_resolution_error():
    resolver = RateResolver({"k1": contract("k1")})

    with pytest.raises(ResolutionError):
        resolver.resolve_entry_rate(entry("a", "k1", 7))


def test_unknown_contract_contributes_zero_without_aborting_the_week():
    resolver = RateResolver({"k1": contract("k1", billing_rate=20)})

    average, rates = resolver.resolve_weekly_billing_rate([entry("a", "missing", 4), entry("b", "k1", 4, day=5)])

    assert rates == [0.0, 20.0]
    assert average == 10


def test_zero_hours_gives_zero_rate():
    resolver = RateResolver({})

    average, _ = resolver.resolve_weekly_billing_rate([entry("a", "k1", 0, billing_rate=20)])

    assert average == 0


def test_unresolved_contract_is_reported_once(monkeypatch):
    warnings = []

    class RecordingLogger:
        def warning(self, event, **kw):
            warnings.append((event, kw.get("contract_id")))

    monkeypatch.setattr(rates, "logger", RecordingLogger())
    resolver = RateResolver({"k1": contract("k1")})

    resolver.resolve_weekly_billing_rate([entry("a", "k1", 4), entry("b", "k1", 4, day=5)])
    resolver.resolve_weekly_billing_rate([entry("c", "k1", 4, day=11)])

    assert warnings == [("billing_rate_unresolved", "k1")]
    assert resolver.unresolved_contracts == {"k1"}
