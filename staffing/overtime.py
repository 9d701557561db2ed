from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable

from .config import Settings
from .models import OvertimeSplit, TimeEntry


@dataclass(frozen=True)
class TieredWeeklyRule:
    """Weekly overtime bands: normal up to the threshold, a fixed band at the
    first multiplier, everything beyond at the second one."""

    normal_threshold: float = 35.0
    band_hours: float = 8.0
    band_multiplier: float = 1.25
    excess_multiplier: float = 1.50

    @classmethod
    def from_settings(cls, settings: Settings) -> TieredWeeklyRule:
        return cls(
            normal_threshold=settings.normal_weekly_hours,
            band_hours=settings.overtime_125_band_hours,
            band_multiplier=settings.overtime_125_multiplier,
            excess_multiplier=settings.overtime_150_multiplier,
        )

    def classify_week(self, total_hours: float) -> OvertimeSplit:
        total_hours = max(total_hours, 0.0)
        normal = min(total_hours, self.normal_threshold)
        remaining = total_hours - normal
        band = min(remaining, self.band_hours)
        remaining -= band
        return OvertimeSplit(
            total_week_hours=round(total_hours, 2),
            normal_hours=round(normal, 2),
            overtime_125=round(band, 2),
            overtime_150=round(max(remaining, 0.0), 2),
        )


DEFAULT_RULE = TieredWeeklyRule()


def split_overtime(week_entries: Iterable[TimeEntry], rule: TieredWeeklyRule = DEFAULT_RULE) -> OvertimeSplit:
    # contracts do not matter here, only the employee's week total
    total = sum(entry.total_hours or 0.0 for entry in week_entries)
    return rule.classify_week(total)
