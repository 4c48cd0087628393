from __future__ import annotations

import calendar
import math
import statistics
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from backend.app.analytics.keys import PatternKey
from backend.app.analytics.lines import ExpenseLine

RECURRING_MIN_OCCURRENCES = 3
MONTHLY_INTERVAL_DAYS = (25.0, 35.0)
SEASONAL_FACTOR = 1.3
CATEGORY_SPIKE_FACTOR = 1.5
ANOMALY_Z_THRESHOLD = 2.5
DEFAULT_CONFIDENCE = 75.0

# Recurrence cadences the schema supports; only the monthly one is detected today.
FREQUENCY_DAYS: Dict[str, float] = {
    "daily_recurring": 1.0,
    "weekly_recurring": 7.0,
    "monthly_recurring": 30.0,
    "seasonal": 365.0,
}

CategoryNameResolver = Callable[[Optional[str]], Optional[str]]


@dataclass(frozen=True)
class PatternObservation:
    pattern_type: str
    name: str
    amount: float
    data: Dict[str, Any] = field(default_factory=dict)
    confidence: Optional[float] = None
    frequency_days: Optional[float] = None
    description: Optional[str] = None

    def identity(self, user_id: str) -> PatternKey:
        return PatternKey(user_id=user_id, pattern_type=self.pattern_type, name=self.name)

    @property
    def stored_frequency_days(self) -> float:
        if self.pattern_type in FREQUENCY_DAYS:
            return FREQUENCY_DAYS[self.pattern_type]
        return float(self.frequency_days or 0.0)

    @property
    def stored_confidence(self) -> float:
        value = DEFAULT_CONFIDENCE if self.confidence is None else float(self.confidence)
        return max(0.0, min(100.0, value))

    @property
    def stored_description(self) -> str:
        return self.description or f"Pattern detected: {self.pattern_type.replace('_', ' ')}"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.pattern_type, "name": self.name, "amount": round(self.amount, 2)}
        payload.update(self.data)
        if self.confidence is not None:
            payload["confidence"] = round(self.confidence, 2)
        return payload


@dataclass(frozen=True)
class PatternSet:
    recurring: List[PatternObservation]
    seasonal: List[PatternObservation]
    category_spikes: List[PatternObservation]
    anomalies: List[PatternObservation]

    def __iter__(self) -> Iterator[PatternObservation]:
        yield from self.recurring
        yield from self.seasonal
        yield from self.category_spikes
        yield from self.anomalies

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "recurring": [obs.to_dict() for obs in self.recurring],
            "seasonal": [obs.to_dict() for obs in self.seasonal],
            "category_spikes": [obs.to_dict() for obs in self.category_spikes],
            "anomalies": [obs.to_dict() for obs in self.anomalies],
        }


def _round_half_up(amount: float) -> int:
    return int(math.floor(amount + 0.5))


def _sorted_lines(lines: Iterable[ExpenseLine]) -> List[ExpenseLine]:
    return sorted(lines, key=lambda line: (line.date, line.expense_id))


def _deviation_pct(total: float, mean: float) -> float:
    return (total - mean) / mean * 100.0


def recurrence_key(line: ExpenseLine) -> Tuple[int, str]:
    return _round_half_up(line.amount), (line.description or "")[:10]


def detect_recurring(lines: Iterable[ExpenseLine]) -> List[PatternObservation]:
    groups: Dict[Tuple[int, str], List[ExpenseLine]] = {}
    for line in _sorted_lines(lines):
        groups.setdefault(recurrence_key(line), []).append(line)

    recurring: List[PatternObservation] = []
    for key in sorted(groups.keys()):
        rows = groups[key]
        if len(rows) < RECURRING_MIN_OCCURRENCES:
            continue

        intervals = [(rows[i].date - rows[i - 1].date).days for i in range(1, len(rows))]
        avg_interval = sum(intervals) / len(intervals)
        low, high = MONTHLY_INTERVAL_DAYS
        if not (low <= avg_interval <= high):
            continue

        first = rows[0]
        description = first.description or f"Recurring expense of {first.amount:.2f}"
        rounded_amount, _ = key
        recurring.append(
            PatternObservation(
                pattern_type="monthly_recurring",
                # Same label at two price points is two patterns.
                name=f"{description} ({rounded_amount})",
                amount=first.amount,
                confidence=85.0 + min(len(rows), 10) * 1.5,
                description=description,
                data={
                    "description": description,
                    "frequency": "monthly",
                    "occurrences": len(rows),
                    "average_interval_days": round(avg_interval, 2),
                    "first_date": first.date.isoformat(),
                    "last_date": rows[-1].date.isoformat(),
                },
            )
        )
    return recurring


def detect_seasonal(lines: Iterable[ExpenseLine]) -> List[PatternObservation]:
    totals: Dict[str, float] = {}
    for line in _sorted_lines(lines):
        month = f"{line.date.month:02d}"
        totals[month] = totals.get(month, 0.0) + line.amount

    if not totals:
        return []
    mean = sum(totals.values()) / len(totals)
    if mean <= 0:
        return []

    seasonal: List[PatternObservation] = []
    for month in sorted(totals.keys()):
        total = totals[month]
        if total <= mean * SEASONAL_FACTOR:
            continue
        deviation = _deviation_pct(total, mean)
        month_name = calendar.month_name[int(month)]
        seasonal.append(
            PatternObservation(
                pattern_type="seasonal",
                name=f"Seasonal spike: {month_name}",
                amount=total,
                description=f"Spending in {month_name} is {deviation:.1f}% above the monthly average",
                data={"month": month, "deviation": round(deviation, 2)},
            )
        )
    return seasonal


def detect_category_spikes(
    lines: Iterable[ExpenseLine],
    resolve_name: CategoryNameResolver,
) -> List[PatternObservation]:
    totals: Dict[Optional[str], float] = {}
    for line in _sorted_lines(lines):
        totals[line.category_id] = totals.get(line.category_id, 0.0) + line.amount

    if not totals:
        return []
    mean = sum(totals.values()) / len(totals)
    if mean <= 0:
        return []

    spikes: List[PatternObservation] = []
    for category_id in sorted(totals.keys(), key=lambda k: (k is None, k or "")):
        total = totals[category_id]
        if total <= mean * CATEGORY_SPIKE_FACTOR:
            continue
        deviation = _deviation_pct(total, mean)
        category_name = resolve_name(category_id) or "Unknown"
        spikes.append(
            PatternObservation(
                pattern_type="category_spike",
                name=category_name,
                amount=total,
                description=f"Spending in {category_name} is {deviation:.1f}% above the category average",
                data={
                    "category_id": category_id,
                    "category": category_name,
                    "deviation": round(deviation, 2),
                },
            )
        )
    return spikes


def detect_anomalies(lines: Iterable[ExpenseLine]) -> List[PatternObservation]:
    ordered = _sorted_lines(lines)
    if not ordered:
        return []

    amounts = [line.amount for line in ordered]
    mean = statistics.fmean(amounts)
    std_dev = statistics.pstdev(amounts)
    if std_dev == 0:
        return []

    anomalies: List[PatternObservation] = []
    for line in ordered:
        z_score = abs(line.amount - mean) / std_dev
        if z_score <= ANOMALY_Z_THRESHOLD:
            continue
        anomalies.append(
            PatternObservation(
                pattern_type="anomaly",
                name=f"Unusual expense {line.expense_id}",
                amount=line.amount,
                description=f"Expense of {line.amount:.2f} on {line.date.isoformat()} is {z_score:.1f} standard deviations from the mean",
                data={
                    "expense_id": line.expense_id,
                    "z_score": round(z_score, 2),
                    "date": line.date.isoformat(),
                },
            )
        )
    return anomalies


def detect_patterns(
    lines: Iterable[ExpenseLine],
    resolve_name: CategoryNameResolver,
) -> PatternSet:
    materialized = list(lines)
    return PatternSet(
        recurring=detect_recurring(materialized),
        seasonal=detect_seasonal(materialized),
        category_spikes=detect_category_spikes(materialized, resolve_name),
        anomalies=detect_anomalies(materialized),
    )
