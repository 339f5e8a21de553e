"""
Currency-segmented trends.

No exchange rates are applied anywhere in this module: records are grouped by
their own currency code first and every monetary rollup happens inside one
group.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from app.utils.records import (
    EXPENSE,
    FUEL,
    INCOME,
    LITERS,
    NormalizedRecord,
    normalize_records,
    valid_records,
)

LITERS_PER_GALLON = 3.78541


@dataclass
class CurrencyTrendPoint:
    month: str
    fuel_cost: float = 0.0
    expense_cost: float = 0.0
    total_cost: float = 0.0
    fill_up_count: int = 0
    income: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FuelPricePoint:
    date: str
    price_per_unit_volume: float
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CurrencyStats:
    currency: str
    total_fuel_cost: float
    total_expense_cost: float
    total_income: float
    net_cost: float
    entry_count: int
    total_distance: float = 0.0
    cost_per_distance: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _valid(records: Optional[Iterable[Any]], kind: Optional[str], default_currency: str) -> List[NormalizedRecord]:
    if records is None:
        return []
    records = list(records)
    if kind is None and all(isinstance(record, NormalizedRecord) for record in records):
        return valid_records(records)
    return valid_records(normalize_records(records, kind, default_currency))


def segment_by_currency(
    records: Optional[Iterable[Any]],
    kind: Optional[str] = None,
    default_currency: str = "USD",
) -> Dict[str, List[NormalizedRecord]]:
    """
    Partition valid records by currency code, in order of first appearance.
    Raw records need `kind`; already-normalized records do not.
    """
    segments: Dict[str, List[NormalizedRecord]] = {}
    for record in _valid(records, kind, default_currency):
        segments.setdefault(record.currency, []).append(record)
    return segments


def normalized_volume(record: NormalizedRecord) -> float:
    """Fuel volume in liters; 0 when the volume is missing or unusable."""
    if record.volume is None or record.volume <= 0:
        return 0.0
    if record.volume_unit == LITERS:
        return record.volume
    return record.volume * LITERS_PER_GALLON


def odometer_distance(fuel: Iterable[NormalizedRecord]) -> float:
    """
    Kilometres covered according to the odometer: highest minus lowest reading.
    Returns 0 with fewer than two readings.
    """
    readings = [record.odometer for record in fuel if record.odometer is not None]
    if len(readings) < 2:
        return 0.0
    return max(0.0, max(readings) - min(readings))


def monthly_trend(
    fuel: Optional[Iterable[Any]],
    expense: Optional[Iterable[Any]],
    income: Optional[Iterable[Any]] = None,
    default_currency: str = "USD",
) -> List[CurrencyTrendPoint]:
    """Month-by-month cost buckets for records of a single currency."""
    buckets: Dict[str, CurrencyTrendPoint] = {}

    def bucket(record: NormalizedRecord) -> CurrencyTrendPoint:
        if record.month not in buckets:
            buckets[record.month] = CurrencyTrendPoint(month=record.month)
        return buckets[record.month]

    for record in _valid(fuel, FUEL, default_currency):
        point = bucket(record)
        point.fuel_cost += record.amount
        point.fill_up_count += 1

    for record in _valid(expense, EXPENSE, default_currency):
        bucket(record).expense_cost += record.amount

    for record in _valid(income, INCOME, default_currency):
        bucket(record).income += record.amount

    trend = []
    for month in sorted(buckets):
        point = buckets[month]
        point.fuel_cost = round(point.fuel_cost, 2)
        point.expense_cost = round(point.expense_cost, 2)
        point.income = round(point.income, 2)
        point.total_cost = point.fuel_cost + point.expense_cost
        trend.append(point)
    return trend


def fuel_price_trend(
    fuel: Optional[Iterable[Any]],
    default_currency: str = "USD",
) -> List[FuelPricePoint]:
    points = []
    for record in _valid(fuel, FUEL, default_currency):
        volume = normalized_volume(record)
        if volume <= 0:
            continue
        points.append(FuelPricePoint(
            date=record.date,
            price_per_unit_volume=round(record.amount / volume, 4),
            currency=record.currency,
        ))
    return sorted(points, key=lambda point: point.date)


def build_currency_trends(
    fuel: Optional[Iterable[Any]],
    expense: Optional[Iterable[Any]],
    income: Optional[Iterable[Any]],
    default_currency: str = "USD",
) -> Dict[str, Dict[str, list]]:
    fuel_by_currency = segment_by_currency(fuel, FUEL, default_currency)
    expense_by_currency = segment_by_currency(expense, EXPENSE, default_currency)
    income_by_currency = segment_by_currency(income, INCOME, default_currency)

    currencies = sorted(set(fuel_by_currency) | set(expense_by_currency) | set(income_by_currency))
    return {
        code: {
            "monthly": monthly_trend(
                fuel_by_currency.get(code, []),
                expense_by_currency.get(code, []),
                income_by_currency.get(code, []),
            ),
            "fuel_prices": fuel_price_trend(fuel_by_currency.get(code, [])),
        }
        for code in currencies
    }


def currency_breakdown(
    fuel: Optional[Iterable[Any]],
    expense: Optional[Iterable[Any]],
    income: Optional[Iterable[Any]],
    default_currency: str = "USD",
) -> List[CurrencyStats]:
    """
    Per-currency totals ordered by the size of their net cost. Each currency
    also carries the kilometres its fuel records cover, summed per vehicle, and
    the fuel cost per kilometre (None when no distance is known).
    """
    totals: Dict[str, Dict[str, float]] = defaultdict(
        lambda: {FUEL: 0.0, EXPENSE: 0.0, INCOME: 0.0, "count": 0}
    )
    fuel_by_vehicle: Dict[str, Dict[str, List[NormalizedRecord]]] = defaultdict(lambda: defaultdict(list))
    for records, kind in ((fuel, FUEL), (expense, EXPENSE), (income, INCOME)):
        for record in _valid(records, kind, default_currency):
            totals[record.currency][kind] += record.amount
            totals[record.currency]["count"] += 1
            if kind == FUEL:
                fuel_by_vehicle[record.currency][record.vehicle_id].append(record)

    stats = []
    for code, values in totals.items():
        distance = sum(odometer_distance(records) for records in fuel_by_vehicle[code].values())
        stats.append(CurrencyStats(
            currency=code,
            total_fuel_cost=round(values[FUEL], 2),
            total_expense_cost=round(values[EXPENSE], 2),
            total_income=round(values[INCOME], 2),
            net_cost=round(values[FUEL] + values[EXPENSE] - values[INCOME], 2),
            entry_count=int(values["count"]),
            total_distance=round(distance, 2),
            cost_per_distance=round(values[FUEL] / distance, 4) if distance > 0 else None,
        ))
    return sorted(stats, key=lambda item: (-abs(item.net_cost), item.currency))
