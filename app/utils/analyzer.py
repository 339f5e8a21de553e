from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.utils.records import (
    EXPENSE,
    FUEL,
    INCOME,
    NormalizedRecord,
    matches_vehicle,
    normalize_records,
    record_id,
    vehicle_name,
)
from app.utils.trends import build_currency_trends, currency_breakdown, odometer_distance

logger = logging.getLogger(__name__)

BREAK_EVEN_THRESHOLD = 1.0


@dataclass(frozen=True)
class AggregateTotals:
    total_fuel_cost: float = 0.0
    total_expense_cost: float = 0.0
    total_income: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FinancialAnalysis:
    """Break-even and profitability figures for one scope."""

    total_income: float
    total_costs: float
    net_profit: float
    profit_margin_pct: float
    roi_pct: float
    break_even_point: float
    break_even_surplus: float
    break_even_deficit: float
    is_break_even: bool
    is_profitable: bool

    @property
    def status(self) -> str:
        if self.is_profitable:
            return "profitable"
        if self.is_break_even:
            return "break_even"
        return "loss"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status
        return data


@dataclass(frozen=True)
class EfficiencyMetrics:
    cost_per_distance: float = 0.0
    income_per_distance: float = 0.0
    profit_per_distance: float = 0.0
    total_distance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _scoped(
    records: Optional[Iterable[Any]],
    kind: str,
    vehicle_id: Any = None,
    currency: Optional[str] = None,
    default_currency: str = "USD",
) -> List[NormalizedRecord]:
    """Valid records of one collection, restricted to a vehicle and/or currency."""
    scoped = []
    for record in normalize_records(records, kind, default_currency):
        if not record.valid:
            continue
        if vehicle_id is not None and not matches_vehicle(record.vehicle_id, vehicle_id):
            continue
        if currency and record.currency != currency.strip().upper():
            continue
        scoped.append(record)
    return scoped


def _sum(records: Iterable[NormalizedRecord]) -> float:
    return sum(record.amount for record in records)


def _raw_totals(
    fuel: List[NormalizedRecord],
    expense: List[NormalizedRecord],
    income: List[NormalizedRecord],
) -> Tuple[float, float, float]:
    return _sum(fuel), _sum(expense), _sum(income)


def aggregate_totals(
    fuel: Optional[Iterable[Any]],
    expense: Optional[Iterable[Any]],
    income: Optional[Iterable[Any]],
    vehicle_id: Any = None,
    currency: Optional[str] = None,
    default_currency: str = "USD",
) -> AggregateTotals:
    """
    Sum fuel costs, expense amounts and income amounts. Passing `vehicle_id`
    limits every collection to that vehicle; passing `currency` limits it to a
    single currency. Malformed records are left out of the sums.
    """
    fuel_cost, expense_cost, income_total = _raw_totals(
        _scoped(fuel, FUEL, vehicle_id, currency, default_currency),
        _scoped(expense, EXPENSE, vehicle_id, currency, default_currency),
        _scoped(income, INCOME, vehicle_id, currency, default_currency),
    )
    return AggregateTotals(
        total_fuel_cost=round(fuel_cost, 2),
        total_expense_cost=round(expense_cost, 2),
        total_income=round(income_total, 2),
    )


def analyze_financials(
    totals: Optional[AggregateTotals],
    break_even_threshold: float = BREAK_EVEN_THRESHOLD,
) -> FinancialAnalysis:
    totals = totals or AggregateTotals()
    total_income = totals.total_income or 0.0
    total_costs = (totals.total_fuel_cost or 0.0) + (totals.total_expense_cost or 0.0)
    net_profit = total_income - total_costs

    profit_margin = (net_profit / total_income) * 100 if total_income > 0 else 0.0
    roi = (net_profit / total_costs) * 100 if total_costs > 0 else 0.0

    is_break_even = abs(net_profit) < break_even_threshold
    is_profitable = net_profit > 0 and not is_break_even

    return FinancialAnalysis(
        total_income=total_income,
        total_costs=total_costs,
        net_profit=net_profit,
        profit_margin_pct=profit_margin,
        roi_pct=roi,
        break_even_point=total_costs,
        break_even_surplus=max(0.0, total_income - total_costs),
        break_even_deficit=max(0.0, total_costs - total_income),
        is_break_even=is_break_even,
        is_profitable=is_profitable,
    )


def compute_efficiency(
    vehicle_id: Any,
    fuel: Optional[Iterable[Any]],
    expense: Optional[Iterable[Any]],
    income: Optional[Iterable[Any]],
    currency: Optional[str] = None,
    default_currency: str = "USD",
) -> EfficiencyMetrics:
    """
    Per-distance cost, income and profit for one vehicle. Distance is the spread
    between the highest and lowest odometer reading among its fuel records, in
    kilometres. Readings logged in miles are converted on normalization.
    """
    vehicle_fuel = _scoped(fuel, FUEL, vehicle_id, currency, default_currency)
    total_distance = odometer_distance(vehicle_fuel)
    if total_distance <= 0:
        return EfficiencyMetrics()

    fuel_cost, expense_cost, income_total = _raw_totals(
        vehicle_fuel,
        _scoped(expense, EXPENSE, vehicle_id, currency, default_currency),
        _scoped(income, INCOME, vehicle_id, currency, default_currency),
    )
    cost_per_distance = round((fuel_cost + expense_cost) / total_distance, 4)
    income_per_distance = round(income_total / total_distance, 4)

    return EfficiencyMetrics(
        cost_per_distance=cost_per_distance,
        income_per_distance=income_per_distance,
        profit_per_distance=income_per_distance - cost_per_distance,
        total_distance=round(total_distance),
    )


def representative_currency(
    fuel: Optional[Iterable[Any]],
    expense: Optional[Iterable[Any]],
    income: Optional[Iterable[Any]],
    default: str = "USD",
    vehicle_id: Any = None,
) -> str:
    """Currency of the first valid fuel, then expense, then income record."""
    for records, kind in ((fuel, FUEL), (expense, EXPENSE), (income, INCOME)):
        scoped = _scoped(records, kind, vehicle_id, default_currency=default)
        if scoped:
            return scoped[0].currency
    return default


def months_covered(*collections: Iterable[NormalizedRecord]) -> int:
    """Number of distinct YYYY-MM months among the given records."""
    return len({record.month for records in collections for record in records})


def _currencies(
    fuel: List[NormalizedRecord],
    expense: List[NormalizedRecord],
    income: List[NormalizedRecord],
    vehicle_id: Any = None,
) -> List[str]:
    codes = set()
    for records, kind in ((fuel, FUEL), (expense, EXPENSE), (income, INCOME)):
        codes.update(record.currency for record in _scoped(records, kind, vehicle_id))
    return sorted(codes)


class VehicleFinanceAnalyzer:
    """
    Analytics entry point shared by the API routes and report generation.
    Holds only configuration; every call recomputes from the records passed in.
    """

    def __init__(
        self,
        break_even_threshold: float = BREAK_EVEN_THRESHOLD,
        default_currency: str = "USD",
    ) -> None:
        self._break_even_threshold = break_even_threshold
        self._default_currency = default_currency.strip().upper()

    @property
    def default_currency(self) -> str:
        return self._default_currency

    def totals(self, fuel, expense, income, vehicle_id=None, currency=None) -> AggregateTotals:
        return aggregate_totals(fuel, expense, income, vehicle_id, currency, self._default_currency)

    def analyze(self, totals: AggregateTotals) -> FinancialAnalysis:
        return analyze_financials(totals, self._break_even_threshold)

    def efficiency(self, vehicle_id, fuel, expense, income, currency=None) -> EfficiencyMetrics:
        return compute_efficiency(vehicle_id, fuel, expense, income, currency, self._default_currency)

    def _by_currency(self, fuel, expense, income, currencies, vehicle_id=None) -> List[Dict[str, Any]]:
        segments = []
        for code in currencies:
            code_totals = self.totals(fuel, expense, income, vehicle_id, code)
            segments.append({
                "currency": code,
                "totals": code_totals.to_dict(),
                "analysis": self.analyze(code_totals).to_dict(),
            })
        return segments

    def vehicle_summary(
        self,
        vehicle_id: Any,
        fuel: List[Any],
        expense: List[Any],
        income: List[Any],
        currency: Optional[str] = None,
    ) -> Dict[str, Any]:
        fuel = normalize_records(fuel, FUEL, self._default_currency)
        expense = normalize_records(expense, EXPENSE, self._default_currency)
        income = normalize_records(income, INCOME, self._default_currency)

        vehicle_currencies = _currencies(fuel, expense, income, vehicle_id)
        selected = currency.strip().upper() if currency else representative_currency(
            fuel, expense, income, self._default_currency, vehicle_id
        )
        totals = self.totals(fuel, expense, income, vehicle_id, selected)
        analysis = self.analyze(totals)

        months = months_covered(
            _scoped(fuel, FUEL, vehicle_id, selected),
            _scoped(expense, EXPENSE, vehicle_id, selected),
            _scoped(income, INCOME, vehicle_id, selected),
        )

        return {
            "vehicle_id": str(vehicle_id),
            "currency": selected,
            "mixed_currency": len(vehicle_currencies) > 1,
            "totals": totals.to_dict(),
            "analysis": analysis.to_dict(),
            "monthly_avg_profit": round(analysis.net_profit / months, 2) if months else 0.0,
            "efficiency": self.efficiency(vehicle_id, fuel, expense, income, selected).to_dict(),
            "by_currency": self._by_currency(fuel, expense, income, vehicle_currencies, vehicle_id),
        }

    def vehicle_summaries(
        self,
        vehicles: List[Dict[str, Any]],
        fuel: List[Any],
        expense: List[Any],
        income: List[Any],
    ) -> List[Dict[str, Any]]:
        summaries = []
        for vehicle in vehicles or []:
            vid = record_id(vehicle)
            if not vid:
                logger.debug("Skipping vehicle without an identifier")
                continue
            summary = self.vehicle_summary(vid, fuel, expense, income)
            summary["name"] = vehicle_name(vehicle)
            summaries.append(summary)
        return summaries

    def portfolio_summary(
        self,
        fuel: List[Any],
        expense: List[Any],
        income: List[Any],
        currency: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Single-number view for one currency plus the same view for every
        currency present. Totals are never added across currencies.
        """
        fuel = normalize_records(fuel, FUEL, self._default_currency)
        expense = normalize_records(expense, EXPENSE, self._default_currency)
        income = normalize_records(income, INCOME, self._default_currency)

        selected = currency.strip().upper() if currency else representative_currency(
            fuel, expense, income, self._default_currency
        )
        totals = self.totals(fuel, expense, income, currency=selected)

        currencies = _currencies(fuel, expense, income)
        by_currency = self._by_currency(fuel, expense, income, currencies)

        return {
            "currency": selected,
            "currencies": currencies,
            "totals": totals.to_dict(),
            "analysis": self.analyze(totals).to_dict(),
            "by_currency": by_currency,
            "breakdown": self.breakdown(fuel, expense, income),
        }

    def currency_trends(self, fuel, expense, income) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        trends = build_currency_trends(fuel, expense, income, self._default_currency)
        return {
            code: {
                "monthly": [point.to_dict() for point in series["monthly"]],
                "fuel_prices": [point.to_dict() for point in series["fuel_prices"]],
            }
            for code, series in trends.items()
        }

    def breakdown(self, fuel, expense, income) -> List[Dict[str, Any]]:
        return [
            stats.to_dict()
            for stats in currency_breakdown(fuel, expense, income, self._default_currency)
        ]
