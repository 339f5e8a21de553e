import pytest

from app.utils.records import EXPENSE, FUEL, normalize_records
from app.utils.trends import (
    build_currency_trends,
    currency_breakdown,
    fuel_price_trend,
    monthly_trend,
    segment_by_currency,
)

mixed_fuel = [
    {"id": "f1", "carId": "car1", "cost": 50, "volume": 20, "volumeUnit": "liters", "currency": "USD", "date": "2023-04-02"},
    {"id": "f2", "carId": "car2", "cost": 45, "volume": 18, "volumeUnit": "liters", "currency": "EUR", "date": "2023-04-03"},
]


def test_fuel_prices_are_segmented_by_currency():
    trends = build_currency_trends(mixed_fuel, [], [])

    assert list(trends) == ["EUR", "USD"]
    for code in ("EUR", "USD"):
        prices = trends[code]["fuel_prices"]
        assert len(prices) == 1
        assert prices[0].price_per_unit_volume == 2.5
        assert prices[0].currency == code


def test_monthly_expense_buckets():
    expenses = [
        {"id": "e1", "carId": "car1", "amount": 100, "currency": "USD", "date": "2023-01-15"},
        {"id": "e2", "carId": "car1", "amount": 200, "currency": "USD", "date": "2023-02-10"},
    ]
    trend = monthly_trend([], expenses)

    assert [point.month for point in trend] == ["2023-01", "2023-02"]
    assert [point.expense_cost for point in trend] == [100.0, 200.0]
    assert [point.fuel_cost for point in trend] == [0.0, 0.0]
    assert [point.fill_up_count for point in trend] == [0, 0]


def test_monthly_trend_sorted_with_fill_ups_and_totals():
    fuel = [
        {"id": "f1", "carId": "c", "cost": 40.1, "currency": "USD", "date": "2023-03-20"},
        {"id": "f2", "carId": "c", "cost": 39.9, "currency": "USD", "date": "2022-12-01"},
        {"id": "f3", "carId": "c", "cost": 20.2, "currency": "USD", "date": "2023-03-02T08:30:00"},
    ]
    expenses = [{"id": "e1", "carId": "c", "amount": 0.1, "currency": "USD", "date": "2023-03-05"}]
    incomes = [{"id": "i1", "carId": "c", "amount": 300, "currency": "USD", "date": "2022-12-31"}]

    trend = monthly_trend(fuel, expenses, incomes)

    assert [point.month for point in trend] == ["2022-12", "2023-03"]
    assert [point.fill_up_count for point in trend] == [1, 2]
    assert trend[0].income == 300.0
    assert trend[1].fuel_cost == 60.3
    for point in trend:
        assert point.total_cost == point.fuel_cost + point.expense_cost
    assert trend[1].total_cost == pytest.approx(60.4)


def test_monthly_trend_skips_malformed_records():
    expenses = [
        {"id": "e1", "carId": "c", "amount": 10, "date": "2023-01-01"},
        {"id": "e2", "carId": "c", "amount": "ten", "date": "2023-02-01"},
        {"id": "e3", "carId": "c", "amount": 10},
    ]
    trend = monthly_trend(None, expenses)
    assert [point.to_dict() for point in trend] == [
        {
            "month": "2023-01",
            "fuel_cost": 0.0,
            "expense_cost": 10.0,
            "total_cost": 10.0,
            "fill_up_count": 0,
            "income": 0.0,
        }
    ]


def test_gallons_are_converted_to_liters():
    fuel = [{"id": "f1", "carId": "c", "cost": 37.8541, "volume": 10, "volumeUnit": "gallons", "currency": "USD", "date": "2023-01-01"}]
    prices = fuel_price_trend(fuel)
    assert prices[0].price_per_unit_volume == 1.0


def test_zero_or_missing_volume_is_skipped():
    fuel = [
        {"id": "f1", "carId": "c", "cost": 30, "volume": 0, "currency": "USD", "date": "2023-01-03"},
        {"id": "f2", "carId": "c", "cost": 30, "currency": "USD", "date": "2023-01-02"},
        {"id": "f3", "carId": "c", "cost": 30, "volume": "x", "currency": "USD", "date": "2023-01-04"},
        {"id": "f4", "carId": "c", "cost": 30, "volume": 15, "currency": "USD", "date": "2023-01-01"},
    ]
    prices = fuel_price_trend(fuel)
    assert [(point.date, point.price_per_unit_volume) for point in prices] == [("2023-01-01", 2.0)]


def test_price_points_are_ordered_by_date():
    fuel = [
        {"id": "f1", "carId": "c", "cost": 30, "volume": 10, "currency": "USD", "date": "2023-02-01"},
        {"id": "f2", "carId": "c", "cost": 20, "volume": 10, "currency": "USD", "date": "2023-01-01"},
    ]
    assert [point.date for point in fuel_price_trend(fuel)] == ["2023-01-01", "2023-02-01"]


def test_segment_by_currency_keeps_first_appearance_order():
    expenses = [
        {"id": "e1", "carId": "c", "amount": 1, "currency": "GBP", "date": "2023-01-01"},
        {"id": "e2", "carId": "c", "amount": 1, "currency": "AUD", "date": "2023-01-01"},
        {"id": "e3", "carId": "c", "amount": 1, "currency": "GBP", "date": "2023-01-01"},
        {"id": "e4", "carId": "c", "amount": None, "currency": "CHF", "date": "2023-01-01"},
    ]
    segments = segment_by_currency(expenses, EXPENSE)
    assert list(segments) == ["GBP", "AUD"]
    assert [record.id for record in segments["GBP"]] == ["e1", "e3"]

    normalized = normalize_records(mixed_fuel, FUEL)
    assert list(segment_by_currency(normalized)) == ["USD", "EUR"]


def test_raw_records_need_a_kind():
    with pytest.raises(ValueError):
        segment_by_currency(mixed_fuel)


def test_currency_trends_include_income_only_currencies():
    incomes = [{"id": "i1", "carId": "c", "amount": 500, "currency": "JPY", "date": "2023-06-01"}]
    trends = build_currency_trends(mixed_fuel, [], incomes)
    assert list(trends) == ["EUR", "JPY", "USD"]
    assert trends["JPY"]["fuel_prices"] == []
    assert trends["JPY"]["monthly"][0].income == 500.0
    assert trends["JPY"]["monthly"][0].total_cost == 0.0


def test_currency_breakdown_orders_by_net_cost():
    expenses = [{"id": "e1", "carId": "c", "amount": 400, "currency": "GBP", "date": "2023-01-01"}]
    incomes = [{"id": "i1", "carId": "c", "amount": 70, "currency": "USD", "date": "2023-01-01"}]
    breakdown = currency_breakdown(mixed_fuel, expenses, incomes)

    assert [stats.currency for stats in breakdown] == ["GBP", "EUR", "USD"]
    usd = breakdown[2]
    assert usd.net_cost == -20.0
    assert usd.entry_count == 2
    assert breakdown[0].to_dict()["total_expense_cost"] == 400.0


def test_currency_breakdown_reports_distance_per_currency():
    fuel = [
        {"id": "f1", "carId": "car1", "cost": 40, "mileage": 1000, "currency": "USD", "date": "2023-01-01"},
        {"id": "f2", "carId": "car1", "cost": 40, "mileage": 1300, "currency": "USD", "date": "2023-02-01"},
        {"id": "f3", "carId": "car2", "cost": 20, "mileage": 100, "distanceUnit": "miles", "currency": "USD", "date": "2023-01-10"},
        {"id": "f4", "carId": "car2", "cost": 20, "mileage": 200, "distanceUnit": "miles", "currency": "USD", "date": "2023-02-10"},
        {"id": "f5", "carId": "car3", "cost": 60, "mileage": 500, "currency": "EUR", "date": "2023-01-01"},
    ]
    breakdown = {stats.currency: stats for stats in currency_breakdown(fuel, [], [])}

    usd = breakdown["USD"]
    assert usd.total_distance == 460.93
    assert usd.cost_per_distance == round(120 / 460.934, 4)

    eur = breakdown["EUR"]
    assert eur.total_distance == 0.0
    assert eur.cost_per_distance is None
    assert eur.to_dict()["cost_per_distance"] is None
