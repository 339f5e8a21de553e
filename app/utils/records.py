from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

FUEL = "fuel"
EXPENSE = "expense"
INCOME = "income"
RECORD_KINDS = (FUEL, EXPENSE, INCOME)

LITERS = "liters"
KILOMETERS = "km"
KM_PER_MILE = 1.60934

_ID_FIELDS = ("_id", "id")
_VEHICLE_FIELDS = ("vehicleId", "carId", "vehicle_id")
_ODOMETER_FIELDS = ("odometerReading", "mileage", "odometer")
_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class NormalizedRecord:
    """Canonical shape of a fuel, expense or income entry."""

    kind: str
    id: str
    vehicle_id: str
    amount: Optional[float]
    currency: str
    date: str
    volume: Optional[float] = None
    volume_unit: str = LITERS
    odometer: Optional[float] = None
    distance_unit: str = KILOMETERS
    valid: bool = True
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def month(self) -> str:
        return self.date[:7]


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def _as_number(value: Any) -> Optional[float]:
    """
    Coerce a stored numeric field to float. Returns None for anything that is
    not a finite number, including booleans and blank strings.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _first_present(raw: Dict[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        value = raw.get(name)
        if _as_text(value):
            return value
    return None


def record_id(raw: Dict[str, Any]) -> str:
    """Return the record identifier, preferring `_id` over `id`."""
    return _as_text(_first_present(raw, _ID_FIELDS))


def normalize_record(
    raw: Any,
    kind: str,
    default_currency: str = "USD",
) -> NormalizedRecord:
    if isinstance(raw, NormalizedRecord):
        return raw
    if kind not in RECORD_KINDS:
        raise ValueError(f"Unknown record kind: {kind}")
    if not isinstance(raw, dict):
        raise TypeError(f"Expected a mapping for a {kind} record, got {type(raw).__name__}")

    amount_field = "cost" if kind == FUEL else "amount"
    amount = _as_number(raw.get(amount_field))
    if amount is not None and amount < 0:
        amount = None

    vehicle_id = _as_text(_first_present(raw, _VEHICLE_FIELDS))
    date = _as_text(raw.get("date"))
    currency = _as_text(raw.get("currency")).upper() or default_currency

    volume = None
    volume_unit = LITERS
    odometer = None
    distance_unit = KILOMETERS
    if kind == FUEL:
        volume = _as_number(raw.get("volume"))
        volume_unit = _as_text(raw.get("volumeUnit")).lower() or LITERS
        odometer = _as_number(_first_present(raw, _ODOMETER_FIELDS))
        if odometer is not None and odometer < 0:
            odometer = None
        distance_unit = _as_text(raw.get("distanceUnit")).lower() or KILOMETERS
        # odometer is stored in km
        if odometer is not None and distance_unit != KILOMETERS:
            odometer *= KM_PER_MILE

    valid = amount is not None and bool(vehicle_id) and bool(_DATE_PREFIX.match(date))

    return NormalizedRecord(
        kind=kind,
        id=record_id(raw),
        vehicle_id=vehicle_id,
        amount=amount,
        currency=currency,
        date=date,
        volume=volume,
        volume_unit=volume_unit,
        odometer=odometer,
        distance_unit=distance_unit,
        valid=valid,
        raw=raw,
    )


def normalize_records(
    raws: Optional[Iterable[Any]],
    kind: str,
    default_currency: str = "USD",
) -> List[NormalizedRecord]:
    """
    Normalize a collection, keeping invalid records flagged rather than dropped.
    Later duplicates of a non-empty identifier are discarded.
    """
    if raws is None:
        return []

    records: List[NormalizedRecord] = []
    seen: set = set()
    for raw in raws:
        record = normalize_record(raw, kind, default_currency)
        if record.id:
            if record.id in seen:
                logger.debug(f"Skipping duplicate {kind} record {record.id}")
                continue
            seen.add(record.id)
        if not record.valid:
            logger.debug(f"Flagging malformed {kind} record {record.id or '<no id>'}")
        records.append(record)
    return records


def valid_records(records: Iterable[NormalizedRecord]) -> List[NormalizedRecord]:
    return [record for record in records if record.valid]


def matches_vehicle(record_vehicle_id: Any, target_vehicle_id: Any) -> bool:
    """Compare two vehicle identifiers after string normalization."""
    left = _as_text(record_vehicle_id)
    right = _as_text(target_vehicle_id)
    if not left or not right:
        return False
    return left == right


def find_vehicle(vehicles: Optional[Iterable[Dict[str, Any]]], vehicle_id: Any) -> Optional[Dict[str, Any]]:
    for vehicle in vehicles or []:
        if not isinstance(vehicle, dict):
            continue
        if any(matches_vehicle(vehicle.get(name), vehicle_id) for name in _ID_FIELDS):
            return vehicle
    return None


def vehicle_name(vehicle: Optional[Dict[str, Any]]) -> str:
    """Display label for a vehicle, falling back to a short id."""
    if not vehicle:
        return "Unknown Vehicle"
    name = vehicle.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    vid = record_id(vehicle)
    if vid:
        return f"Vehicle {vid[:8]}"
    return "Unknown Vehicle"
