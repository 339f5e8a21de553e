"""
Analytics Router
Break-even, efficiency and currency trend views over a user's vehicle records
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.analytics import AnalysisRequest, RecordCollections
from app.utils.analyzer import VehicleFinanceAnalyzer
from app.utils.records import find_vehicle, vehicle_name

router = APIRouter()
logger = logging.getLogger(__name__)
finance_analyzer = VehicleFinanceAnalyzer(
    break_even_threshold=settings.BREAK_EVEN_THRESHOLD,
    default_currency=settings.DEFAULT_CURRENCY,
)


async def load_user_records(user_id: str) -> RecordCollections:
    """
    Fetch the four collections concurrently. Analysis only starts once all of
    them have resolved.
    """
    try:
        vehicles, fuel, expenses, incomes = await asyncio.gather(
            run_in_threadpool(dynamo.get_vehicles, user_id),
            run_in_threadpool(dynamo.get_fuel_entries, user_id),
            run_in_threadpool(dynamo.get_expense_entries, user_id),
            run_in_threadpool(dynamo.get_income_entries, user_id),
        )
    except dynamo.RecordFetchError as e:
        logger.error(f"Record fetch failed for user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to load data. Please try again.",
        )
    return RecordCollections(
        vehicles=vehicles,
        fuel_entries=fuel,
        expense_entries=expenses,
        income_entries=incomes,
    )


def _analysis_payload(records: RecordCollections, vehicle_id: Optional[str], currency: Optional[str]) -> Dict[str, Any]:
    fuel, expenses, incomes = records.fuel_entries, records.expense_entries, records.income_entries
    payload: Dict[str, Any] = {
        "portfolio": finance_analyzer.portfolio_summary(fuel, expenses, incomes, currency),
        "trends": finance_analyzer.currency_trends(fuel, expenses, incomes),
    }
    if vehicle_id:
        summary = finance_analyzer.vehicle_summary(vehicle_id, fuel, expenses, incomes, currency)
        vehicle = find_vehicle(records.vehicles, vehicle_id)
        summary["name"] = vehicle_name(vehicle) if vehicle else None
        payload["vehicle"] = summary
    else:
        payload["vehicles"] = finance_analyzer.vehicle_summaries(records.vehicles, fuel, expenses, incomes)
    return payload


@router.get("/summary")
async def portfolio_summary(
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    """
    Portfolio-wide totals, break-even status and a per-currency breakdown.
    """
    records = await load_user_records(user_id)
    logger.info(f"Computing portfolio summary for user {user_id}")
    return finance_analyzer.portfolio_summary(
        records.fuel_entries, records.expense_entries, records.income_entries, currency
    )


@router.get("/vehicles")
async def vehicle_summaries(user_id: str = Depends(get_current_user_id)) -> List[Dict]:
    records = await load_user_records(user_id)
    return finance_analyzer.vehicle_summaries(
        records.vehicles, records.fuel_entries, records.expense_entries, records.income_entries
    )


@router.get("/vehicles/{vehicle_id}")
async def vehicle_summary(
    vehicle_id: str,
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    records = await load_user_records(user_id)
    vehicle = find_vehicle(records.vehicles, vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")

    summary = finance_analyzer.vehicle_summary(
        vehicle_id, records.fuel_entries, records.expense_entries, records.income_entries, currency
    )
    summary["name"] = vehicle_name(vehicle)
    return summary


@router.get("/trends")
async def currency_trends(user_id: str = Depends(get_current_user_id)) -> Dict:
    """
    Monthly cost trends and fuel price history, one series per currency.
    """
    records = await load_user_records(user_id)
    fuel, expenses, incomes = records.fuel_entries, records.expense_entries, records.income_entries
    return {
        "trends": finance_analyzer.currency_trends(fuel, expenses, incomes),
        "breakdown": finance_analyzer.breakdown(fuel, expenses, incomes),
    }


@router.post("/compute")
def compute_analysis(request: AnalysisRequest, user_id: str = Depends(get_current_user_id)) -> Dict:
    """
    Run the full analysis over collections supplied in the request body.
    """
    logger.info(
        f"Computing ad-hoc analysis for user {user_id}: "
        f"{len(request.fuel_entries)} fuel, {len(request.expense_entries)} expense, "
        f"{len(request.income_entries)} income entries"
    )
    try:
        return _analysis_payload(request, request.vehicle_id, request.currency)
    except Exception as e:
        logger.error(f"Unexpected error computing analysis: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")
