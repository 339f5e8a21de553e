import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.security import get_current_user_id
from app.models.analytics import ReportLinks
from app.routers.analytics import finance_analyzer, load_user_records
from app.utils import pdf_report

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/financial", response_model=ReportLinks)
async def generate_financial_report(
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    user_id: str = Depends(get_current_user_id),
) -> ReportLinks:
    """
    Render the break-even report as PDF and CSV, upload both to S3 and return
    their download links.
    """
    records = await load_user_records(user_id)

    try:
        logger.info(f"Generating financial report for user_id: {user_id}")
        portfolio = finance_analyzer.portfolio_summary(
            records.fuel_entries, records.expense_entries, records.income_entries, currency
        )
        vehicles = finance_analyzer.vehicle_summaries(
            records.vehicles, records.fuel_entries, records.expense_entries, records.income_entries
        )
    except Exception as e:
        logger.error(f"Error analyzing records: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error analyzing records: {str(e)}")

    report_id = f"{user_id}_{portfolio['currency']}_{uuid.uuid4().hex[:6]}"

    try:
        pdf_url = pdf_report.generate_and_upload_pdf(user_id, portfolio, vehicles, report_id)
        logger.info(f"PDF uploaded: {pdf_url}")
    except Exception as e:
        logger.error(f"Error uploading PDF: {str(e)}")
        pdf_url = None

    try:
        csv_url = pdf_report.generate_and_upload_csv(user_id, portfolio, vehicles, report_id)
        logger.info(f"CSV uploaded: {csv_url}")
    except Exception as e:
        logger.error(f"Error uploading CSV: {str(e)}")
        csv_url = None

    return ReportLinks(
        report_id=report_id,
        currency=portfolio["currency"],
        pdf_report_url=pdf_url,
        csv_report_url=csv_url,
    )
