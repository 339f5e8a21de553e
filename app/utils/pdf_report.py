import csv
import io
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize S3 client using default AWS credential chain
# (environment variables, AWS credentials file, or IAM role)
s3 = boto3.client("s3", region_name=settings.S3_REGION)

CSV_FIELDS = [
    "scope",
    "currency",
    "total_income",
    "total_costs",
    "net_profit",
    "profit_margin_pct",
    "roi_pct",
    "status",
    "monthly_avg_profit",
    "cost_per_distance",
    "income_per_distance",
    "profit_per_distance",
    "total_distance",
]


def _latin1(text: Any) -> str:
    # Core PDF fonts only cover latin-1
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _line(pdf: FPDF, text: str) -> None:
    pdf.cell(0, 10, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def _heading(pdf: FPDF, text: str) -> None:
    pdf.ln(5)
    pdf.set_font("Helvetica", "B", 12)
    _line(pdf, text)
    pdf.set_font("Helvetica", "", 12)


def _money(amount: float, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def _status_label(analysis: Dict[str, Any]) -> str:
    return {"profitable": "Profitable", "break_even": "Break-Even"}.get(analysis["status"], "Loss")


def _break_even_sentence(analysis: Dict[str, Any], currency: str) -> str:
    if analysis["is_profitable"]:
        return f"{_money(analysis['break_even_surplus'], currency)} above break-even point."
    if analysis["is_break_even"]:
        return "At break-even point. Income equals costs."
    return f"{_money(analysis['break_even_deficit'], currency)} more income needed to reach break-even."


def render_pdf(user_id: str, portfolio: Dict[str, Any], vehicles: List[Dict[str, Any]]) -> bytes:
    currency = portfolio["currency"]
    analysis = portfolio["analysis"]

    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    _line(pdf, "Financial Analysis & Break-Even")

    pdf.set_font("Helvetica", "", 12)
    _line(pdf, f"User ID: {user_id}")
    _line(pdf, f"Total Income: {_money(analysis['total_income'], currency)}")
    _line(pdf, f"Total Costs: {_money(analysis['total_costs'], currency)}")
    _line(pdf, f"Net Profit: {_money(analysis['net_profit'], currency)}")
    _line(pdf, f"Profit Margin: {analysis['profit_margin_pct']:.1f}%  ROI: {analysis['roi_pct']:.1f}%")
    _line(pdf, f"Status: {_status_label(analysis)}")
    _line(pdf, _break_even_sentence(analysis, currency))

    if len(portfolio["by_currency"]) > 1:
        _heading(pdf, "By Currency:")
        for segment in portfolio["by_currency"]:
            seg = segment["analysis"]
            _line(
                pdf,
                f"- {segment['currency']}: net {_money(seg['net_profit'], segment['currency'])} "
                f"({_status_label(seg)})",
            )

    _heading(pdf, "Vehicles:")
    if not vehicles:
        _line(pdf, "None")
    for summary in vehicles:
        seg = summary["analysis"]
        eff = summary["efficiency"]
        _line(pdf, f"- {summary['name']}: net {_money(seg['net_profit'], summary['currency'])} ({_status_label(seg)})")
        _line(pdf, f"    Monthly Avg Profit: {_money(summary['monthly_avg_profit'], summary['currency'])}")
        if eff["total_distance"] > 0:
            _line(
                pdf,
                f"    {eff['total_distance']:,.0f} km, "
                f"cost {eff['cost_per_distance']:.4f} / income {eff['income_per_distance']:.4f} per km",
            )

    return bytes(pdf.output())


def render_csv(portfolio: Dict[str, Any], vehicles: List[Dict[str, Any]]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()

    for segment in portfolio["by_currency"]:
        writer.writerow({"scope": "portfolio", "currency": segment["currency"], **segment["analysis"]})

    for summary in vehicles:
        writer.writerow({
            "scope": summary["name"],
            "currency": summary["currency"],
            **summary["analysis"],
            **summary["efficiency"],
            "monthly_avg_profit": summary["monthly_avg_profit"],
        })
    return output.getvalue()


def _upload(buffer: io.BytesIO, s3_key: str, content_type: str) -> Optional[str]:
    try:
        s3.upload_fileobj(buffer, settings.S3_BUCKET_NAME, s3_key, ExtraArgs={"ContentType": content_type})
        return f"https://{settings.S3_BUCKET_NAME}.s3.{settings.S3_REGION}.amazonaws.com/{s3_key}"
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to upload {s3_key}: {e}")
        return None


def generate_and_upload_pdf(user_id, portfolio, vehicles, report_id):
    buffer = io.BytesIO(render_pdf(user_id, portfolio, vehicles))
    return _upload(buffer, f"reports/{user_id}/{report_id}.pdf", "application/pdf")


def generate_and_upload_csv(user_id, portfolio, vehicles, report_id):
    buffer = io.BytesIO(render_csv(portfolio, vehicles).encode())
    return _upload(buffer, f"reports/{user_id}/{report_id}.csv", "text/csv")
