from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class RecordCollections(BaseModel):
    """Raw entry collections as returned by the storage layer."""

    vehicles: List[Dict[str, Any]] = Field(default_factory=list)
    fuel_entries: List[Dict[str, Any]] = Field(default_factory=list)
    expense_entries: List[Dict[str, Any]] = Field(default_factory=list)
    income_entries: List[Dict[str, Any]] = Field(default_factory=list)


class AnalysisRequest(RecordCollections):
    vehicle_id: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class ReportLinks(BaseModel):
    report_id: str
    currency: str
    pdf_report_url: Optional[str] = None
    csv_report_url: Optional[str] = None
