import csv
import io

from botocore.exceptions import ClientError

from app.utils import pdf_report

HEADERS = {"X-User-Id": "user-1"}


class FakeS3:
    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = {}

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        if self.fail:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.uploads[key] = (fileobj.read(), ExtraArgs["ContentType"])


def test_financial_report_uploads_pdf_and_csv(client, stored_records, monkeypatch):
    fake = FakeS3()
    monkeypatch.setattr(pdf_report, "s3", fake)

    response = client.get("/api/reports/financial", headers=HEADERS)
    assert response.status_code == 200
    body = response.json()

    assert body["currency"] == "USD"
    assert body["pdf_report_url"].endswith(f"reports/user-1/{body['report_id']}.pdf")
    assert body["csv_report_url"].endswith(f"reports/user-1/{body['report_id']}.csv")

    pdf_bytes, pdf_type = fake.uploads[f"reports/user-1/{body['report_id']}.pdf"]
    assert pdf_type == "application/pdf"
    assert pdf_bytes.startswith(b"%PDF")

    csv_bytes, csv_type = fake.uploads[f"reports/user-1/{body['report_id']}.csv"]
    assert csv_type == "text/csv"
    rows = list(csv.DictReader(io.StringIO(csv_bytes.decode())))
    assert [row["scope"] for row in rows] == ["portfolio", "portfolio", "Taxi", "Van"]
    assert rows[2]["status"] == "profitable"
    assert rows[2]["total_distance"] == "500"
    assert rows[2]["monthly_avg_profit"] == "92.5"
    assert rows[0]["monthly_avg_profit"] == ""


def test_failed_uploads_return_null_links(client, stored_records, monkeypatch):
    monkeypatch.setattr(pdf_report, "s3", FakeS3(fail=True))

    response = client.get("/api/reports/financial", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["pdf_report_url"] is None
    assert response.json()["csv_report_url"] is None


def test_pdf_handles_non_latin_vehicle_names():
    portfolio = {
        "currency": "JPY",
        "analysis": {
            "total_income": 0.0,
            "total_costs": 0.0,
            "net_profit": 0.0,
            "profit_margin_pct": 0.0,
            "roi_pct": 0.0,
            "break_even_surplus": 0.0,
            "break_even_deficit": 0.0,
            "is_break_even": True,
            "is_profitable": False,
            "status": "break_even",
        },
        "by_currency": [],
    }
    vehicles = [{
        "name": "家用車",
        "currency": "JPY",
        "analysis": portfolio["analysis"],
        "monthly_avg_profit": 0.0,
        "efficiency": {"total_distance": 0.0, "cost_per_distance": 0.0, "income_per_distance": 0.0},
    }]
    assert pdf_report.render_pdf("user-1", portfolio, vehicles).startswith(b"%PDF")
