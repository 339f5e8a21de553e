"""
Health Check Router
Liveness endpoint and connectivity checks for DynamoDB and S3
"""
from fastapi import APIRouter
from datetime import datetime, timezone
import logging
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.db import dynamo
from app.utils import pdf_report

router = APIRouter()
logger = logging.getLogger(__name__)

TABLES = {
    "vehicles": (settings.DYNAMO_VEHICLES_TABLE, "vehicles_table"),
    "fuel_entries": (settings.DYNAMO_FUEL_TABLE, "fuel_table"),
    "expense_entries": (settings.DYNAMO_EXPENSES_TABLE, "expenses_table"),
    "income_entries": (settings.DYNAMO_INCOME_TABLE, "income_table"),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": _now(),
    }


@router.get("/status")
def aws_services_status():
    """
    Check connectivity of the record tables and the reports bucket.
    """
    status = {
        "timestamp": _now(),
        "services": {}
    }

    dynamodb_status = {
        "connected": False,
        "tables": {},
        "region": settings.DYNAMO_REGION,
    }
    for key, (name, attribute) in TABLES.items():
        try:
            getattr(dynamo, attribute).scan(Limit=1)
            dynamodb_status["tables"][key] = {"name": name, "status": "accessible"}
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            dynamodb_status["tables"][key] = {"name": name, "status": "error", "error": f"{error_code}: {str(e)}"}
            logger.error(f"DynamoDB check failed for {name}: {str(e)}")
        except BotoCoreError as e:
            dynamodb_status["tables"][key] = {"name": name, "status": "error", "error": str(e)}
            logger.error(f"DynamoDB check failed for {name}: {str(e)}")

    dynamodb_status["connected"] = all(
        table["status"] == "accessible" for table in dynamodb_status["tables"].values()
    )
    status["services"]["dynamodb"] = dynamodb_status

    s3_status = {
        "connected": False,
        "bucket": settings.S3_BUCKET_NAME,
        "region": settings.S3_REGION,
        "error": None
    }
    try:
        pdf_report.s3.head_bucket(Bucket=settings.S3_BUCKET_NAME)
        s3_status["connected"] = True
        s3_status["status"] = "accessible"
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        s3_status["error"] = f"{error_code}: {str(e)}"
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")
    except BotoCoreError as e:
        s3_status["error"] = str(e)
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")

    status["services"]["s3"] = s3_status

    all_connected = all(
        service.get("connected", False)
        for service in status["services"].values()
    )
    status["overall_status"] = "healthy" if all_connected else "degraded"

    return status
