from fastapi import APIRouter

from ocs_report.api.report import router as report_router

api_router = APIRouter()

# Note: Health endpoint is defined in main.py without auth requirement
api_router.include_router(report_router)
