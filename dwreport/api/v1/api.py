# dwreport/api/v1/api.py
from fastapi import APIRouter
from dwreport.api.v1.endpoints import admin, dashboard, reports, users

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["Users"])

api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(dashboard.router, prefix="/admin", tags=["Dashboard"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
