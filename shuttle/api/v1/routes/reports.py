from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shuttle.db.session import get_db
from shuttle.api.deps import admin_only
from shuttle.models.user import User
from shuttle.services import report_service

router = APIRouter(tags=["reports"])


@router.get("/admin/reports/occupancy")
def admin_occupancy_report(startDate: date, endDate: date, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    return report_service.occupancy_report(db, startDate, endDate)

@router.get("/admin/reports/revenue")
def admin_revenue_report(startDate: date, endDate: date, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    return report_service.revenue_report(db, startDate, endDate)

@router.get("/admin/dashboard/stats")
def admin_dashboard_stats(db: Session = Depends(get_db), me: User = Depends(admin_only)):
    return report_service.dashboard_stats(db)
