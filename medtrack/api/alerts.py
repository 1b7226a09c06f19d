"""Routes pour les alertes de péremption et de stock."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from medtrack.api.clinic_context import get_clinic_id, get_today
from medtrack.core import alerts, models

router = APIRouter()


@router.get("/expiration", response_model=models.ExpirationScan)
async def scan_expiration(
    threshold_days: int | None = Query(default=None, ge=1),
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> models.ExpirationScan:
    return alerts.scan_clinic(clinic_id, today, threshold_days)


@router.get("/low-stock", response_model=list[models.LowStockEntry])
async def list_low_stock(
    clinic_id: str = Depends(get_clinic_id),
) -> list[models.LowStockEntry]:
    return alerts.list_low_stock(clinic_id)


@router.get("/advisories", response_model=list[models.Advisory])
async def list_advisories(
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> list[models.Advisory]:
    return alerts.build_advisories(clinic_id, today)


@router.get("/summary", response_model=models.DashboardSummary)
async def dashboard_summary(
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> models.DashboardSummary:
    return alerts.dashboard_summary(clinic_id, today)
