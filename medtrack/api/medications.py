"""Routes pour le catalogue des médicaments et les mouvements de stock."""
from __future__ import annotations

import io
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from starlette.responses import StreamingResponse

from medtrack.api.clinic_context import get_actor, get_clinic_id, get_now, get_today
from medtrack.api.errors import http_error
from medtrack.core import alerts, inventory, ledger, models
from medtrack.core.config import settings, to_clinic_time
from medtrack.core.errors import MedtrackError
from medtrack.services.inventory_pdf import render_inventory_pdf

router = APIRouter()


@router.get("/", response_model=list[models.DispensaryEntry])
async def list_medications(
    search: str | None = Query(default=None, description="Filtre nom/principe actif/catégorie"),
    include_inactive: bool = Query(default=True),
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> list[models.DispensaryEntry]:
    return alerts.dispensary_view(
        clinic_id, today, include_inactive=include_inactive, search=search
    )


@router.post("/", response_model=models.MedicationItem, status_code=201)
async def create_medication(
    payload: models.MedicationItemCreate,
    clinic_id: str = Depends(get_clinic_id),
    actor: str | None = Depends(get_actor),
) -> models.MedicationItem:
    try:
        return inventory.create_item(clinic_id, payload, created_by=actor)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.get("/export/pdf")
async def export_medications_pdf(
    clinic_id: str = Depends(get_clinic_id),
    now: datetime = Depends(get_now),
    today: date = Depends(get_today),
) -> StreamingResponse:
    entries = alerts.dispensary_view(clinic_id, today)
    pdf_bytes = render_inventory_pdf(
        clinic_label=clinic_id,
        entries=entries,
        generated_at=to_clinic_time(now),
        threshold_days=settings.DISPENSARY_EXPIRY_DAYS,
    )
    filename = f"medicaments_{today.isoformat()}.pdf"
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(io.BytesIO(pdf_bytes), media_type="application/pdf", headers=headers)


@router.get("/reconciliation", response_model=list[models.StockReconciliation])
async def reconcile_clinic_stock(
    clinic_id: str = Depends(get_clinic_id),
) -> list[models.StockReconciliation]:
    return ledger.reconcile_clinic(clinic_id)


@router.get("/{item_id}", response_model=models.MedicationItem)
async def get_medication(
    item_id: int,
    clinic_id: str = Depends(get_clinic_id),
) -> models.MedicationItem:
    try:
        return inventory.get_item(clinic_id, item_id)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.put("/{item_id}", response_model=models.MedicationItem)
async def update_medication(
    item_id: int,
    payload: models.MedicationItemUpdate,
    clinic_id: str = Depends(get_clinic_id),
) -> models.MedicationItem:
    try:
        return inventory.update_item(clinic_id, item_id, payload)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.post("/{item_id}/deactivate", response_model=models.MedicationItem)
async def deactivate_medication(
    item_id: int,
    clinic_id: str = Depends(get_clinic_id),
) -> models.MedicationItem:
    try:
        return inventory.deactivate_item(clinic_id, item_id)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.post("/{item_id}/reactivate", response_model=models.MedicationItem)
async def reactivate_medication(
    item_id: int,
    clinic_id: str = Depends(get_clinic_id),
) -> models.MedicationItem:
    try:
        return inventory.reactivate_item(clinic_id, item_id)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.post("/{item_id}/movements", response_model=models.StockMovement, status_code=201)
async def record_stock_movement(
    item_id: int,
    payload: models.StockMovementCreate,
    clinic_id: str = Depends(get_clinic_id),
    actor: str | None = Depends(get_actor),
) -> models.StockMovement:
    try:
        return ledger.apply_movement(
            clinic_id,
            item_id,
            payload.adjustment_type,
            payload.quantity,
            notes=payload.notes,
            created_by=actor,
        )
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.get("/{item_id}/movements", response_model=list[models.StockMovement])
async def fetch_stock_movements(
    item_id: int,
    clinic_id: str = Depends(get_clinic_id),
) -> list[models.StockMovement]:
    try:
        return ledger.list_movements(clinic_id, item_id)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.get("/{item_id}/stock", response_model=models.StockLevelReport)
async def get_medication_stock(
    item_id: int,
    clinic_id: str = Depends(get_clinic_id),
) -> models.StockLevelReport:
    try:
        return models.StockLevelReport(
            medication_id=item_id, stock=ledger.get_current_stock(clinic_id, item_id)
        )
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.get("/{item_id}/reconciliation", response_model=models.StockReconciliation)
async def reconcile_medication_stock(
    item_id: int,
    clinic_id: str = Depends(get_clinic_id),
) -> models.StockReconciliation:
    try:
        return ledger.reconcile(clinic_id, item_id)
    except MedtrackError as exc:
        raise http_error(exc) from exc
