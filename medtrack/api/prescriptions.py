"""Routes pour les prescriptions."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from medtrack.api.clinic_context import get_actor, get_clinic_id, get_today
from medtrack.api.errors import http_error
from medtrack.core import models, prescriptions
from medtrack.core.errors import MedtrackError

router = APIRouter()


@router.get("/", response_model=list[models.Prescription])
async def list_prescriptions(
    patient_id: str | None = Query(default=None),
    status: str | None = Query(default=None, description="active, completed ou cancelled"),
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> list[models.Prescription]:
    try:
        return prescriptions.list_prescriptions(
            clinic_id, today=today, patient_id=patient_id, status=status
        )
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.post("/", response_model=models.Prescription, status_code=201)
async def create_prescription(
    payload: models.PrescriptionCreate,
    clinic_id: str = Depends(get_clinic_id),
    actor: str | None = Depends(get_actor),
    today: date = Depends(get_today),
) -> models.Prescription:
    try:
        return prescriptions.create_prescription(clinic_id, payload, actor, today=today)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.get("/{prescription_id}", response_model=models.Prescription)
async def get_prescription(
    prescription_id: int,
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> models.Prescription:
    try:
        return prescriptions.get_prescription(clinic_id, prescription_id, today=today)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.put("/{prescription_id}", response_model=models.Prescription)
async def update_prescription(
    prescription_id: int,
    payload: models.PrescriptionUpdate,
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> models.Prescription:
    try:
        return prescriptions.update_prescription(clinic_id, prescription_id, payload, today=today)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.post("/{prescription_id}/cancel", response_model=models.Prescription)
async def cancel_prescription(
    prescription_id: int,
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> models.Prescription:
    try:
        return prescriptions.cancel_prescription(clinic_id, prescription_id, today=today)
    except MedtrackError as exc:
        raise http_error(exc) from exc
