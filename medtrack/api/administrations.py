"""Routes pour les administrations de doses."""
from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query

from medtrack.api.clinic_context import get_actor, get_clinic_id, get_now, get_today
from medtrack.api.errors import http_error
from medtrack.core import administrations, models
from medtrack.core.errors import MedtrackError

router = APIRouter()


@router.get("/", response_model=list[models.Administration])
async def list_administrations(
    day: date | None = Query(default=None, description="Jour de la tournée (défaut: aujourd'hui)"),
    patient_id: str | None = Query(default=None),
    prescription_id: int | None = Query(default=None),
    clinic_id: str = Depends(get_clinic_id),
    today: date = Depends(get_today),
) -> list[models.Administration]:
    return administrations.list_administrations(
        clinic_id,
        day or today,
        patient_id=patient_id,
        prescription_id=prescription_id,
    )


@router.post("/", response_model=models.Administration, status_code=201)
async def record_administration(
    payload: models.AdministrationCreate,
    clinic_id: str = Depends(get_clinic_id),
    actor: str | None = Depends(get_actor),
    now: datetime = Depends(get_now),
) -> models.Administration:
    try:
        return administrations.record_administration(
            clinic_id, payload, now=now, created_by=actor
        )
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.get("/{administration_id}", response_model=models.Administration)
async def get_administration(
    administration_id: int,
    clinic_id: str = Depends(get_clinic_id),
) -> models.Administration:
    try:
        return administrations.get_administration(clinic_id, administration_id)
    except MedtrackError as exc:
        raise http_error(exc) from exc


@router.put("/{administration_id}/observations", response_model=models.Administration)
async def update_administration_observations(
    administration_id: int,
    payload: models.AdministrationObservationsUpdate,
    clinic_id: str = Depends(get_clinic_id),
) -> models.Administration:
    try:
        return administrations.update_observations(
            clinic_id, administration_id, payload.observations
        )
    except MedtrackError as exc:
        raise http_error(exc) from exc
