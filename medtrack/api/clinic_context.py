"""Dépendances communes : clinique courante, horloge et auteur."""
from __future__ import annotations

from datetime import date, datetime, timezone

from fastapi import Depends, Header, HTTPException

from medtrack.core.config import to_clinic_time


def get_clinic_id(x_clinic_id: str | None = Header(default=None)) -> str:
    clinic_id = (x_clinic_id or "").strip()
    if not clinic_id:
        raise HTTPException(status_code=400, detail="En-tête X-Clinic-Id manquant")
    return clinic_id


def get_actor(x_user_id: str | None = Header(default=None)) -> str | None:
    actor = (x_user_id or "").strip()
    return actor or None


def get_now() -> datetime:
    return datetime.now(timezone.utc)


def get_today(now: datetime = Depends(get_now)) -> date:
    return to_clinic_time(now).date()
