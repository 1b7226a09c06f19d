"""Enregistrement des administrations de doses.

Une administration effective consomme une unité de stock : l'insertion de
l'administration et la sortie de stock sont validées dans la même
transaction, ou pas du tout.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, time, timedelta

from medtrack.core import db, ledger, models, prescriptions
from medtrack.core.config import to_clinic_time
from medtrack.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DOSE_UNIT = 1

_ADMINISTRATION_SELECT = """
    SELECT a.*, m.name AS medication_name
    FROM administrations a
    JOIN medication_items m ON m.id = a.medication_id
"""


def _normalize_status(status: str | None) -> str:
    candidate = (status or "").strip().lower()
    if candidate not in models.ADMINISTRATION_STATUSES:
        raise ValidationError(f"Statut d'administration invalide: {status!r}")
    return candidate


def _build_administration(row: sqlite3.Row) -> models.Administration:
    return models.Administration(
        id=row["id"],
        clinic_id=row["clinic_id"],
        prescription_id=row["prescription_id"],
        medication_id=row["medication_id"],
        medication_name=row["medication_name"],
        patient_id=row["patient_id"],
        dosage=row["dosage"],
        administered_by=row["administered_by"],
        administered_at=row["administered_at"],
        status=row["status"],
        observations=row["observations"],
        created_by=row["created_by"],
        created_at=row["created_at"],
    )


def _fetch_administration_row(
    conn: sqlite3.Connection, clinic_id: str, administration_id: int
) -> sqlite3.Row:
    row = conn.execute(
        f"{_ADMINISTRATION_SELECT} WHERE a.id = ? AND a.clinic_id = ?",
        (administration_id, clinic_id),
    ).fetchone()
    if row is None:
        raise NotFoundError("Administration introuvable")
    return row


def record_administration(
    clinic_id: str,
    payload: models.AdministrationCreate,
    *,
    now: datetime,
    created_by: str | None = None,
) -> models.Administration:
    status = _normalize_status(payload.status)
    administered_by = (payload.administered_by or "").strip()
    if not administered_by:
        raise ValidationError("Le champ 'administered_by' est obligatoire")
    administered_at = to_clinic_time(payload.administered_at or now)
    today = to_clinic_time(now).date()

    db.init_database()
    try:
        with db.write_transaction() as conn:
            prescription = prescriptions.fetch_prescription_row(
                conn, clinic_id, payload.prescription_id
            )
            derived = prescriptions.prescription_status(
                bool(prescription["cancelled"]),
                prescriptions.parse_date(prescription["end_date"]),
                today,
            )
            # Une dose omise ou refusée est un fait clinique : elle reste
            # enregistrable quel que soit le statut de la prescription.
            if status == "administered" and derived != "active":
                raise InvalidStateError(
                    f"Prescription {payload.prescription_id} non active (statut: {derived})"
                )
            dosage = (payload.dosage or "").strip() or prescription["dosage"]
            cur = conn.execute(
                """
                INSERT INTO administrations (
                    clinic_id,
                    prescription_id,
                    medication_id,
                    patient_id,
                    dosage,
                    administered_by,
                    administered_at,
                    status,
                    observations,
                    created_by,
                    created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    clinic_id,
                    prescription["id"],
                    prescription["medication_id"],
                    prescription["patient_id"],
                    dosage,
                    administered_by,
                    administered_at.isoformat(),
                    status,
                    payload.observations,
                    created_by,
                    db.utcnow_iso(),
                ),
            )
            administration_id = cur.lastrowid
            if status == "administered":
                ledger.apply_movement_in(
                    conn,
                    clinic_id,
                    prescription["medication_id"],
                    "decrease",
                    DOSE_UNIT,
                    notes=f"Administration #{administration_id}",
                    created_by=created_by,
                    administration_id=administration_id,
                )
            administration = _build_administration(
                _fetch_administration_row(conn, clinic_id, administration_id)
            )
    except InsufficientStockError as exc:
        logger.warning(
            "[ADMINISTRATION] Refused clinic=%s prescription_id=%s medication_id=%s stock=%s",
            clinic_id,
            payload.prescription_id,
            exc.medication_id,
            exc.available,
        )
        raise
    logger.info(
        "[ADMINISTRATION] Recorded clinic=%s administration_id=%s prescription_id=%s status=%s",
        clinic_id,
        administration.id,
        administration.prescription_id,
        administration.status,
    )
    return administration


def get_administration(clinic_id: str, administration_id: int) -> models.Administration:
    db.init_database()
    with db.get_connection() as conn:
        return _build_administration(_fetch_administration_row(conn, clinic_id, administration_id))


def update_observations(
    clinic_id: str, administration_id: int, observations: str | None
) -> models.Administration:
    db.init_database()
    with db.write_transaction() as conn:
        _fetch_administration_row(conn, clinic_id, administration_id)
        conn.execute(
            "UPDATE administrations SET observations = ? WHERE id = ?",
            (observations, administration_id),
        )
        administration = _build_administration(
            _fetch_administration_row(conn, clinic_id, administration_id)
        )
    logger.info(
        "[ADMINISTRATION] Observations updated clinic=%s administration_id=%s",
        clinic_id,
        administration_id,
    )
    return administration


def _day_bounds(day: date) -> tuple[str, str]:
    start = datetime.combine(day, time.min)
    return start.isoformat(), (start + timedelta(days=1)).isoformat()


def list_administrations(
    clinic_id: str,
    day: date,
    *,
    patient_id: str | None = None,
    prescription_id: int | None = None,
) -> list[models.Administration]:
    """Toutes les administrations d'une journée, pour la tournée."""
    start, end = _day_bounds(day)
    filters = ["a.clinic_id = ?", "a.administered_at >= ?", "a.administered_at < ?"]
    params: list[object] = [clinic_id, start, end]
    if patient_id:
        filters.append("a.patient_id = ?")
        params.append(patient_id)
    if prescription_id is not None:
        filters.append("a.prescription_id = ?")
        params.append(prescription_id)
    db.init_database()
    with db.get_connection() as conn:
        cur = conn.execute(
            f"{_ADMINISTRATION_SELECT} WHERE {' AND '.join(filters)} "
            "ORDER BY a.administered_at DESC, a.id DESC",
            params,
        )
        return [_build_administration(row) for row in cur.fetchall()]


def count_administrations(clinic_id: str, day: date) -> int:
    start, end = _day_bounds(day)
    db.init_database()
    with db.get_connection() as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total
            FROM administrations
            WHERE clinic_id = ? AND administered_at >= ? AND administered_at < ?
            """,
            (clinic_id, start, end),
        ).fetchone()
        return row["total"]
