"""Gestion des prescriptions.

Le statut d'une prescription n'est jamais stocké : il est recalculé à chaque
lecture à partir du drapeau d'annulation, de la date de fin et de la date du
jour fournie par l'appelant.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime

from medtrack.core import db, inventory, models
from medtrack.core.errors import InvalidStateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_PRESCRIPTION_SELECT = """
    SELECT p.*, m.name AS medication_name
    FROM prescriptions p
    JOIN medication_items m ON m.id = p.medication_id
"""


def prescription_status(cancelled: bool, end_date: date | None, today: date) -> str:
    if cancelled:
        return "cancelled"
    if end_date is not None and end_date < today:
        return "completed"
    return "active"


def parse_date(value: object) -> date | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _build_prescription(row: sqlite3.Row, today: date) -> models.Prescription:
    end_date = parse_date(row["end_date"])
    cancelled = bool(row["cancelled"])
    return models.Prescription(
        id=row["id"],
        clinic_id=row["clinic_id"],
        patient_id=row["patient_id"],
        medication_id=row["medication_id"],
        medication_name=row["medication_name"],
        dosage=row["dosage"],
        frequency=row["frequency"],
        start_date=row["start_date"],
        end_date=end_date,
        cancelled=cancelled,
        cancelled_at=row["cancelled_at"],
        observations=row["observations"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        status=prescription_status(cancelled, end_date, today),
    )


def fetch_prescription_row(
    conn: sqlite3.Connection, clinic_id: str, prescription_id: int
) -> sqlite3.Row:
    row = conn.execute(
        f"{_PRESCRIPTION_SELECT} WHERE p.id = ? AND p.clinic_id = ?",
        (prescription_id, clinic_id),
    ).fetchone()
    if row is None:
        raise NotFoundError("Prescription introuvable")
    return row


def _require_text(value: str | None, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"Le champ '{label}' est obligatoire")
    return cleaned


def _check_dates(start_date: date, end_date: date | None) -> None:
    if end_date is not None and end_date < start_date:
        raise ValidationError("La date de fin doit être postérieure ou égale à la date de début")


def create_prescription(
    clinic_id: str,
    payload: models.PrescriptionCreate,
    created_by: str | None = None,
    *,
    today: date,
) -> models.Prescription:
    patient_id = _require_text(payload.patient_id, "patient_id")
    dosage = _require_text(payload.dosage, "dosage")
    frequency = _require_text(payload.frequency, "frequency")
    _check_dates(payload.start_date, payload.end_date)
    db.init_database()
    with db.write_transaction() as conn:
        inventory.require_active_item(conn, clinic_id, payload.medication_id)
        cur = conn.execute(
            """
            INSERT INTO prescriptions (
                clinic_id,
                patient_id,
                medication_id,
                dosage,
                frequency,
                start_date,
                end_date,
                observations,
                created_by,
                created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                clinic_id,
                patient_id,
                payload.medication_id,
                dosage,
                frequency,
                payload.start_date.isoformat(),
                payload.end_date.isoformat() if payload.end_date else None,
                payload.observations,
                created_by,
                db.utcnow_iso(),
            ),
        )
        prescription = _build_prescription(
            fetch_prescription_row(conn, clinic_id, cur.lastrowid), today
        )
    logger.info(
        "[PRESCRIPTION] Created clinic=%s prescription_id=%s patient_id=%s medication_id=%s",
        clinic_id,
        prescription.id,
        patient_id,
        payload.medication_id,
    )
    return prescription


def get_prescription(clinic_id: str, prescription_id: int, *, today: date) -> models.Prescription:
    db.init_database()
    with db.get_connection() as conn:
        return _build_prescription(fetch_prescription_row(conn, clinic_id, prescription_id), today)


def list_prescriptions(
    clinic_id: str,
    *,
    today: date,
    patient_id: str | None = None,
    status: str | None = None,
) -> list[models.Prescription]:
    if status is not None and status not in models.PRESCRIPTION_STATUSES:
        raise ValidationError(f"Statut de prescription invalide: {status!r}")
    db.init_database()
    filters = ["p.clinic_id = ?"]
    params: list[object] = [clinic_id]
    if patient_id:
        filters.append("p.patient_id = ?")
        params.append(patient_id)
    with db.get_connection() as conn:
        cur = conn.execute(
            f"{_PRESCRIPTION_SELECT} WHERE {' AND '.join(filters)} "
            "ORDER BY p.created_at DESC, p.id DESC",
            params,
        )
        prescriptions = [_build_prescription(row, today) for row in cur.fetchall()]
    if status is not None:
        prescriptions = [item for item in prescriptions if item.status == status]
    return prescriptions


def _is_referenced(conn: sqlite3.Connection, prescription_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM administrations WHERE prescription_id = ? LIMIT 1",
        (prescription_id,),
    ).fetchone()
    return row is not None


def update_prescription(
    clinic_id: str,
    prescription_id: int,
    payload: models.PrescriptionUpdate,
    *,
    today: date,
) -> models.Prescription:
    fields = payload.model_dump(exclude_unset=True)
    for name in ("dosage", "frequency"):
        if name in fields:
            fields[name] = _require_text(fields[name], name)
    db.init_database()
    with db.write_transaction() as conn:
        row = fetch_prescription_row(conn, clinic_id, prescription_id)
        if row["cancelled"]:
            raise InvalidStateError("Une prescription annulée ne peut plus être modifiée")
        if _is_referenced(conn, prescription_id):
            raise InvalidStateError(
                "Une prescription déjà administrée ne peut plus être modifiée"
            )
        if "end_date" in fields:
            _check_dates(parse_date(row["start_date"]), fields["end_date"])
            if fields["end_date"] is not None:
                fields["end_date"] = fields["end_date"].isoformat()
        if fields:
            assignments = ", ".join(f"{col} = ?" for col in fields)
            conn.execute(
                f"UPDATE prescriptions SET {assignments} WHERE id = ?",
                [*fields.values(), prescription_id],
            )
        prescription = _build_prescription(
            fetch_prescription_row(conn, clinic_id, prescription_id), today
        )
    logger.info(
        "[PRESCRIPTION] Updated clinic=%s prescription_id=%s fields=%s",
        clinic_id,
        prescription_id,
        sorted(fields),
    )
    return prescription


def cancel_prescription(
    clinic_id: str,
    prescription_id: int,
    *,
    today: date,
    cancelled_at: datetime | None = None,
) -> models.Prescription:
    db.init_database()
    with db.write_transaction() as conn:
        row = fetch_prescription_row(conn, clinic_id, prescription_id)
        if row["cancelled"]:
            raise InvalidStateError("Prescription déjà annulée")
        conn.execute(
            "UPDATE prescriptions SET cancelled = 1, cancelled_at = ? WHERE id = ?",
            (
                cancelled_at.isoformat() if cancelled_at else db.utcnow_iso(),
                prescription_id,
            ),
        )
        prescription = _build_prescription(
            fetch_prescription_row(conn, clinic_id, prescription_id), today
        )
    logger.info("[PRESCRIPTION] Cancelled clinic=%s prescription_id=%s", clinic_id, prescription_id)
    return prescription


def count_active_prescriptions(clinic_id: str, *, today: date) -> int:
    db.init_database()
    with db.get_connection() as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total
            FROM prescriptions
            WHERE clinic_id = ?
              AND cancelled = 0
              AND (end_date IS NULL OR end_date >= ?)
            """,
            (clinic_id, today.isoformat()),
        ).fetchone()
        return row["total"]
