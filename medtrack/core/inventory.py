"""Catalogue des médicaments d'une clinique."""
from __future__ import annotations

import logging
import sqlite3

from medtrack.core import db, ledger, models
from medtrack.core.errors import InvalidStateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_REQUIRED_TEXT_FIELDS = ("name", "dosage", "category")
INITIAL_STOCK_NOTE = "Stock initial"


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _require_text(fields: dict[str, object], name: str) -> str:
    value = fields.get(name)
    cleaned = _clean_text(value) if isinstance(value, str) else None
    if not cleaned:
        raise ValidationError(f"Le champ '{name}' est obligatoire")
    return cleaned


def _require_clinic(clinic_id: str | None) -> str:
    cleaned = _clean_text(clinic_id)
    if not cleaned:
        raise ValidationError("Identifiant de clinique manquant")
    return cleaned


def build_item(row: sqlite3.Row) -> models.MedicationItem:
    return models.MedicationItem(
        id=row["id"],
        clinic_id=row["clinic_id"],
        name=row["name"],
        dosage=row["dosage"],
        category=row["category"],
        active_ingredient=row["active_ingredient"],
        manufacturer=row["manufacturer"],
        batch_number=row["batch_number"],
        expiration_date=row["expiration_date"],
        observations=row["observations"],
        stock=row["stock"],
        status=row["status"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def create_item(
    clinic_id: str,
    payload: models.MedicationItemCreate,
    created_by: str | None = None,
) -> models.MedicationItem:
    clinic_id = _require_clinic(clinic_id)
    fields = payload.model_dump()
    for name in _REQUIRED_TEXT_FIELDS:
        fields[name] = _require_text(fields, name)
    if payload.stock < 0:
        raise ValidationError("Le stock initial ne peut pas être négatif")
    expiration_date = (
        payload.expiration_date.isoformat() if payload.expiration_date is not None else None
    )
    now = db.utcnow_iso()
    db.init_database()
    with db.write_transaction() as conn:
        cur = conn.execute(
            """
            INSERT INTO medication_items (
                clinic_id,
                name,
                dosage,
                category,
                active_ingredient,
                manufacturer,
                batch_number,
                expiration_date,
                observations,
                stock,
                status,
                created_by,
                created_at,
                updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 'active', ?, ?, ?)
            """,
            (
                clinic_id,
                fields["name"],
                fields["dosage"],
                fields["category"],
                _clean_text(payload.active_ingredient),
                _clean_text(payload.manufacturer),
                _clean_text(payload.batch_number),
                expiration_date,
                payload.observations,
                created_by,
                now,
                now,
            ),
        )
        item_id = cur.lastrowid
        # Le stock initial passe par le journal comme toute autre entrée.
        if payload.stock > 0:
            ledger.apply_movement_in(
                conn,
                clinic_id,
                item_id,
                "increase",
                payload.stock,
                notes=INITIAL_STOCK_NOTE,
                created_by=created_by,
            )
        item = build_item(ledger.fetch_item_row(conn, clinic_id, item_id))
    logger.info(
        "[INVENTORY] Created clinic=%s medication_id=%s name=%s stock=%s",
        clinic_id,
        item.id,
        item.name,
        item.stock,
    )
    return item


def get_item(clinic_id: str, item_id: int) -> models.MedicationItem:
    db.init_database()
    with db.get_connection() as conn:
        return build_item(ledger.fetch_item_row(conn, clinic_id, item_id))


def list_items(
    clinic_id: str,
    *,
    include_inactive: bool = True,
    search: str | None = None,
) -> list[models.MedicationItem]:
    db.init_database()
    filters = ["clinic_id = ?"]
    params: list[object] = [clinic_id]
    if not include_inactive:
        filters.append("status = 'active'")
    if search and search.strip():
        like = f"%{search.strip()}%"
        filters.append("(name LIKE ? OR active_ingredient LIKE ? OR category LIKE ?)")
        params.extend([like, like, like])
    where_clause = " AND ".join(filters)
    with db.get_connection() as conn:
        cur = conn.execute(
            f"SELECT * FROM medication_items WHERE {where_clause} ORDER BY name COLLATE NOCASE, id",
            params,
        )
        return [build_item(row) for row in cur.fetchall()]


def update_item(
    clinic_id: str, item_id: int, payload: models.MedicationItemUpdate
) -> models.MedicationItem:
    fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items()}
    for name in _REQUIRED_TEXT_FIELDS:
        if name in fields:
            fields[name] = _require_text(fields, name)
    for name in ("active_ingredient", "manufacturer", "batch_number"):
        if name in fields:
            fields[name] = _clean_text(fields[name])
    if "expiration_date" in fields and fields["expiration_date"] is not None:
        fields["expiration_date"] = fields["expiration_date"].isoformat()
    if not fields:
        return get_item(clinic_id, item_id)
    fields["updated_at"] = db.utcnow_iso()
    assignments = ", ".join(f"{col} = ?" for col in fields)
    values = list(fields.values())
    values.extend([item_id, clinic_id])
    db.init_database()
    with db.write_transaction() as conn:
        ledger.fetch_item_row(conn, clinic_id, item_id)
        conn.execute(
            f"UPDATE medication_items SET {assignments} WHERE id = ? AND clinic_id = ?",
            values,
        )
    logger.info(
        "[INVENTORY] Updated clinic=%s medication_id=%s fields=%s",
        clinic_id,
        item_id,
        sorted(k for k in fields if k != "updated_at"),
    )
    return get_item(clinic_id, item_id)


def _set_status(clinic_id: str, item_id: int, status: str) -> models.MedicationItem:
    db.init_database()
    with db.write_transaction() as conn:
        row = ledger.fetch_item_row(conn, clinic_id, item_id)
        if status == "inactive" and row["stock"] > 0:
            raise InvalidStateError(
                "Impossible de désactiver un médicament encore en stock : "
                "ramener le stock à zéro par un mouvement"
            )
        if row["status"] != status:
            conn.execute(
                "UPDATE medication_items SET status = ?, updated_at = ? WHERE id = ?",
                (status, db.utcnow_iso(), item_id),
            )
        item = build_item(ledger.fetch_item_row(conn, clinic_id, item_id))
    logger.info(
        "[INVENTORY] Status clinic=%s medication_id=%s status=%s", clinic_id, item_id, status
    )
    return item


def deactivate_item(clinic_id: str, item_id: int) -> models.MedicationItem:
    return _set_status(clinic_id, item_id, "inactive")


def reactivate_item(clinic_id: str, item_id: int) -> models.MedicationItem:
    return _set_status(clinic_id, item_id, "active")


def require_active_item(
    conn: sqlite3.Connection, clinic_id: str, item_id: int
) -> sqlite3.Row:
    row = ledger.fetch_item_row(conn, clinic_id, item_id)
    if row["status"] != "active":
        raise NotFoundError("Médicament introuvable ou inactif")
    return row


def has_clinic_data(clinic_id: str) -> bool:
    db.init_database()
    with db.get_connection() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS total FROM medication_items WHERE clinic_id = ?",
            (clinic_id,),
        ).fetchone()
        return row["total"] > 0
