"""Journal des mouvements de stock.

Le journal est la seule voie d'écriture de ``medication_items.stock`` : chaque
variation est enregistrée dans ``stock_movements`` dans la même transaction
que la mise à jour du compteur.
"""
from __future__ import annotations

import logging
import sqlite3

from medtrack.core import db, models
from medtrack.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _normalize_adjustment_type(adjustment_type: str | None) -> str:
    candidate = (adjustment_type or "").strip().lower()
    if candidate not in models.ADJUSTMENT_TYPES:
        raise ValidationError(f"Type de mouvement invalide: {adjustment_type!r}")
    return candidate


def _validate_quantity(adjustment_type: str, quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("La quantité doit être un entier")
    # Une correction fixe une valeur absolue : zéro est accepté.
    if adjustment_type == "correction":
        if quantity < 0:
            raise ValidationError("Le stock corrigé ne peut pas être négatif")
    elif quantity <= 0:
        raise ValidationError("La quantité doit être strictement positive")
    if quantity > models.SQLITE_MAX_INTEGER:
        raise ValidationError("Quantité hors limites")
    return quantity


def fetch_item_row(conn: sqlite3.Connection, clinic_id: str, medication_id: int) -> sqlite3.Row:
    row = conn.execute(
        "SELECT * FROM medication_items WHERE id = ? AND clinic_id = ?",
        (medication_id, clinic_id),
    ).fetchone()
    if row is None:
        raise NotFoundError("Médicament introuvable")
    return row


def _build_movement(row: sqlite3.Row) -> models.StockMovement:
    return models.StockMovement(
        id=row["id"],
        clinic_id=row["clinic_id"],
        medication_id=row["medication_id"],
        sequence=row["sequence"],
        adjustment_type=row["adjustment_type"],
        quantity=row["quantity"],
        delta=row["delta"],
        resulting_stock=row["resulting_stock"],
        notes=row["notes"],
        created_by=row["created_by"],
        administration_id=row["administration_id"],
        created_at=row["created_at"],
    )


def apply_movement_in(
    conn: sqlite3.Connection,
    clinic_id: str,
    medication_id: int,
    adjustment_type: str,
    quantity: int,
    *,
    notes: str | None = None,
    created_by: str | None = None,
    administration_id: int | None = None,
) -> models.StockMovement:
    """Applique un mouvement dans la transaction ouverte par l'appelant.

    ``conn`` doit provenir de :func:`db.write_transaction`.
    """
    normalized = _normalize_adjustment_type(adjustment_type)
    quantity = _validate_quantity(normalized, quantity)
    row = fetch_item_row(conn, clinic_id, medication_id)
    current = row["stock"]
    now = db.utcnow_iso()

    if normalized == "decrease":
        if current - quantity < 0:
            raise InsufficientStockError(medication_id, current, quantity)
        cur = conn.execute(
            """
            UPDATE medication_items
            SET stock = stock - ?, updated_at = ?
            WHERE id = ? AND clinic_id = ? AND stock >= ?
            """,
            (quantity, now, medication_id, clinic_id, quantity),
        )
        if cur.rowcount == 0:
            raise InsufficientStockError(medication_id, current, quantity)
        delta = -quantity
    else:
        delta = quantity if normalized == "increase" else quantity - current
        if current + delta > models.SQLITE_MAX_INTEGER:
            raise ValidationError("Le stock résultant dépasse la capacité maximale")
        cur = conn.execute(
            """
            UPDATE medication_items
            SET stock = ?, updated_at = ?
            WHERE id = ? AND clinic_id = ? AND stock = ?
            """,
            (current + delta, now, medication_id, clinic_id, current),
        )
        if cur.rowcount == 0:
            raise InvalidStateError("Le stock a été modifié par une autre opération")

    sequence = conn.execute(
        "SELECT COALESCE(MAX(sequence), 0) + 1 FROM stock_movements WHERE medication_id = ?",
        (medication_id,),
    ).fetchone()[0]
    cur = conn.execute(
        """
        INSERT INTO stock_movements (
            clinic_id,
            medication_id,
            sequence,
            adjustment_type,
            quantity,
            delta,
            resulting_stock,
            notes,
            created_by,
            administration_id,
            created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            clinic_id,
            medication_id,
            sequence,
            normalized,
            quantity,
            delta,
            current + delta,
            notes,
            created_by,
            administration_id,
            now,
        ),
    )
    inserted = conn.execute(
        "SELECT * FROM stock_movements WHERE id = ?", (cur.lastrowid,)
    ).fetchone()
    return _build_movement(inserted)


def apply_movement(
    clinic_id: str,
    medication_id: int,
    adjustment_type: str,
    quantity: int,
    notes: str | None = None,
    created_by: str | None = None,
) -> models.StockMovement:
    db.init_database()
    try:
        with db.write_transaction() as conn:
            movement = apply_movement_in(
                conn,
                clinic_id,
                medication_id,
                adjustment_type,
                quantity,
                notes=notes,
                created_by=created_by,
            )
    except InsufficientStockError as exc:
        logger.warning(
            "[LEDGER] Refused decrease clinic=%s medication_id=%s available=%s requested=%s",
            clinic_id,
            medication_id,
            exc.available,
            exc.requested,
        )
        raise
    logger.info(
        "[LEDGER] Movement clinic=%s medication_id=%s seq=%s type=%s delta=%s stock=%s",
        clinic_id,
        medication_id,
        movement.sequence,
        movement.adjustment_type,
        movement.delta,
        movement.resulting_stock,
    )
    return movement


def get_current_stock(clinic_id: str, medication_id: int) -> int:
    db.init_database()
    with db.get_connection() as conn:
        return fetch_item_row(conn, clinic_id, medication_id)["stock"]


def list_movements(clinic_id: str, medication_id: int) -> list[models.StockMovement]:
    db.init_database()
    with db.get_connection() as conn:
        fetch_item_row(conn, clinic_id, medication_id)
        cur = conn.execute(
            """
            SELECT *
            FROM stock_movements
            WHERE medication_id = ? AND clinic_id = ?
            ORDER BY sequence DESC
            """,
            (medication_id, clinic_id),
        )
        return [_build_movement(row) for row in cur.fetchall()]


def _replay_deltas(conn: sqlite3.Connection, medication_id: int) -> tuple[int, int, int]:
    total = 0
    lowest = 0
    count = 0
    cur = conn.execute(
        "SELECT delta FROM stock_movements WHERE medication_id = ? ORDER BY sequence ASC",
        (medication_id,),
    )
    for row in cur:
        total += row["delta"]
        lowest = min(lowest, total)
        count += 1
    return total, lowest, count


def replay_stock(clinic_id: str, medication_id: int) -> int:
    """Recalcule le stock à partir du journal, dans l'ordre des séquences."""
    db.init_database()
    with db.get_connection() as conn:
        fetch_item_row(conn, clinic_id, medication_id)
        total, _, _ = _replay_deltas(conn, medication_id)
        return total


def _reconcile_row(conn: sqlite3.Connection, row: sqlite3.Row) -> models.StockReconciliation:
    total, lowest, count = _replay_deltas(conn, row["id"])
    consistent = total == row["stock"] and lowest >= 0
    if not consistent:
        logger.error(
            "[LEDGER] Divergence medication_id=%s recorded=%s replayed=%s lowest=%s",
            row["id"],
            row["stock"],
            total,
            lowest,
        )
    return models.StockReconciliation(
        medication_id=row["id"],
        recorded_stock=row["stock"],
        replayed_stock=total,
        movement_count=count,
        lowest_running_stock=lowest,
        consistent=consistent,
    )


def reconcile(clinic_id: str, medication_id: int) -> models.StockReconciliation:
    db.init_database()
    with db.get_connection() as conn:
        row = fetch_item_row(conn, clinic_id, medication_id)
        return _reconcile_row(conn, row)


def reconcile_clinic(clinic_id: str) -> list[models.StockReconciliation]:
    db.init_database()
    with db.get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM medication_items WHERE clinic_id = ? ORDER BY id",
            (clinic_id,),
        ).fetchall()
        return [_reconcile_row(conn, row) for row in rows]
