"""Gestion des connexions SQLite et du schéma des médicaments."""
from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import ContextManager

from medtrack.core.config import settings

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(settings.DATA_DIR) if settings.DATA_DIR else BASE_DIR / "data"
STOCK_DB_PATH = DATA_DIR / "medtrack.db"

logger = logging.getLogger(__name__)

_db_lock = RLock()
_initialized_paths: set[Path] = set()

SCHEMA = """
CREATE TABLE IF NOT EXISTS medication_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    clinic_id TEXT NOT NULL,
    name TEXT NOT NULL COLLATE NOCASE,
    dosage TEXT NOT NULL,
    category TEXT NOT NULL,
    active_ingredient TEXT,
    manufacturer TEXT,
    batch_number TEXT,
    expiration_date DATE,
    observations TEXT,
    stock INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'inactive')),
    created_by TEXT,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_medication_items_clinic
ON medication_items(clinic_id, name);

CREATE TABLE IF NOT EXISTS stock_movements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    clinic_id TEXT NOT NULL,
    medication_id INTEGER NOT NULL REFERENCES medication_items(id),
    sequence INTEGER NOT NULL,
    adjustment_type TEXT NOT NULL
        CHECK (adjustment_type IN ('increase', 'decrease', 'correction')),
    quantity INTEGER NOT NULL,
    delta INTEGER NOT NULL,
    resulting_stock INTEGER NOT NULL,
    notes TEXT,
    created_by TEXT,
    administration_id INTEGER REFERENCES administrations(id),
    created_at TIMESTAMP NOT NULL,
    UNIQUE (medication_id, sequence)
);
CREATE INDEX IF NOT EXISTS idx_stock_movements_medication
ON stock_movements(medication_id, sequence);
CREATE TRIGGER IF NOT EXISTS stock_movements_no_update
BEFORE UPDATE ON stock_movements
BEGIN
    SELECT RAISE(ABORT, 'stock_movements is append-only');
END;
CREATE TRIGGER IF NOT EXISTS stock_movements_no_delete
BEFORE DELETE ON stock_movements
BEGIN
    SELECT RAISE(ABORT, 'stock_movements is append-only');
END;

CREATE TABLE IF NOT EXISTS prescriptions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    clinic_id TEXT NOT NULL,
    patient_id TEXT NOT NULL,
    medication_id INTEGER NOT NULL REFERENCES medication_items(id),
    dosage TEXT NOT NULL,
    frequency TEXT NOT NULL,
    start_date DATE NOT NULL,
    end_date DATE,
    cancelled INTEGER NOT NULL DEFAULT 0,
    cancelled_at TIMESTAMP,
    observations TEXT,
    created_by TEXT,
    created_at TIMESTAMP NOT NULL,
    CHECK (end_date IS NULL OR end_date >= start_date)
);
CREATE INDEX IF NOT EXISTS idx_prescriptions_clinic_patient
ON prescriptions(clinic_id, patient_id);

CREATE TABLE IF NOT EXISTS administrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    clinic_id TEXT NOT NULL,
    prescription_id INTEGER NOT NULL REFERENCES prescriptions(id),
    medication_id INTEGER NOT NULL REFERENCES medication_items(id),
    patient_id TEXT NOT NULL,
    dosage TEXT NOT NULL,
    administered_by TEXT NOT NULL,
    administered_at TIMESTAMP NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('administered', 'skipped', 'refused')),
    observations TEXT,
    created_by TEXT,
    created_at TIMESTAMP NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_administrations_clinic_day
ON administrations(clinic_id, administered_at);
CREATE INDEX IF NOT EXISTS idx_administrations_prescription
ON administrations(prescription_id);
"""


def utcnow_iso() -> str:
    """Horodatage d'enregistrement (jamais utilisé pour dériver un statut)."""
    return datetime.now(timezone.utc).isoformat()


def _connect(path: Path) -> sqlite3.Connection:
    # isolation_level=None : les transactions sont ouvertes explicitement.
    conn = sqlite3.connect(path, timeout=settings.DB_BUSY_TIMEOUT, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def _managed_connection(path: Path, *, begin: str) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection that is always closed on exit.

    The block runs in a single transaction. ``BEGIN IMMEDIATE`` takes the
    write lock before the first read so that read-check-write sequences on
    stock are serialized; ``BEGIN`` gives readers a consistent snapshot.
    """

    conn = _connect(path)
    try:
        conn.execute(begin)
        yield conn
        if conn.in_transaction:
            conn.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


def get_connection() -> ContextManager[sqlite3.Connection]:
    """Connexion en lecture sur un instantané cohérent."""
    return _managed_connection(STOCK_DB_PATH, begin="BEGIN")


def write_transaction() -> ContextManager[sqlite3.Connection]:
    """Connexion ouverte dans une transaction d'écriture exclusive."""
    return _managed_connection(STOCK_DB_PATH, begin="BEGIN IMMEDIATE")


def init_database() -> None:
    path = STOCK_DB_PATH
    with _db_lock:
        if path in _initialized_paths and path.exists():
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = _connect(path)
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)
        finally:
            conn.close()
        _initialized_paths.add(path)
        logger.info("[DB] pid=%s STOCK_DB_PATH=%s", os.getpid(), path.resolve())
