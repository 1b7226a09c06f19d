"""Erreurs métier du suivi des médicaments.

Toutes dérivent de ``ValueError`` : l'appelant peut les traiter comme des
échecs récupérables et la couche API les traduit en codes HTTP.
"""
from __future__ import annotations


class MedtrackError(ValueError):
    """Erreur métier récupérable."""


class ValidationError(MedtrackError):
    """Champ obligatoire manquant ou valeur invalide, détecté avant écriture."""


class NotFoundError(MedtrackError):
    """Entité introuvable ou appartenant à une autre clinique."""


class InsufficientStockError(MedtrackError):
    """Une sortie de stock rendrait la quantité négative."""

    def __init__(self, medication_id: int, available: int, requested: int) -> None:
        super().__init__(
            f"Stock insuffisant pour le médicament {medication_id} "
            f"(disponible: {available}, demandé: {requested})"
        )
        self.medication_id = medication_id
        self.available = available
        self.requested = requested


class InvalidStateError(MedtrackError):
    """Action refusée compte tenu du statut courant de l'entité."""


__all__ = [
    "MedtrackError",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "InvalidStateError",
]
