"""Classement des péremptions et alertes de stock.

Tout est recalculé à chaque appel à partir du catalogue : les catalogues par
clinique sont petits et aucune tâche de fond n'existe.
"""
from __future__ import annotations

import logging
from datetime import date

from medtrack.core import administrations, inventory, models, prescriptions
from medtrack.core.config import settings

logger = logging.getLogger(__name__)


def days_until_expiration(expiration_date: date | None, today: date) -> int | None:
    if expiration_date is None:
        return None
    return (expiration_date - today).days


def classify(expiration_date: date | None, today: date, threshold_days: int) -> str:
    days = days_until_expiration(expiration_date, today)
    if days is None:
        return "normal"
    if days < 0:
        return "expired"
    if days < threshold_days:
        return "expiring"
    return "normal"


def classify_item(item: models.MedicationItem, today: date, threshold_days: int) -> str:
    return classify(item.expiration_date, today, threshold_days)


def stock_level(
    stock: int,
    *,
    low_threshold: int | None = None,
    critical_threshold: int | None = None,
) -> str:
    low = settings.LOW_STOCK_THRESHOLD if low_threshold is None else low_threshold
    critical = (
        settings.CRITICAL_STOCK_THRESHOLD if critical_threshold is None else critical_threshold
    )
    if stock <= 0:
        return "out"
    if stock <= critical:
        return "critical"
    if stock <= low:
        return "low"
    return "adequate"


def scan_clinic(
    clinic_id: str,
    today: date,
    threshold_days: int | None = None,
) -> models.ExpirationScan:
    """Produits actifs périmés ou proches de la péremption (seuil du bandeau)."""
    threshold = settings.ADVISORY_EXPIRY_DAYS if threshold_days is None else threshold_days
    expiring: list[models.MedicationItem] = []
    expired: list[models.MedicationItem] = []
    for item in inventory.list_items(clinic_id, include_inactive=False):
        status = classify_item(item, today, threshold)
        if status == "expired":
            expired.append(item)
        elif status == "expiring":
            expiring.append(item)
    expiring.sort(key=lambda item: item.expiration_date)
    expired.sort(key=lambda item: item.expiration_date)
    return models.ExpirationScan(
        threshold_days=threshold,
        expiring_items=expiring,
        expired_items=expired,
    )


def dispensary_view(
    clinic_id: str,
    today: date,
    threshold_days: int | None = None,
    *,
    include_inactive: bool = True,
    search: str | None = None,
) -> list[models.DispensaryEntry]:
    """Catalogue annoté pour la vue dispensaire (seuil court)."""
    threshold = settings.DISPENSARY_EXPIRY_DAYS if threshold_days is None else threshold_days
    return [
        models.DispensaryEntry(
            item=item,
            expiry_status=classify_item(item, today, threshold),
            days_until_expiration=days_until_expiration(item.expiration_date, today),
            stock_level=stock_level(item.stock),
        )
        for item in inventory.list_items(
            clinic_id, include_inactive=include_inactive, search=search
        )
    ]


def list_low_stock(
    clinic_id: str,
    *,
    low_threshold: int | None = None,
    critical_threshold: int | None = None,
) -> list[models.LowStockEntry]:
    entries = []
    for item in inventory.list_items(clinic_id, include_inactive=False):
        level = stock_level(
            item.stock, low_threshold=low_threshold, critical_threshold=critical_threshold
        )
        if level != "adequate":
            entries.append(models.LowStockEntry(item=item, stock_level=level))
    entries.sort(key=lambda entry: (entry.item.stock, entry.item.name.lower()))
    return entries


def build_advisories(
    clinic_id: str,
    today: date,
    threshold_days: int | None = None,
) -> list[models.Advisory]:
    scan = scan_clinic(clinic_id, today, threshold_days)
    advisories: list[models.Advisory] = []
    for item in scan.expired_items:
        advisories.append(
            models.Advisory(
                kind="expired",
                medication_id=item.id,
                medication_name=item.name,
                message=f"{item.name} ({item.dosage}) est périmé depuis le "
                f"{item.expiration_date.strftime('%d/%m/%Y')}",
            )
        )
    for item in scan.expiring_items:
        days = days_until_expiration(item.expiration_date, today)
        advisories.append(
            models.Advisory(
                kind="expiring",
                medication_id=item.id,
                medication_name=item.name,
                message=f"{item.name} ({item.dosage}) expire dans {days} jour(s)",
            )
        )
    for entry in list_low_stock(clinic_id):
        item = entry.item
        if entry.stock_level == "out":
            advisories.append(
                models.Advisory(
                    kind="out_of_stock",
                    medication_id=item.id,
                    medication_name=item.name,
                    message=f"{item.name} ({item.dosage}) est en rupture de stock",
                )
            )
        else:
            advisories.append(
                models.Advisory(
                    kind="low_stock",
                    medication_id=item.id,
                    medication_name=item.name,
                    message=f"Stock {'critique' if entry.stock_level == 'critical' else 'bas'} "
                    f"pour {item.name} : {item.stock} unité(s)",
                )
            )
    if advisories:
        logger.debug("[ALERTS] clinic=%s advisories=%s", clinic_id, len(advisories))
    return advisories


def dashboard_summary(clinic_id: str, today: date) -> models.DashboardSummary:
    items = inventory.list_items(clinic_id)
    active_items = [item for item in items if item.status == "active"]
    scan = scan_clinic(clinic_id, today)
    low_stock = list_low_stock(clinic_id)
    return models.DashboardSummary(
        has_data=inventory.has_clinic_data(clinic_id),
        total_items=len(items),
        active_items=len(active_items),
        expiring_count=len(scan.expiring_items),
        expired_count=len(scan.expired_items),
        low_stock_count=sum(1 for entry in low_stock if entry.stock_level != "out"),
        out_of_stock_count=sum(1 for entry in low_stock if entry.stock_level == "out"),
        active_prescriptions=prescriptions.count_active_prescriptions(clinic_id, today=today),
        administrations_today=administrations.count_administrations(clinic_id, today),
    )
