from __future__ import annotations

from datetime import date, datetime, timezone

CLINIC = "clinic-a"
OTHER_CLINIC = "clinic-b"
TODAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def clinic_headers(clinic_id: str = CLINIC, user_id: str = "infirmier-1") -> dict[str, str]:
    return {"X-Clinic-Id": clinic_id, "X-User-Id": user_id}
