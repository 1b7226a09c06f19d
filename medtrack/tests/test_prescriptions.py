from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from medtrack.tests.clinic_helpers import CLINIC, NOW, OTHER_CLINIC, TODAY
from medtrack.core import administrations, inventory, ledger, models, prescriptions
from medtrack.core.errors import InvalidStateError, NotFoundError, ValidationError


@pytest.mark.parametrize(
    ("cancelled", "end_date", "expected"),
    [
        (False, None, "active"),
        (False, date(2026, 10, 19), "active"),
        (False, date(2026, 10, 20), "active"),
        (False, date(2026, 10, 18), "completed"),
        (True, None, "cancelled"),
        (True, date(2026, 10, 18), "cancelled"),
        (True, date(2026, 10, 19), "cancelled"),
        (True, date(2026, 12, 31), "cancelled"),
    ],
)
def test_prescription_status_grid(cancelled, end_date, expected) -> None:
    assert prescriptions.prescription_status(cancelled, end_date, TODAY) == expected


def test_create_prescription_does_not_touch_stock(make_item, make_prescription) -> None:
    item = make_item(stock=4)

    prescription = make_prescription(medication_id=item.id)

    assert prescription.status == "active"
    assert prescription.medication_name == item.name
    assert prescription.created_by == "medecin-1"
    assert ledger.get_current_stock(CLINIC, item.id) == 4
    assert len(ledger.list_movements(CLINIC, item.id)) == 1


def test_create_prescription_requires_active_item_of_same_clinic(make_item, make_prescription) -> None:
    foreign = make_item(stock=1, clinic_id=OTHER_CLINIC)
    inactive = make_item(stock=0, name="Oxazépam")
    inventory.deactivate_item(CLINIC, inactive.id)

    with pytest.raises(NotFoundError):
        make_prescription(medication_id=foreign.id)
    with pytest.raises(NotFoundError):
        make_prescription(medication_id=inactive.id)


def test_create_prescription_validates_dates_and_text(make_item, make_prescription) -> None:
    item = make_item(stock=1)

    with pytest.raises(ValidationError):
        make_prescription(
            medication_id=item.id,
            start_date=date(2026, 10, 10),
            end_date=date(2026, 10, 9),
        )
    with pytest.raises(ValidationError):
        make_prescription(medication_id=item.id, frequency="  ")


def test_status_is_recomputed_for_the_given_day(make_prescription) -> None:
    prescription = make_prescription(end_date=date(2026, 10, 20))

    assert prescriptions.get_prescription(CLINIC, prescription.id, today=TODAY).status == "active"
    later = prescriptions.get_prescription(CLINIC, prescription.id, today=date(2026, 10, 21))
    assert later.status == "completed"


def test_list_prescriptions_filters_by_patient_and_status(make_item, make_prescription) -> None:
    item = make_item(stock=5)
    first = make_prescription(medication_id=item.id)
    second = make_prescription(medication_id=item.id, patient_id="patient-2")
    finished = make_prescription(medication_id=item.id, end_date=date(2026, 10, 5))

    everything = prescriptions.list_prescriptions(CLINIC, today=TODAY)
    patient_one = prescriptions.list_prescriptions(CLINIC, today=TODAY, patient_id="patient-1")
    completed = prescriptions.list_prescriptions(CLINIC, today=TODAY, status="completed")

    assert [item.id for item in everything] == [finished.id, second.id, first.id]
    assert {item.id for item in patient_one} == {first.id, finished.id}
    assert [item.id for item in completed] == [finished.id]
    with pytest.raises(ValidationError):
        prescriptions.list_prescriptions(CLINIC, today=TODAY, status="paused")


def test_cancel_is_one_way(make_prescription) -> None:
    prescription = make_prescription()
    cancelled_at = datetime(2026, 10, 19, 11, 0, tzinfo=timezone.utc)

    cancelled = prescriptions.cancel_prescription(
        CLINIC, prescription.id, today=TODAY, cancelled_at=cancelled_at
    )

    assert cancelled.status == "cancelled"
    assert cancelled.cancelled is True
    assert cancelled.cancelled_at == cancelled_at
    with pytest.raises(InvalidStateError):
        prescriptions.cancel_prescription(CLINIC, prescription.id, today=TODAY)
    with pytest.raises(InvalidStateError):
        prescriptions.update_prescription(
            CLINIC, prescription.id, models.PrescriptionUpdate(dosage="5 mg"), today=TODAY
        )


def test_update_prescription_before_any_administration(make_prescription) -> None:
    prescription = make_prescription()

    updated = prescriptions.update_prescription(
        CLINIC,
        prescription.id,
        models.PrescriptionUpdate(frequency="1x par jour", end_date=date(2026, 11, 1)),
        today=TODAY,
    )

    assert updated.frequency == "1x par jour"
    assert updated.end_date == date(2026, 11, 1)
    assert updated.dosage == prescription.dosage


def test_update_prescription_rejects_end_before_start(make_prescription) -> None:
    prescription = make_prescription()

    with pytest.raises(ValidationError):
        prescriptions.update_prescription(
            CLINIC,
            prescription.id,
            models.PrescriptionUpdate(end_date=date(2026, 9, 30)),
            today=TODAY,
        )


def test_referenced_prescription_is_frozen(make_prescription) -> None:
    prescription = make_prescription()
    administrations.record_administration(
        CLINIC,
        models.AdministrationCreate(prescription_id=prescription.id, administered_by="inf-1"),
        now=NOW,
    )

    with pytest.raises(InvalidStateError):
        prescriptions.update_prescription(
            CLINIC, prescription.id, models.PrescriptionUpdate(dosage="20 mg"), today=TODAY
        )


def test_prescriptions_are_scoped_by_clinic(make_prescription) -> None:
    prescription = make_prescription()

    with pytest.raises(NotFoundError):
        prescriptions.get_prescription(OTHER_CLINIC, prescription.id, today=TODAY)
    with pytest.raises(NotFoundError):
        prescriptions.cancel_prescription(OTHER_CLINIC, prescription.id, today=TODAY)
    assert prescriptions.list_prescriptions(OTHER_CLINIC, today=TODAY) == []


def test_count_active_prescriptions(make_item, make_prescription) -> None:
    item = make_item(stock=2)
    make_prescription(medication_id=item.id)
    make_prescription(medication_id=item.id, end_date=date(2026, 10, 19))
    make_prescription(medication_id=item.id, end_date=date(2026, 10, 18))
    cancelled = make_prescription(medication_id=item.id)
    prescriptions.cancel_prescription(CLINIC, cancelled.id, today=TODAY)

    assert prescriptions.count_active_prescriptions(CLINIC, today=TODAY) == 2
